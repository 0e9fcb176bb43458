"""CLI run command: gb9k run."""

from __future__ import annotations

from pathlib import Path

import click

from gb9k.chat.engine import ChatEngine, ChatError
from gb9k.chat.usage import format_report
from gb9k.core.config import load_settings
from gb9k.core.credentials import CredentialError
from gb9k.llm.openrouter import OpenRouterError
from gb9k.prompt.parser import MalformedFileError


def _echo_token(text: str) -> None:
    click.echo(text, nl=False)


@click.command("run")
@click.argument("prompt_file", required=False, type=click.Path(path_type=Path))
@click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override GB9K_HOME path.",
)
def run_cmd(prompt_file: Path | None, home: Path | None) -> None:
    """Send the conversation in a prompt file and stream the reply into it.

    PROMPT_FILE defaults to _PROMPT.md in the current directory. The reply is
    printed as it arrives and appended under a new LLM header, followed by an
    empty User turn for your next message.
    """
    settings = load_settings(home)
    path = prompt_file or Path(settings.prompt_file)
    engine = ChatEngine(settings, echo=_echo_token)

    click.echo(f"Streaming response into {path.name}:\n")
    try:
        result = engine.run(path)
    except (ChatError, MalformedFileError, CredentialError) as e:
        raise click.ClickException(str(e)) from e
    except OpenRouterError as e:
        raise click.ClickException(f"Request failed: {e}") from e

    click.echo("\n")
    if result.context.files:
        click.echo(f"Context: {len(result.context.files)} file(s)")
    for warning in result.context.warnings:
        click.echo(f"Warning: {warning}")
    for line in format_report(result.report, result.conversation.model_id):
        click.echo(line)
