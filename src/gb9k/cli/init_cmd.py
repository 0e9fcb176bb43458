"""CLI command for creating a prompt file."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from gb9k.context.discovery import FileDiscovery, relative_to_root
from gb9k.core.config import load_settings
from gb9k.prompt.document import PromptFile

log = logging.getLogger(__name__)


@click.command("init")
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--exclude",
    "-x",
    multiple=True,
    type=click.Path(path_type=Path),
    help="File or directory to leave out of the context (repeatable).",
)
@click.option("--model", "-m", default=None, help="Model id (default: chat.default_model).")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Prompt file to create (default: _PROMPT.md).",
)
@click.option("--force", is_flag=True, help="Overwrite an existing prompt file.")
@click.option("--open", "open_file", is_flag=True, help="Open the file in your editor.")
@click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override GB9K_HOME path.",
)
def init_cmd(
    paths: tuple[Path, ...],
    exclude: tuple[Path, ...],
    model: str | None,
    output: Path | None,
    force: bool,
    open_file: bool,
    home: Path | None,
) -> None:
    """Create a prompt file listing the project's code files as context.

    PATHS limits the context to specific files or directories; by default
    every code file next to the prompt file is listed. Edit the file, write
    your message under the User header, then run `gb9k run`.
    """
    settings = load_settings(home)
    path = output or Path(settings.prompt_file)
    prompt = PromptFile(path)

    if prompt.exists() and not force:
        click.echo(f"{path} already exists. Use --force to overwrite.")
        return

    root = path.resolve().parent
    discovery = FileDiscovery.from_settings(settings)
    try:
        files = discovery.discover(Path.cwd(), list(paths) or [root], exclude)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    refs = [relative_to_root(f, root) for f in files]
    log.debug("Listing %d context file(s) relative to %s", len(refs), root)
    prompt.create(model or settings.default_model, refs)

    click.echo(f"Created {path} with {len(refs)} context file(s).")
    click.echo("Write your message under '### User', then run `gb9k run`.")

    if open_file:
        click.launch(str(path))
