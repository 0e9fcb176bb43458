"""CLI models command: gb9k models."""

from __future__ import annotations

from pathlib import Path

import click

from gb9k.core.config import load_settings
from gb9k.core.credentials import CredentialError, CredentialStore
from gb9k.llm.directory import ModelDirectory, format_price
from gb9k.llm.openrouter import OpenRouterClient, OpenRouterError


@click.command("models")
@click.argument("term", required=False)
@click.option("--refresh", is_flag=True, help="Ignore the cache and fetch the list again.")
@click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override GB9K_HOME path.",
)
def models_cmd(term: str | None, refresh: bool, home: Path | None) -> None:
    """List OpenRouter models with prompt/completion prices per 1K tokens.

    TERM filters by model id or name. The list is cached for 24 hours.
    """
    settings = load_settings(home)
    try:
        api_key = CredentialStore(settings.api_key_path).get()
    except CredentialError as e:
        raise click.ClickException(str(e)) from e
    if not api_key:
        raise click.ClickException("API key not set. Please run `gb9k set-key` first.")

    directory = ModelDirectory(settings, OpenRouterClient(api_key, settings))
    try:
        models = directory.load_models(refresh=refresh)
    except OpenRouterError as e:
        raise click.ClickException(str(e)) from e

    quotes = directory.search(term, models) if term else directory.quotes(models)
    if not quotes:
        click.echo(f"No models matching '{term}'." if term else "No models found.")
        return

    quotes.sort(key=lambda q: q.id)
    width = max(len(q.id) for q in quotes)
    click.echo(f"{'Model':<{width}}  {'Prompt':>12}  {'Completion':>12}")
    for q in quotes:
        click.echo(
            f"{q.id:<{width}}  {format_price(q.prompt_price):>12}  "
            f"{format_price(q.completion_price):>12}"
        )
    click.echo(f"\n{len(quotes)} model(s)")
