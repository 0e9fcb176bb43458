"""CLI set-key command: gb9k set-key."""

from __future__ import annotations

from pathlib import Path

import click

from gb9k.core.config import load_settings
from gb9k.core.credentials import CredentialError, CredentialStore, mask_key


@click.command("set-key")
@click.argument("key", required=False)
@click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override GB9K_HOME path.",
)
def set_key_cmd(key: str | None, home: Path | None) -> None:
    """Store the OpenRouter API key (owner-only file in GB9K_HOME).

    Prompts for the key when KEY is not given.
    """
    settings = load_settings(home)
    store = CredentialStore(settings.api_key_path)

    try:
        existing = store.get()
        if existing and not click.confirm(
            f"API key ending in {mask_key(existing)} already exists. Overwrite?",
            default=False,
        ):
            click.echo("Operation cancelled")
            return

        if not key:
            key = click.prompt("Enter your API key", hide_input=True)
        store.set(key)
    except (CredentialError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    click.echo("API key successfully set")
