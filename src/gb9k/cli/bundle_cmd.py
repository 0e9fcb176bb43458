"""CLI bundle command: gb9k bundle."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import pyperclip

from gb9k.chat.usage import estimate_tokens, format_number
from gb9k.context.assembler import assemble_context
from gb9k.context.discovery import FileDiscovery, relative_to_root
from gb9k.core.config import load_settings
from gb9k.core.fileutil import count_lines

log = logging.getLogger(__name__)


@click.command("bundle")
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--exclude",
    "-x",
    multiple=True,
    type=click.Path(path_type=Path),
    help="File or directory to leave out (repeatable).",
)
@click.option(
    "--file",
    "-f",
    "output",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write the bundle to this file.",
)
@click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override GB9K_HOME path.",
)
def bundle_cmd(
    paths: tuple[Path, ...],
    exclude: tuple[Path, ...],
    output: Path | None,
    home: Path | None,
) -> None:
    """Concatenate code files into a single prompt and copy it to the clipboard.

    Files are separated by their paths. Without PATHS, every code file under
    the current directory is included. If no clipboard is available, the
    bundle is printed instead (unless --file is given).
    """
    settings = load_settings(home)
    root = Path.cwd()
    discovery = FileDiscovery.from_settings(settings)

    try:
        files = discovery.discover(root, list(paths) or None, exclude)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    if not files:
        click.echo("No code files found")
        return

    bundle = assemble_context([relative_to_root(f, root) for f in files], root, discovery)

    copied = True
    try:
        pyperclip.copy(bundle.text)
    except pyperclip.PyperclipException as e:
        log.debug("Clipboard copy failed: %s", e)
        copied = False

    if output:
        output.write_text(bundle.text, encoding="utf-8")

    if not copied:
        click.echo("Warning: no clipboard available, content not copied.", err=True)
        if not output:
            click.echo(bundle.text)

    click.echo("\nIncluded files:")
    for rel in bundle.files:
        click.echo(f"- {rel}")

    click.echo("\nStats:")
    click.echo(f"- Number of files: {format_number(len(bundle.files))}")
    click.echo(f"- Number of lines: {format_number(count_lines(bundle.text))}")
    click.echo(f"- Estimated tokens: {format_number(estimate_tokens(bundle.text))}")

    if copied:
        click.echo("Content copied to clipboard")
    if output:
        click.echo(f"Content written to {output}")
