"""CLI entry point for gb9k."""

import logging

import click

from gb9k import __version__
from gb9k.cli.bundle_cmd import bundle_cmd
from gb9k.cli.init_cmd import init_cmd
from gb9k.cli.key_cmd import set_key_cmd
from gb9k.cli.models_cmd import models_cmd
from gb9k.cli.run_cmd import run_cmd


@click.group()
@click.version_option(version=__version__, prog_name="gb9k")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """gb9k: bundle code into prompts and chat with LLMs from a markdown file."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


cli.add_command(bundle_cmd)
cli.add_command(init_cmd)
cli.add_command(run_cmd)
cli.add_command(models_cmd)
cli.add_command(set_key_cmd)


if __name__ == "__main__":
    cli()
