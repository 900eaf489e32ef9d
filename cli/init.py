"""
Init Subcommand Module

Prints (or writes) a commented example run configuration.
"""

from pathlib import Path
from typing import Optional

import click

from batchrender.config.loader import EXAMPLE_CONFIG

from .help_texts import INIT_HELP


@click.command(name="init", help=INIT_HELP)
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False), help="Write to this file instead of stdout.")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def init_config(output_path: Optional[str], force: bool):
    """Generate an example configuration."""
    if not output_path:
        click.echo(EXAMPLE_CONFIG, nl=False)
        return

    target = Path(output_path)
    if target.exists() and not force:
        raise click.ClickException(f"File already exists: {target}. Use --force to overwrite.")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(EXAMPLE_CONFIG, encoding="utf-8")
    click.echo(f"Example configuration written to: {target}")
