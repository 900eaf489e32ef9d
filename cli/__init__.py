"""
CLI Package for Batch Render

Click group and subcommands. Each subcommand is implemented in its own
module. The cli() function serves as the console script entry point for
setup.py.
"""

import os

import click
from dotenv import load_dotenv

from batchrender import __version__
from batchrender.utils.logging_config import configure_logging

# Load environment variables from .env files
# Priority: .env.dev (if exists) overrides .env
if os.path.exists('.env.dev'):
    load_dotenv('.env.dev')
elif os.path.exists('.env'):
    load_dotenv('.env')

from .init import init_config
from .plan import plan
from .run import run

# Configure logging when CLI package is imported
configure_logging()


@click.group()
@click.version_option(version=__version__, prog_name='batch-render')
def main():
    """Batch Render CLI - render one parameterized template for many bindings.

    Enumerates a parameter space (for example every organizational unit ×
    reporting period), renders one artifact per binding and format into a
    predictable directory tree, and reports which jobs failed.
    """
    pass


# Register subcommands
main.add_command(run)
main.add_command(plan)
main.add_command(init_config)


# Entry point for setup.py console script
def cli():
    """Console script entry point."""
    main()
