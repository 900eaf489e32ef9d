"""
Shared CLI Option Decorators

Reusable Click decorators for options common to several subcommands.
"""

import click

from batchrender.config.schema import VALID_LOG_LEVELS

from .help_texts import CONFIG_HELP, LOG_FILE_HELP, LOG_LEVEL_HELP


def config_option(help=None):
    """Decorator for the run configuration file option."""
    def decorator(f):
        return click.option(
            '--config', '-c',
            'config_file',
            required=True,
            type=click.Path(exists=True, dir_okay=False),
            help=help or CONFIG_HELP
        )(f)
    return decorator


def log_level_option(help=None):
    """Decorator for logging level options."""
    def decorator(f):
        return click.option(
            '--log-level',
            default=None,
            type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
            help=help or LOG_LEVEL_HELP
        )(f)
    return decorator


def log_file_option(help=None):
    """Decorator for log file options."""
    def decorator(f):
        return click.option(
            '--log-file',
            default=None,
            type=click.Path(dir_okay=False),
            help=help or LOG_FILE_HELP
        )(f)
    return decorator
