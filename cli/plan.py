"""
Plan Subcommand Module

Dry run: enumerates the configured bindings, builds every job, checks the
output layout for collisions and prints the resulting plan. Nothing is
rendered and no directories are created.
"""

import json
import logging
import sys
from typing import Optional

import click

from batchrender.config.loader import RunConfigLoader
from batchrender.coordinator import RunCoordinator
from batchrender.engines.stub import StubEngine
from batchrender.errors import ConfigurationError, ErrorInfo, OutputCollisionError

from .help_texts import PLAN_HELP, ExitCodes
from .shared_options import config_option


logger = logging.getLogger(__name__)


@click.command(help=PLAN_HELP)
@config_option()
@click.option("--output-root", "-o", type=click.Path(file_okay=False), help="Output root to plan against.")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON.")
def plan(config_file: str, output_root: Optional[str], as_json: bool):
    """
    Show the jobs a run would execute.

    Examples:
        batch-render plan --config reports.yaml
        batch-render plan -c reports.yaml --json > plan.json
    """
    try:
        config = RunConfigLoader().load(config_file, {"output_root": output_root})
        # The engine is never called while planning
        coordinator = RunCoordinator.from_config(config, engine=StubEngine(), observers=[])
        jobs = coordinator.plan(config.template, config.binding_set(), config.formats)
    except (ConfigurationError, OutputCollisionError) as e:
        info = ErrorInfo.from_exception(e)
        click.echo(f"❌ {info.error_type}: {info.message}", err=True)
        if info.suggestion:
            click.echo(f"💡 {info.suggestion}", err=True)
        sys.exit(ExitCodes.CONFIGURATION_ERROR)

    if as_json:
        click.echo(json.dumps(
            {
                "template": config.template,
                "output_root": config.output_root,
                "jobs": [
                    {
                        "index": job.index,
                        "binding": job.binding.as_dict(),
                        "format": job.output_format,
                        "output_path": str(job.output_path),
                    }
                    for job in jobs
                ],
            },
            indent=2,
        ))
        return

    click.echo(f"Template: {config.template}")
    click.echo(f"Output root: {config.output_root}")
    click.echo(f"Jobs: {len(jobs)} (concurrency {config.concurrency}, timeout {config.timeout:g}s)\n")
    for job in jobs:
        click.echo(f"  {job.index + 1:>4}. {job.binding.describe():<40} {job.output_format:<8} {job.output_path}")
    click.echo("\n✅ No output path collisions")
