"""
Run Subcommand Module

Renders every binding × format of a run configuration and prints the run
summary.

Exit codes:
- 0: every job succeeded
- 1: the run completed but at least one job failed or was skipped
- 2: configuration or output collision error; nothing was rendered
"""

import logging
import signal
import sys
import threading
from typing import Optional, Tuple

import click
from tqdm import tqdm

from batchrender.config.environment import EnvironmentVariables
from batchrender.config.loader import RunConfigLoader
from batchrender.coordinator import LoggingObserver, RunCoordinator, RunObserver
from batchrender.errors import BatchRenderError, ConfigurationError, ErrorInfo, OutputCollisionError
from batchrender.formats import VALID_FORMATS
from batchrender.engines.factory import VALID_ENGINES
from batchrender.summary import RunSummary, format_report, load_retry_selection, write_summary
from batchrender.utils.logging_config import configure_logging, logging_config

from .help_texts import (
    CONCURRENCY_HELP,
    ENGINE_HELP,
    FORMAT_HELP,
    OUTPUT_ROOT_HELP,
    PROGRESS_HELP,
    RETRY_FAILED_HELP,
    RUN_HELP,
    SUMMARY_HELP,
    TIMEOUT_HELP,
    ExitCodes,
)
from .shared_options import config_option, log_file_option, log_level_option


logger = logging.getLogger(__name__)


class ProgressObserver(RunObserver):
    """Advances a tqdm bar as jobs finish."""

    def __init__(self):
        self._bar: Optional[tqdm] = None
        self._lock = threading.Lock()

    def on_run_started(self, jobs):
        self._bar = tqdm(total=len(jobs), desc="Rendering", unit="job", file=sys.stderr)

    def on_job_finished(self, outcome):
        with self._lock:
            if self._bar is not None:
                self._bar.update(1)
                self._bar.set_postfix(last=outcome.status.value)

    def close(self):
        if self._bar is not None:
            self._bar.close()


@click.command(help=RUN_HELP)
@config_option()
@click.option("--output-root", "-o", type=click.Path(file_okay=False), help=OUTPUT_ROOT_HELP)
@click.option("--concurrency", "-j", type=click.IntRange(min=1), help=CONCURRENCY_HELP)
@click.option("--timeout", "-t", type=click.FloatRange(min=0, min_open=True), help=TIMEOUT_HELP)
@click.option("--engine", "-e", type=click.Choice(VALID_ENGINES, case_sensitive=False), help=ENGINE_HELP)
@click.option(
    "--format", "-f", "formats",
    multiple=True,
    type=click.Choice(VALID_FORMATS, case_sensitive=False),
    help=FORMAT_HELP,
)
@click.option("--summary", "summary_path", type=click.Path(dir_okay=False), help=SUMMARY_HELP)
@click.option("--retry-failed", type=click.Path(exists=True, dir_okay=False), help=RETRY_FAILED_HELP)
@click.option("--progress/--no-progress", default=False, help=PROGRESS_HELP)
@log_level_option()
@log_file_option()
def run(
    config_file: str,
    output_root: Optional[str],
    concurrency: Optional[int],
    timeout: Optional[float],
    engine: Optional[str],
    formats: Tuple[str, ...],
    summary_path: Optional[str],
    retry_failed: Optional[str],
    progress: bool,
    log_level: Optional[str],
    log_file: Optional[str],
):
    """
    Render a parameterized template for every binding in the configuration.

    Examples:
        # Render every unit × period combination
        batch-render run --config reports.yaml

        # Four jobs at a time, PDF and HTML, with a progress bar
        batch-render run -c reports.yaml -j 4 -f pdf -f html --progress

        # Re-render only what failed last time
        batch-render run -c reports.yaml --retry-failed reports/run-summary.json
    """
    overrides = {
        "output_root": output_root,
        "concurrency": concurrency,
        "timeout": timeout,
        "engine": engine.lower() if engine else None,
        "formats": list(formats) or None,
        "summary_path": summary_path,
        "log_level": log_level,
        "log_file": log_file,
    }

    try:
        loader = RunConfigLoader()
        config = loader.load(config_file, overrides)
        job_filter = None
        if retry_failed:
            config, selection = _restrict_to_failed(loader, config, retry_failed)
            if config is None:
                click.echo("✅ Nothing to retry: every job in the previous run succeeded.")
                sys.exit(ExitCodes.SUCCESS)
            job_filter = selection.includes
    except ConfigurationError as e:
        _report_abort(e)
        sys.exit(ExitCodes.CONFIGURATION_ERROR)

    configure_logging(level=config.log_level, log_file=config.log_file, force=True)
    logger.info(f"Batch Render - template {config.template}")
    logging_config.log_configuration_details(config.model_dump())
    env_warnings, env_errors = EnvironmentVariables.validate_environment_setup()
    for message in env_warnings + env_errors:
        logger.warning(message)

    progress_observer = ProgressObserver() if progress else None
    observers = [LoggingObserver()] + ([progress_observer] if progress_observer else [])

    try:
        coordinator = RunCoordinator.from_config(config, observers=observers)
        engine_name, engine_version = coordinator.engine.get_engine_info()
        logger.info(f"Engine: {engine_name} {engine_version}")
        for problem in coordinator.engine.validate_requirements():
            logger.warning(problem)
        with _cancel_on_interrupt(coordinator):
            summary = coordinator.run_config(config, job_filter=job_filter)
    except (ConfigurationError, OutputCollisionError) as e:
        _report_abort(e)
        sys.exit(ExitCodes.CONFIGURATION_ERROR)
    finally:
        if progress_observer is not None:
            progress_observer.close()

    click.echo(format_report(summary))
    if config.summary_path:
        write_summary(summary, config.summary_path)
        click.echo(f"Summary saved to: {config.summary_path}")

    sys.exit(_exit_code(summary))


def _restrict_to_failed(loader: RunConfigLoader, config, summary_file: str):
    """Replace the configured parameter space with the failed jobs of a prior run.

    Returns:
        (restricted RunConfig, RetrySelection); the config is None if the
        prior run had no failures
    """
    selection = load_retry_selection(summary_file)
    if not selection.assignments:
        return None, selection

    data = config.model_dump()
    data.update(
        dimensions=None,
        bindings=selection.assignments,
        dimension_names=selection.dimensions,
        formats=selection.formats,
    )
    logger.info(f"Retrying {len(selection.jobs)} job(s) from {summary_file}")
    return loader.validate(data), selection


def _exit_code(summary: RunSummary) -> int:
    if summary.is_success:
        return ExitCodes.SUCCESS
    return ExitCodes.JOBS_FAILED


def _report_abort(error: BatchRenderError) -> None:
    info = ErrorInfo.from_exception(error)
    click.echo(f"\n❌ {info.error_type}: {info.message}", err=True)
    if info.suggestion:
        click.echo(f"💡 {info.suggestion}", err=True)
    click.echo("Run aborted before dispatch; no artifacts were written.", err=True)


class _cancel_on_interrupt:
    """Turn the first Ctrl-C into a cooperative run cancellation."""

    def __init__(self, coordinator: RunCoordinator):
        self.coordinator = coordinator
        self._previous = None

    def __enter__(self):
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc):
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)
        return False

    def _handle(self, signum, frame):
        if self.coordinator.cancelled:
            raise KeyboardInterrupt
        click.echo("\nCancelling: waiting for running jobs, skipping the rest (Ctrl-C again to abort)", err=True)
        self.coordinator.cancel()
