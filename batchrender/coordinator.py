"""
Run Coordinator

Drives one batch run:

    idle -> enumerating -> dispatching -> collecting -> completed
                 |
                 +-> aborted   (ConfigurationError / OutputCollisionError)

All configuration-class errors surface while enumerating, before a single
job is dispatched, so a misconfigured run writes nothing. Once dispatching
starts, individual job failures are only recorded; the run always proceeds
to an outcome for every job.

Jobs run on a bounded thread pool. Futures are keyed by job index and the
summary lists outcomes in job order, so completion order never leaks into
the result. Cancellation is cooperative: jobs already running finish (or
time out), jobs not yet started are recorded as skipped.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

from batchrender.bindings import BindingSet
from batchrender.engines.base import CancellationToken, RenderEngine
from batchrender.engines.factory import create_engine
from batchrender.errors import ConfigurationError, OutputCollisionError, RenderError
from batchrender.invoker import OutcomeStatus, RenderInvoker, RenderOutcome
from batchrender.jobs import JobBuilder, RenderJob
from batchrender.layout import OutputLayout
from batchrender.summary import RunSummary, outcomes_in_order

if TYPE_CHECKING:
    from batchrender.config.schema import RunConfig


logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle states of a run."""

    IDLE = "idle"
    ENUMERATING = "enumerating"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    COMPLETED = "completed"
    ABORTED = "aborted"


FINISHED_STATES = (RunState.COMPLETED, RunState.ABORTED)


class RunObserver:
    """Receives per-job progress events. Methods may be called from worker threads."""

    def on_run_started(self, jobs: Sequence[RenderJob]) -> None:
        pass

    def on_job_started(self, job: RenderJob) -> None:
        pass

    def on_job_finished(self, outcome: RenderOutcome) -> None:
        pass


class LoggingObserver(RunObserver):
    """Emits progress events to the module logger."""

    def on_run_started(self, jobs: Sequence[RenderJob]) -> None:
        logger.info(f"Dispatching {len(jobs)} render job(s)")

    def on_job_started(self, job: RenderJob) -> None:
        logger.info(f"Started {job.describe()}")

    def on_job_finished(self, outcome: RenderOutcome) -> None:
        job = outcome.job
        if outcome.succeeded:
            logger.info(f"Finished {job.describe()} in {outcome.elapsed:.1f}s: {job.output_path}")
        elif outcome.error is not None:
            logger.error(f"Failed {job.describe()} after {outcome.elapsed:.1f}s: {outcome.error}")
        else:
            logger.warning(f"Skipped {job.describe()}")


class RunCoordinator:
    """Coordinates enumeration, dispatch and collection for one run at a time.

    Example:
        >>> coordinator = RunCoordinator(StubEngine(), output_root="out", concurrency=4)
        >>> summary = coordinator.run("report.qmd", enumerate_bindings(dims), ["pdf"])
        >>> summary.overall
        <RunStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        engine: RenderEngine,
        output_root: str,
        concurrency: int = 1,
        timeout: float = 600.0,
        layout: Optional[OutputLayout] = None,
        observers: Optional[List[RunObserver]] = None,
    ):
        """Initialize the coordinator.

        Args:
            engine: Rendering engine shared by all jobs
            output_root: Root of the output hierarchy
            concurrency: Maximum number of jobs rendering at once (>= 1)
            timeout: Per-job time budget in seconds
            layout: Output layout (default naming convention if omitted)
            observers: Progress observers (default: LoggingObserver)

        Raises:
            ConfigurationError: If concurrency or timeout are out of range
        """
        if concurrency < 1:
            raise ConfigurationError("concurrency must be >= 1", field_name="concurrency")
        if timeout <= 0:
            raise ConfigurationError("timeout must be > 0", field_name="timeout")

        self.engine = engine
        self.output_root = Path(output_root)
        self.concurrency = concurrency
        self.layout = layout or OutputLayout()
        self.builder = JobBuilder(self.layout)
        self.invoker = RenderInvoker(engine, self.output_root, timeout=timeout)
        self.observers = observers if observers is not None else [LoggingObserver()]
        self.state = RunState.IDLE
        self._cancel = CancellationToken()
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: "RunConfig",
        engine: Optional[RenderEngine] = None,
        observers: Optional[List[RunObserver]] = None,
    ) -> "RunCoordinator":
        """Create a coordinator from a validated run configuration.

        Args:
            config: Run configuration
            engine: Engine override (default: built from config.engine)
            observers: Progress observers
        """
        if engine is None:
            engine = create_engine(config.engine, config.engine_options)
        return cls(
            engine=engine,
            output_root=config.output_root,
            concurrency=config.concurrency,
            timeout=config.timeout,
            layout=OutputLayout(config.filename_template),
            observers=observers,
        )

    def run_config(
        self,
        config: "RunConfig",
        job_filter: Optional[Callable[[RenderJob], bool]] = None,
    ) -> RunSummary:
        """Enumerate the configured bindings and run them.

        Args:
            config: Run configuration
            job_filter: Optional predicate selecting which planned jobs to render

        Raises:
            ConfigurationError: Before dispatch, for any configuration problem
            OutputCollisionError: Before dispatch, if two jobs share a path
        """
        self._begin_run()
        try:
            binding_set = config.binding_set()
        except ConfigurationError as e:
            self._set_state(RunState.ABORTED)
            logger.error(f"Run aborted before dispatch: {e}")
            raise
        return self.run(config.template, binding_set, config.formats, job_filter=job_filter)

    def cancel(self) -> None:
        """Request run-level cancellation. Jobs not yet started are skipped.

        Applies to the run in progress or, between runs, to the next one.
        """
        logger.warning("Run cancellation requested")
        with self._lock:
            self._reset_if_finished()
            self._cancel.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_cancelled()

    def plan(self, template_ref: str, binding_set: BindingSet, formats: Sequence[str]) -> List[RenderJob]:
        """Enumerate bindings, build every job and verify the layout.

        Raises:
            ConfigurationError: On an unsupported format or unusable value
            OutputCollisionError: If two jobs share an output path
        """
        if not formats:
            raise ConfigurationError("At least one output format is required", field_name="formats")
        jobs = self.builder.build_all(template_ref, binding_set, formats)
        self.layout.check_collisions(jobs)
        return jobs

    def run(
        self,
        template_ref: str,
        binding_set: BindingSet,
        formats: Sequence[str],
        job_filter: Optional[Callable[[RenderJob], bool]] = None,
    ) -> RunSummary:
        """Execute a full run.

        Args:
            template_ref: Template to render
            binding_set: Enumerated bindings
            formats: Requested output formats
            job_filter: Optional predicate selecting which planned jobs to
                render; the collision check still covers every planned job

        Returns:
            RunSummary with one outcome per job, in job order

        Raises:
            ConfigurationError: Before dispatch, for any configuration problem
            OutputCollisionError: Before dispatch, if two jobs share a path
        """
        start = time.monotonic()
        self._begin_run()
        try:
            jobs = self.plan(template_ref, binding_set, formats)
        except (ConfigurationError, OutputCollisionError) as e:
            self._set_state(RunState.ABORTED)
            logger.error(f"Run aborted before dispatch: {e}")
            raise
        if job_filter is not None:
            jobs = [job for job in jobs if job_filter(job)]

        self._set_state(RunState.DISPATCHING)
        self._notify("on_run_started", jobs)
        outcomes = self._dispatch(jobs)

        self._set_state(RunState.COMPLETED)
        summary = RunSummary(
            template_ref=template_ref,
            output_root=self.output_root,
            dimensions=binding_set.dimension_names,
            outcomes=outcomes_in_order(outcomes),
            total_elapsed=time.monotonic() - start,
        )
        logger.info(
            f"Run completed: {summary.overall.value} "
            f"({summary.counts['success']}/{summary.total_jobs} succeeded)"
        )
        return summary

    def _dispatch(self, jobs: List[RenderJob]) -> List[RenderOutcome]:
        results: Dict[int, RenderOutcome] = {}
        futures: Dict[Future, RenderJob] = {}

        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="render") as executor:
            for job in jobs:
                futures[executor.submit(self._run_job, job)] = job

            self._set_state(RunState.COLLECTING)
            for future in as_completed(futures):
                job = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:  # pylint: disable=broad-except
                    logger.exception(f"Unexpected error while running {job.describe()}: {e}")
                    outcome = RenderOutcome(
                        job=job,
                        status=OutcomeStatus.FAILED,
                        error=RenderError(f"Internal error: {e}", original_error=e),
                    )
                results[job.index] = outcome

        return [results[job.index] for job in jobs]

    def _run_job(self, job: RenderJob) -> RenderOutcome:
        if self._cancel.is_cancelled():
            outcome = RenderOutcome.skipped(job)
        else:
            self._notify("on_job_started", job)
            outcome = self.invoker.invoke(job)
        self._notify("on_job_finished", outcome)
        return outcome

    def _notify(self, event: str, payload) -> None:
        for observer in self.observers:
            try:
                getattr(observer, event)(payload)
            except Exception as e:  # pylint: disable=broad-except
                logger.warning(f"Observer {type(observer).__name__}.{event} failed: {e}")

    def _begin_run(self) -> None:
        with self._lock:
            self._reset_if_finished()
            self._set_state(RunState.ENUMERATING)

    def _reset_if_finished(self) -> None:
        """Return to idle with a fresh cancellation token after a finished run."""
        if self.state in FINISHED_STATES:
            self._cancel = CancellationToken()
            self.state = RunState.IDLE

    def _set_state(self, state: RunState) -> None:
        with self._lock:
            logger.debug(f"Run state: {self.state.value} -> {state.value}")
            self.state = state
