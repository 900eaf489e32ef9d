"""
Render Invoker

Executes one RenderJob by delegating to the rendering engine, with
isolation: whatever goes wrong inside the engine (exception, non-zero exit,
missing artifact, timeout) is converted into a failed RenderOutcome and
never propagates to sibling jobs.

The engine call runs on a watchdog thread bounded by the per-job timeout.
When the timeout expires the job's cancellation token is set, which tells
the engine to terminate its underlying process. The invoker does not
return until the engine call has actually ended, so a job never gives up
its worker while its render is still running; a warning is logged when
cleanup takes longer than the grace period.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from batchrender.engines.base import CancellationToken, RenderEngine, RenderResult
from batchrender.errors import RenderError, RenderTimeoutError
from batchrender.jobs import RenderJob


logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Per-job result status."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RenderOutcome:
    """Outcome of one render job.

    Attributes:
        job: The job that was executed
        status: success, failed or skipped
        artifact_path: Absolute artifact path (on success)
        error: RenderError or RenderTimeoutError (on failure)
        elapsed: Wall-clock seconds spent on the job
    """
    job: RenderJob
    status: OutcomeStatus
    artifact_path: Optional[Path] = None
    error: Optional[RenderError] = None
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def skipped(cls, job: RenderJob) -> "RenderOutcome":
        return cls(job=job, status=OutcomeStatus.SKIPPED)


class _EngineCall(threading.Thread):
    """Watchdog thread running a single engine call."""

    def __init__(self, engine: RenderEngine, job: RenderJob, destination: Path, token: CancellationToken):
        super().__init__(name=f"render-job-{job.index}", daemon=True)
        self.engine = engine
        self.job = job
        self.destination = destination
        self.token = token
        self.result: Optional[RenderResult] = None
        self.exception: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self.result = self.engine.render(
                self.job.template_ref,
                self.job.binding.parameters(),
                self.job.output_format,
                self.destination,
                self.token,
            )
        except Exception as e:  # pylint: disable=broad-except
            self.exception = e


class RenderInvoker:
    """Executes render jobs against one engine.

    Example:
        >>> invoker = RenderInvoker(StubEngine(), output_root=Path("reports"), timeout=60)
        >>> outcome = invoker.invoke(job)
        >>> outcome.status
        <OutcomeStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        engine: RenderEngine,
        output_root: Path,
        timeout: float = 600.0,
        cleanup_grace: float = 10.0,
    ):
        """Initialize the invoker.

        Args:
            engine: Rendering engine
            output_root: Root of the output hierarchy
            timeout: Per-job time budget in seconds
            cleanup_grace: Seconds after a timeout cancellation before a
                slow engine shutdown is logged as a warning
        """
        self.engine = engine
        self.output_root = Path(output_root)
        self.timeout = timeout
        self.cleanup_grace = cleanup_grace

    def destination_for(self, job: RenderJob) -> Path:
        return self.output_root.joinpath(*job.output_path.parts)

    def invoke(self, job: RenderJob) -> RenderOutcome:
        """Execute one job and return its outcome. Never raises for engine failures."""
        start = time.monotonic()
        destination = self.destination_for(job)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._failed(job, start, RenderError(f"Cannot create output directory: {e}", original_error=e))

        token = CancellationToken()
        call = _EngineCall(self.engine, job, destination, token)
        call.start()
        call.join(self.timeout)

        if call.is_alive():
            token.cancel()
            call.join(self.cleanup_grace)
            if call.is_alive():
                logger.warning(
                    f"Engine did not stop within {self.cleanup_grace}s for {job.describe()}; "
                    f"holding the worker until it does"
                )
                # Keep the worker slot until the engine call ends
                call.join()
            error = RenderTimeoutError(f"Render exceeded {self.timeout}s timeout", timeout=self.timeout)
            return self._failed(job, start, error)

        if call.exception is not None:
            if isinstance(call.exception, RenderError):
                error = call.exception
            else:
                error = RenderError(
                    f"Engine raised {type(call.exception).__name__}: {call.exception}",
                    original_error=call.exception,
                )
            return self._failed(job, start, error)

        result = call.result
        if result is None or not result.success:
            message = (result.error if result else None) or "engine reported failure"
            error = RenderError(
                message,
                details=result.log if result and result.log else None,
                exit_code=result.exit_code if result else None,
            )
            return self._failed(job, start, error)

        if not destination.is_file():
            return self._failed(
                job, start, RenderError(f"Engine reported success but no artifact exists at {destination}")
            )

        elapsed = time.monotonic() - start
        logger.debug(f"Rendered {job.describe()} in {elapsed:.2f}s")
        return RenderOutcome(job=job, status=OutcomeStatus.SUCCESS, artifact_path=destination, elapsed=elapsed)

    def _failed(self, job: RenderJob, start: float, error: RenderError) -> RenderOutcome:
        elapsed = time.monotonic() - start
        logger.debug(f"Render failed for {job.describe()}: {error}")
        return RenderOutcome(job=job, status=OutcomeStatus.FAILED, error=error, elapsed=elapsed)
