"""
Rendering Engine Protocol

Defines the RenderEngine protocol for the external document-rendering
engine. The batch pipeline treats the engine as a capability boundary:
one ``render`` call per job, plus metadata and requirement checks.

Engines must honour the cancellation token passed to ``render``: when the
Render Invoker's per-job timeout expires it sets the token, and the engine
is expected to terminate any process or task it started.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Tuple, runtime_checkable


class CancellationToken:
    """Thread-safe cooperative cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or the timeout elapses.

        Returns:
            True if cancellation was requested
        """
        return self._event.wait(timeout)


@dataclass
class RenderResult:
    """Result of one engine call.

    Attributes:
        artifact_path: Path of the written artifact (on success)
        success: Whether rendering succeeded
        error: Engine error message (on failure)
        exit_code: Engine process exit code, if a process was involved
        log: Captured engine output
    """
    artifact_path: Optional[Path]
    success: bool
    error: Optional[str] = None
    exit_code: Optional[int] = None
    log: str = ""


@runtime_checkable
class RenderEngine(Protocol):
    """
    Protocol for rendering engine implementations.

    Implementations must provide:
    - Rendering one template with one parameter context to one format
    - Engine metadata reporting
    - Requirement validation

    Example:
        >>> engine = QuartoEngine()
        >>> errors = engine.validate_requirements()
        >>> if not errors:
        ...     result = engine.render("report.qmd", {"unit": "A"}, "pdf",
        ...                            Path("out/a/a.pdf"), CancellationToken())
    """

    def render(
        self,
        template_ref: str,
        parameters: Mapping[str, Any],
        output_format: str,
        destination: Path,
        cancel_token: CancellationToken,
    ) -> RenderResult:
        """
        Render the template for one parameter binding.

        Args:
            template_ref: Opaque template identifier (path or handle)
            parameters: Binding values plus fixed parameters
            output_format: Registered output format name
            destination: Absolute path the artifact must be written to; its
                parent directory already exists
            cancel_token: Set by the caller when the job must stop

        Returns:
            RenderResult describing the artifact or the failure. Engines may
            also raise; the invoker converts any exception into a failure.
        """
        ...

    def get_engine_info(self) -> Tuple[str, str]:
        """Return (engine_name, version)."""
        ...

    def validate_requirements(self) -> List[str]:
        """Return a list of unmet requirements (empty when ready)."""
        ...
