"""
Batch Render Error Hierarchy

Defines all custom exceptions used by the batch rendering pipeline.

Error Categories:
- Configuration Errors: empty dimension, missing/duplicate dimension in an
  explicit binding, unsupported format (fatal, raised before dispatch)
- Collision Errors: two jobs resolve to the same output path (fatal, raised
  before dispatch)
- Render Errors: the engine failed for one binding/format (isolated to the job)
- Timeout Errors: one job exceeded its time budget (isolated to the job)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


class BatchRenderError(Exception):
    """Base exception for all batch render errors."""
    pass


class ConfigurationError(BatchRenderError):
    """Malformed run configuration.

    Raised when:
    - A dimension declares zero values or duplicate values
    - An explicit binding misses a dimension, names an unknown one, or
      assigns the same dimension twice
    - The configuration file cannot be parsed or fails validation
    - An unknown engine is requested

    Attributes:
        field_name: Configuration field that failed (if applicable)
    """

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


class UnsupportedFormatError(ConfigurationError):
    """Requested output format is not in the registered set.

    Attributes:
        output_format: The rejected format name
        supported: Registered format names
    """

    def __init__(self, output_format: str, supported: Sequence[str]):
        super().__init__(
            f"Unsupported output format '{output_format}'. "
            f"Valid options: {', '.join(supported)}",
            field_name="formats",
        )
        self.output_format = output_format
        self.supported = list(supported)


class OutputCollisionError(BatchRenderError):
    """Two jobs in the same run would write the same output path.

    Attributes:
        path: The contested relative output path
        bindings: Descriptions of the colliding (binding, format) pairs
    """

    def __init__(self, path: str, bindings: List[str]):
        super().__init__(
            f"Output path collision at '{path}' between: {'; '.join(bindings)}"
        )
        self.path = path
        self.bindings = bindings


class RenderError(BatchRenderError):
    """The rendering engine failed for one job.

    Never raised past the Render Invoker: it is attached to the job's
    RenderOutcome instead.

    Attributes:
        details: Engine output or exception text
        exit_code: Engine process exit code (if a process was involved)
        original_error: The underlying exception (if any)
    """

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        exit_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.details = details
        self.exit_code = exit_code
        self.original_error = original_error


class RenderTimeoutError(RenderError):
    """One job exceeded its per-job time budget.

    Attributes:
        timeout: The budget in seconds
    """

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


@dataclass
class ErrorInfo:
    """Structured error information for user-facing reporting.

    Attributes:
        error_type: Exception class name (e.g., "RenderTimeoutError")
        message: Human-readable error message
        details: Additional context (path, exit code, etc.)
        suggestion: Suggested action for the user
    """
    error_type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    @classmethod
    def from_exception(cls, error: Exception) -> "ErrorInfo":
        """Create ErrorInfo from an exception.

        Args:
            error: Exception to convert

        Returns:
            ErrorInfo with details extracted from the exception
        """
        details: Dict[str, Any] = {}
        suggestion = ""

        if isinstance(error, UnsupportedFormatError):
            details["output_format"] = error.output_format
            details["supported"] = error.supported
            suggestion = "Use one of the registered output formats."

        elif isinstance(error, ConfigurationError):
            if error.field_name:
                details["field_name"] = error.field_name
            suggestion = "Check the run configuration file and CLI options."

        elif isinstance(error, OutputCollisionError):
            details["path"] = error.path
            details["bindings"] = error.bindings
            suggestion = (
                "Two dimension values slugify to the same token. Rename one "
                "of them or set a distinguishing filename_template."
            )

        elif isinstance(error, RenderTimeoutError):
            details["timeout"] = error.timeout
            suggestion = "Increase --timeout or check the template for slow data access."

        elif isinstance(error, RenderError):
            if error.exit_code is not None:
                details["exit_code"] = error.exit_code
            if error.details:
                details["engine_output"] = error.details
            suggestion = "Inspect the engine output for this binding."

        return cls(
            error_type=type(error).__name__,
            message=str(error),
            details=details,
            suggestion=suggestion,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d: Dict[str, Any] = {"error_type": self.error_type, "message": self.message}
        if self.details:
            d["details"] = self.details
        if self.suggestion:
            d["suggestion"] = self.suggestion
        return d
