"""
Batch Render

Parameterized batch document rendering: one template, a space of parameter
bindings, one artifact per binding and per output format.

Architecture:
    Run Coordinator (coordinator.py)
        ↓
    BindingSet Enumerator (bindings.py) → Job Builder (jobs.py)
        → Output Layout Manager (layout.py)
        ↓
    Render Invoker (invoker.py) → Rendering engine (engines/)
        ↓
    RunSummary (summary.py)

Usage:
    >>> from batchrender import RunCoordinator, enumerate_bindings, StubEngine
    >>>
    >>> bindings = enumerate_bindings({"unit": ["A", "B"], "period": ["2023", "2024"]})
    >>> coordinator = RunCoordinator(StubEngine(), output_root="out", concurrency=2)
    >>> summary = coordinator.run("report.qmd", bindings, ["pdf"])
    >>> summary.overall
    <RunStatus.SUCCESS: 'success'>
"""

from batchrender.bindings import (
    Binding,
    BindingDimension,
    BindingSet,
    enumerate_bindings,
    explicit_bindings,
)
from batchrender.coordinator import LoggingObserver, RunCoordinator, RunObserver, RunState
from batchrender.engines import (
    CancellationToken,
    QuartoEngine,
    RenderEngine,
    RenderResult,
    StubEngine,
    StubRule,
    create_engine,
)
from batchrender.errors import (
    BatchRenderError,
    ConfigurationError,
    ErrorInfo,
    OutputCollisionError,
    RenderError,
    RenderTimeoutError,
    UnsupportedFormatError,
)
from batchrender.formats import OutputFormat, VALID_FORMATS
from batchrender.invoker import OutcomeStatus, RenderInvoker, RenderOutcome
from batchrender.jobs import JobBuilder, RenderJob
from batchrender.layout import OutputLayout, slugify
from batchrender.summary import (
    RetrySelection,
    RunStatus,
    RunSummary,
    format_report,
    load_failed_bindings,
    load_retry_selection,
    write_summary,
)

__version__ = "0.1.0"

__all__ = [
    # Bindings
    "Binding",
    "BindingDimension",
    "BindingSet",
    "enumerate_bindings",
    "explicit_bindings",

    # Jobs and layout
    "JobBuilder",
    "RenderJob",
    "OutputLayout",
    "OutputFormat",
    "VALID_FORMATS",
    "slugify",

    # Engines
    "CancellationToken",
    "QuartoEngine",
    "RenderEngine",
    "RenderResult",
    "StubEngine",
    "StubRule",
    "create_engine",

    # Execution
    "OutcomeStatus",
    "RenderInvoker",
    "RenderOutcome",
    "LoggingObserver",
    "RunCoordinator",
    "RunObserver",
    "RunState",

    # Summary
    "RunStatus",
    "RunSummary",
    "format_report",
    "RetrySelection",
    "load_failed_bindings",
    "load_retry_selection",
    "write_summary",

    # Errors
    "BatchRenderError",
    "ConfigurationError",
    "ErrorInfo",
    "OutputCollisionError",
    "RenderError",
    "RenderTimeoutError",
    "UnsupportedFormatError",
]
