"""
Run Summary

Aggregates the RenderOutcomes of one run into a RunSummary, formats it for
display, serializes it to JSON, and reads a prior summary back to select the
jobs that need re-rendering.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Sequence, Set, Tuple

from pydantic import ValidationError

from batchrender.errors import ConfigurationError, ErrorInfo
from batchrender.invoker import OutcomeStatus, RenderOutcome
from batchrender.jobs import RenderJob
from batchrender.schemas.summary_v1 import JobRecord, RunSummaryV1


logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Overall status of a completed run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RunSummary:
    """Aggregate over all outcomes of one run.

    Outcomes are kept in the run's deterministic job order, regardless of
    the order in which jobs actually completed.

    Attributes:
        template_ref: Template rendered in this run
        output_root: Root of the output hierarchy
        dimensions: Declared dimension names
        outcomes: One outcome per job, in job order
        total_elapsed: Wall-clock seconds for the whole run
    """
    template_ref: str
    output_root: Path
    dimensions: List[str]
    outcomes: List[RenderOutcome] = field(default_factory=list)
    total_elapsed: float = 0.0

    @property
    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def total_jobs(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> List[RenderOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.SUCCESS]

    @property
    def failures(self) -> List[RenderOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def skipped(self) -> List[RenderOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.SKIPPED]

    @property
    def overall(self) -> RunStatus:
        """Success only if every job succeeded; never green with a failure."""
        if self.skipped:
            return RunStatus.CANCELLED
        if not self.failures:
            return RunStatus.SUCCESS
        if self.succeeded:
            return RunStatus.PARTIAL_SUCCESS
        return RunStatus.FAILED

    @property
    def is_success(self) -> bool:
        return self.overall == RunStatus.SUCCESS

    def to_model(self) -> RunSummaryV1:
        jobs = []
        for outcome in self.outcomes:
            job = outcome.job
            jobs.append(
                JobRecord(
                    index=job.index,
                    binding=job.binding.as_dict(),
                    format=job.output_format,
                    status=outcome.status.value,
                    output_path=str(job.output_path),
                    error=ErrorInfo.from_exception(outcome.error).to_dict() if outcome.error else None,
                    elapsed_seconds=round(outcome.elapsed, 3),
                )
            )
        return RunSummaryV1(
            template=self.template_ref,
            overall=self.overall.value,
            output_root=str(self.output_root),
            dimensions=list(self.dimensions),
            counts=self.counts,
            total_elapsed_seconds=round(self.total_elapsed, 3),
            jobs=jobs,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return self.to_model().model_dump(mode="json")


def write_summary(summary: RunSummary, path: str) -> Path:
    """Write a summary as JSON, creating parent directories if needed."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(summary.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Run summary written to: {target}")
    return target


def format_report(summary: RunSummary) -> str:
    """Format a run summary for display.

    Args:
        summary: Run summary

    Returns:
        Formatted multi-line string
    """
    counts = summary.counts
    lines = [
        "=" * 60,
        "Batch Render Report",
        "=" * 60,
        f"\nTemplate: {summary.template_ref}",
        f"Output root: {summary.output_root}",
        f"Overall: {summary.overall.value.upper()}",
        f"\nTotal jobs: {summary.total_jobs}",
        f"Successful: {counts['success']}",
        f"Failed: {counts['failed']}",
        f"Skipped: {counts['skipped']}",
        f"Total duration: {summary.total_elapsed:.1f}s",
    ]

    if summary.failures:
        lines.append("\nFailed jobs:")
        for outcome in summary.failures:
            lines.append(f"  - {outcome.job.describe()}")
            lines.append(f"    Error: {type(outcome.error).__name__}: {outcome.error}")

    if summary.skipped:
        lines.append("\nSkipped jobs (run cancelled):")
        for outcome in summary.skipped:
            lines.append(f"  - {outcome.job.describe()}")

    lines.append("=" * 60)
    return "\n".join(lines)


def load_summary(path: str) -> RunSummaryV1:
    """Load and validate a previously written summary.

    Raises:
        ConfigurationError: If the file is missing or not a valid summary
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Summary file not found: {path}", field_name="retry_failed") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Summary file is not valid JSON: {e}", field_name="retry_failed") from e

    try:
        return RunSummaryV1.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid run summary {path}: {e}", field_name="retry_failed") from e


@dataclass
class RetrySelection:
    """Jobs of a prior run that did not succeed.

    Attributes:
        dimensions: Dimension names of the prior run
        assignments: Failed or skipped bindings, in original order
        formats: Formats with at least one failed or skipped job
        jobs: The exact (binding, format) pairs to re-render
    """
    dimensions: List[str]
    assignments: List[Dict[str, str]] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    jobs: Set[Tuple[FrozenSet[Tuple[str, str]], str]] = field(default_factory=set)

    def includes(self, job: RenderJob) -> bool:
        return (frozenset(job.binding.as_dict().items()), job.output_format) in self.jobs


def load_retry_selection(path: str) -> RetrySelection:
    """Select the jobs that did not succeed in a prior run.

    Args:
        path: Path to a RunSummaryV1 JSON file
    """
    prior = load_summary(path)
    selection = RetrySelection(dimensions=prior.dimensions)
    for record in prior.jobs:
        if record.status == "success":
            continue
        if record.binding not in selection.assignments:
            selection.assignments.append(record.binding)
        if record.format not in selection.formats:
            selection.formats.append(record.format)
        selection.jobs.add((frozenset(record.binding.items()), record.format))
    return selection


def load_failed_bindings(path: str) -> Tuple[List[str], List[Dict[str, str]], List[str]]:
    """Select the bindings that did not succeed in a prior run.

    Args:
        path: Path to a RunSummaryV1 JSON file

    Returns:
        (dimension names, explicit assignments in original order, formats
        that had at least one failed or skipped job)
    """
    selection = load_retry_selection(path)
    return selection.dimensions, selection.assignments, selection.formats


def outcomes_in_order(outcomes: Sequence[RenderOutcome]) -> List[RenderOutcome]:
    return sorted(outcomes, key=lambda o: o.job.index)
