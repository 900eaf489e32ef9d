"""
RunSummaryV1 Schema

Machine-readable record of one batch run. Written by ``batch-render run
--summary`` and read back by ``--retry-failed`` to re-render only the jobs
that did not succeed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class JobRecord(BaseModel):
    """One job's outcome.

    Attributes:
        index: Position in the run's deterministic order
        binding: Per-dimension values
        format: Output format
        status: success, failed or skipped
        output_path: Artifact path relative to the output root
        error: Error record (failed jobs only)
        elapsed_seconds: Wall-clock time spent on the job
    """
    index: int = Field(..., ge=0)
    binding: Dict[str, str]
    format: str
    status: Literal["success", "failed", "skipped"]
    output_path: str
    error: Optional[Dict[str, Any]] = None
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


class RunSummaryV1(BaseModel):
    """Summary of a whole run."""
    summary_version: Literal["v1"] = "v1"
    template: str
    overall: Literal["success", "partial_success", "failed", "cancelled"]
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    output_root: str
    dimensions: List[str]
    counts: Dict[str, int]
    total_elapsed_seconds: float = Field(default=0.0, ge=0.0)
    jobs: List[JobRecord]

    model_config = {
        "json_schema_extra": {
            "example": {
                "summary_version": "v1",
                "template": "reports/unit_report.qmd",
                "overall": "partial_success",
                "output_root": "out",
                "dimensions": ["unit", "period"],
                "counts": {"success": 3, "failed": 1, "skipped": 0},
                "total_elapsed_seconds": 42.1,
                "jobs": [],
            }
        }
    }
