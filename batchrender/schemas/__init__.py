from batchrender.schemas.summary_v1 import JobRecord, RunSummaryV1

__all__ = ["JobRecord", "RunSummaryV1"]
