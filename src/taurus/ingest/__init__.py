from .records import (
    IngestSummary,
    ingest_records,
    load_calledge_records,
    load_marking_records,
)

__all__ = [
    "IngestSummary",
    "ingest_records",
    "load_calledge_records",
    "load_marking_records",
]
