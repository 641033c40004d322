"""JSON-lines record ingest into a depstore.

This is the write-side boundary the extraction step targets: one marking or
call-edge record per line. Lines are validated against the record schema
before anything is written, so a bad file leaves the store untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, TypeVar

from pydantic import BaseModel, ValidationError

from taurus.analysis.summaries import open_calledge_store, open_marking_store
from taurus.exceptions import InvalidRecordError
from taurus.runtime.file_lock import exclusive_depstore_lock
from taurus.runtime.json_io import iter_jsonl, load_json_object_text
from taurus.schema import CallEdge, CallEdgeRecordDTO, MarkedItem, MarkingRecordDTO

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class IngestSummary:
    markings: int
    callers: int
    call_edges: int


def _iter_records(path: Path, model: type[RecordT]) -> Iterator[tuple[int, RecordT]]:
    source = str(path)
    try:
        lines = list(iter_jsonl(path))
    except (OSError, UnicodeError) as exc:
        raise InvalidRecordError(source, 0, f"cannot read records: {exc}") from exc
    for line_no, text in lines:
        payload = load_json_object_text(text)
        if payload is None:
            raise InvalidRecordError(source, line_no, "record is not a JSON object")
        try:
            yield line_no, model.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRecordError(source, line_no, str(exc)) from exc


def load_marking_records(path: Path) -> dict[str, MarkedItem]:
    """Read marking lines, folding repeated names into a single marking.

    An entry point has to be a concrete, non-generic function, so a name that
    still carries a type-argument suffix is rejected.
    """
    items: dict[str, MarkedItem] = {}
    for line_no, record in _iter_records(path, MarkingRecordDTO):
        if not record.marking.annotated():
            continue
        if record.marking.is_entry_point and "<" in record.name:
            raise InvalidRecordError(
                str(path),
                line_no,
                f"entry point {record.name!r} must be a non-generic function",
            )
        existing = items.get(record.name)
        if existing is None:
            items[record.name] = MarkedItem(marking=record.marking, src_loc=record.src_loc)
        else:
            items[record.name] = MarkedItem(
                marking=existing.marking.merged_with(record.marking),
                src_loc=existing.src_loc,
            )
    return items


def load_calledge_records(path: Path) -> dict[str, list[CallEdge]]:
    records: dict[str, list[CallEdge]] = {}
    for _line_no, record in _iter_records(path, CallEdgeRecordDTO):
        records[record.caller] = list(record.edges)
    return records


def ingest_records(
    depstore: Path,
    *,
    markings_path: Path | None = None,
    calledges_path: Path | None = None,
) -> IngestSummary:
    markings = load_marking_records(markings_path) if markings_path is not None else {}
    calledges = load_calledge_records(calledges_path) if calledges_path is not None else {}
    with exclusive_depstore_lock(depstore):
        if markings:
            with open_marking_store(depstore) as marking_db:
                marking_db.insert_many(markings.items())
        if calledges:
            with open_calledge_store(depstore) as calledge_db:
                calledge_db.insert_many(calledges.items())
    summary = IngestSummary(
        markings=len(markings),
        callers=len(calledges),
        call_edges=sum(len(edges) for edges in calledges.values()),
    )
    logger.info(
        "ingested %d marking(s), %d caller(s), %d call edge(s) into %s",
        summary.markings,
        summary.callers,
        summary.call_edges,
        depstore,
    )
    return summary
