from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

REPORT_VERSION = 1


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


class Marking(BaseModel):
    model_config = ConfigDict(frozen=True)

    requires_audit: Optional[str] = None
    audited: Optional[str] = None
    is_entry_point: bool = False

    def annotated(self) -> bool:
        return (
            self.is_entry_point
            or self.requires_audit is not None
            or self.audited is not None
        )

    def merged_with(self, other: Marking) -> Marking:
        """Fold a later marking for the same identifier into this one.

        Groups present on `other` replace ours; the entry-point flag sticks
        once either side sets it.
        """
        return Marking(
            requires_audit=(
                other.requires_audit
                if other.requires_audit is not None
                else self.requires_audit
            ),
            audited=other.audited if other.audited is not None else self.audited,
            is_entry_point=self.is_entry_point or other.is_entry_point,
        )


class MarkedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    marking: Marking
    src_loc: SourceLocation


class CallEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    callee: str
    is_lang_item: bool = False
    type_params: List[str] = []
    src_loc: SourceLocation

    def full_callee_name(self) -> str:
        if "<" in self.callee:
            return self.callee
        return self.callee + "<" + "".join(f"{param}," for param in self.type_params) + ">"


class MarkingRecordDTO(BaseModel):
    name: str
    marking: Marking
    src_loc: SourceLocation


class CallEdgeRecordDTO(BaseModel):
    caller: str
    edges: List[CallEdge] = []


class AuditStepDTO(BaseModel):
    identifier: str
    location: SourceLocation


class AuditedEntryDTO(BaseModel):
    escort: str
    path: List[AuditStepDTO]


class UnauditedEntryDTO(BaseModel):
    path: List[AuditStepDTO]


class AuditSummaryDTO(BaseModel):
    entry_points: int
    audited: int
    unaudited: int


class AuditReportDTO(BaseModel):
    version: int = REPORT_VERSION
    summary: AuditSummaryDTO
    audited: List[AuditedEntryDTO] = []
    unaudited: List[UnauditedEntryDTO] = []
