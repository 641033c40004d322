from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from taurus.analysis.audit import AuditedUse, AuditPath, AuditReport
from taurus.analysis.depgraph import DepGraph
from taurus.order_contract import sort_once
from taurus.runtime.json_io import dump_json_pretty
from taurus.schema import (
    AuditedEntryDTO,
    AuditReportDTO,
    AuditStepDTO,
    AuditSummaryDTO,
    UnauditedEntryDTO,
)


class DiagnosticLevel(str, Enum):
    WARNING = "warning"
    NOTE = "note"


@dataclass(frozen=True)
class Diagnostic:
    level: DiagnosticLevel
    message: str

    def render(self) -> str:
        return f"{self.level.value}: {self.message}"


def ordered_unaudited(report: AuditReport) -> list[AuditPath]:
    return sort_once(
        report.unaudited,
        source="report_rendering.ordered_unaudited",
        key=lambda path: path.sort_key(),
    )


def ordered_audited(report: AuditReport) -> list[AuditedUse]:
    return sort_once(
        report.audited,
        source="report_rendering.ordered_audited",
        key=lambda use: (use.escort, use.path.sort_key()),
    )


def report_diagnostics(report: AuditReport) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for path in ordered_unaudited(report):
        diagnostics.append(
            Diagnostic(
                level=DiagnosticLevel.WARNING,
                message=f"Unaudited use of insecure functions:\n{path}",
            )
        )
    for use in ordered_audited(report):
        diagnostics.append(
            Diagnostic(
                level=DiagnosticLevel.NOTE,
                message=f"Audited use of insecure functions:\n   {use.escort}\n{use.path}",
            )
        )
    return diagnostics


def summary_line(report: AuditReport) -> str:
    return (
        f"Audit completed: {len(report.unaudited)} unaudited, "
        f"{len(report.audited)} audited, "
        f"{len(report.entry_points)} entry point(s)"
    )


def render_text(report: AuditReport) -> str:
    blocks = [diagnostic.render() for diagnostic in report_diagnostics(report)]
    blocks.append(summary_line(report) + "\n")
    return "\n".join(blocks)


def _steps_payload(path: AuditPath) -> list[AuditStepDTO]:
    return [
        AuditStepDTO(identifier=step.identifier, location=step.loc)
        for step in path.steps
    ]


def report_payload(report: AuditReport) -> AuditReportDTO:
    return AuditReportDTO(
        summary=AuditSummaryDTO(
            entry_points=len(report.entry_points),
            audited=len(report.audited),
            unaudited=len(report.unaudited),
        ),
        audited=[
            AuditedEntryDTO(escort=use.escort, path=_steps_payload(use.path))
            for use in ordered_audited(report)
        ],
        unaudited=[
            UnauditedEntryDTO(path=_steps_payload(path))
            for path in ordered_unaudited(report)
        ],
    )


def render_json(report: AuditReport) -> str:
    return dump_json_pretty(report_payload(report).model_dump(mode="json")) + "\n"


def _dot_quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_dot(graph: DepGraph) -> str:
    """Render nodes and edges of the graph in DOT; call sites are left out."""
    lines = ["digraph {"]
    for handle in graph.nodes():
        lines.append(f"    {handle} [ label = {_dot_quote(graph.name_of(handle))} ]")
    for handle in graph.nodes():
        for edge in graph.out_edges(handle):
            lines.append(f"    {edge.source} -> {edge.target} [ ]")
    lines.append("}")
    return "\n".join(lines) + "\n"
