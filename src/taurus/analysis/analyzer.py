from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from taurus.analysis.audit import AuditReport, VisitScope, audit_depgraph
from taurus.analysis.depgraph import DepGraph, NodeHandle, get_depgraph
from taurus.analysis.entry_points import select_entry_points
from taurus.analysis.report_rendering import render_dot
from taurus.analysis.summaries import open_calledge_store, open_marking_store

logger = logging.getLogger(__name__)

DEFAULT_DEPSTORE = Path("target/debug/deps/taurus.depstore")


@dataclass(frozen=True)
class DepGraphView:
    graph: DepGraph
    entry_points: tuple[NodeHandle, ...]


class TaurusAnalyzer:
    """Read-only analysis over the marking and call-edge tables of a depstore."""

    def __init__(
        self,
        depstore: Path = DEFAULT_DEPSTORE,
        *,
        visit_scope: VisitScope = VisitScope.ENTRY_POINT,
    ):
        self.depstore = depstore
        self.visit_scope = visit_scope
        self.marking_db = open_marking_store(depstore)
        try:
            self.calledge_db = open_calledge_store(depstore)
        except Exception:
            self.marking_db.close()
            raise

    def get_depgraph(self) -> DepGraphView:
        graph, _pruned = get_depgraph(self.calledge_db.items())
        entry_points = select_entry_points(graph, self.marking_db)
        return DepGraphView(graph=graph, entry_points=tuple(entry_points))

    def audit(self) -> AuditReport:
        view = self.get_depgraph()
        report = audit_depgraph(
            view.graph,
            view.entry_points,
            self.marking_db,
            visit_scope=self.visit_scope,
        )
        logger.debug(
            "audit finished: %d unaudited, %d audited",
            len(report.unaudited),
            len(report.audited),
        )
        return report

    def get_depgraph_dot(self) -> str:
        return render_dot(self.get_depgraph().graph)

    def close(self) -> None:
        self.marking_db.close()
        self.calledge_db.close()

    def __enter__(self) -> TaurusAnalyzer:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
