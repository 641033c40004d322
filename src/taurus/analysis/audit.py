"""Audit traversal over the pruned dependency graph.

The walk starts at every entry point and follows call edges depth first. Each
group name maps to the node currently escorting it; a node marked `audited`
escorts its group for the subtree reached through its outgoing calls, and the
previous escort is put back when that subtree is finished. Reaching a node
marked `requires_audit` classifies the current path: audited when an escort is
active for the group, unaudited otherwise. An unaudited node is not descended
into.

The recursion is unrolled onto an explicit frame stack so long call chains do
not hit the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Protocol, Sequence

from taurus.analysis.depgraph import DepGraph, EdgeId, EdgeRef, NodeHandle
from taurus.analysis.summaries import without_type_params
from taurus.invariants import never
from taurus.schema import MarkedItem, Marking, SourceLocation

logger = logging.getLogger(__name__)


class MarkingSource(Protocol):
    def get(self, key: str) -> MarkedItem | None: ...


class VisitScope(str, Enum):
    ENTRY_POINT = "entry_point"
    RUN = "run"


@dataclass(frozen=True)
class ProgPoint:
    identifier: str
    loc: SourceLocation


@dataclass(frozen=True)
class AuditPath:
    steps: tuple[ProgPoint, ...]

    @classmethod
    def instantiate(cls, edges: Sequence[EdgeRef], graph: DepGraph) -> AuditPath:
        return cls(
            steps=tuple(
                ProgPoint(identifier=graph.name_of(edge.target), loc=edge.loc)
                for edge in edges
            )
        )

    def sort_key(self) -> tuple[tuple[str, str, int], ...]:
        return tuple((step.identifier, step.loc.file, step.loc.line) for step in self.steps)

    def __str__(self) -> str:
        return "".join(f"-> {step.identifier} at {step.loc}\n" for step in self.steps)


@dataclass(frozen=True)
class AuditedUse:
    escort: str
    path: AuditPath


@dataclass(frozen=True)
class AuditReport:
    audited: tuple[AuditedUse, ...]
    unaudited: tuple[AuditPath, ...]
    entry_points: tuple[str, ...] = ()


@dataclass
class _Frame:
    edge: EdgeRef
    # (group, escort before this frame) when the edge source took over a group.
    restore: tuple[str, NodeHandle | None] | None
    # None once the target was classified unaudited.
    children: Iterator[EdgeRef] | None


class AuditTraversal:
    def __init__(
        self,
        graph: DepGraph,
        markings: MarkingSource,
        *,
        visit_scope: VisitScope = VisitScope.ENTRY_POINT,
    ):
        self.graph = graph
        self.markings = markings
        self.visit_scope = visit_scope
        self._audited: list[AuditedUse] = []
        self._unaudited: list[AuditPath] = []
        self._auditor: dict[str, NodeHandle] = {}
        self._visited: set[EdgeId] = set()
        self._path: list[EdgeRef] = []

    def run(self, entry_points: Sequence[NodeHandle]) -> AuditReport:
        for entry in entry_points:
            logger.debug("start traversal from entry point %s", self.graph.name_of(entry))
            self._auditor = {}
            if self.visit_scope is VisitScope.ENTRY_POINT:
                self._visited = set()
            self._traverse_from(entry)
        return AuditReport(
            audited=tuple(self._audited),
            unaudited=tuple(self._unaudited),
            entry_points=tuple(self.graph.name_of(entry) for entry in entry_points),
        )

    def _marking_of(self, handle: NodeHandle) -> Marking | None:
        marked = self.markings.get(without_type_params(self.graph.name_of(handle)))
        if marked is None:
            return None
        return marked.marking

    def _traverse_from(self, entry: NodeHandle) -> None:
        root_edges = self.graph.out_edges(entry)
        stack: list[_Frame] = []
        while True:
            children = stack[-1].children if stack else root_edges
            edge = self._next_unvisited(children)
            if edge is not None:
                self._visited.add(edge.id)
                self._path.append(edge)
                stack.append(self._enter(edge))
                continue
            if not stack:
                break
            self._leave(stack.pop())
        if self._path:
            never("audit path not unwound", remaining=len(self._path))

    def _next_unvisited(self, children: Iterator[EdgeRef] | None) -> EdgeRef | None:
        if children is None:
            return None
        for edge in children:
            if edge.id not in self._visited:
                return edge
        return None

    def _enter(self, edge: EdgeRef) -> _Frame:
        restore: tuple[str, NodeHandle | None] | None = None
        parent_marking = self._marking_of(edge.source)
        if parent_marking is not None and parent_marking.audited is not None:
            group = parent_marking.audited
            restore = (group, self._auditor.get(group))
            self._auditor[group] = edge.source

        children: Iterator[EdgeRef] | None = self.graph.out_edges(edge.target)
        dependent_marking = self._marking_of(edge.target)
        if dependent_marking is not None and dependent_marking.requires_audit is not None:
            audit_path = AuditPath.instantiate(self._path, self.graph)
            escort = self._auditor.get(dependent_marking.requires_audit)
            if escort is not None:
                self._audited.append(
                    AuditedUse(escort=self.graph.name_of(escort), path=audit_path)
                )
            else:
                self._unaudited.append(audit_path)
                children = None
        return _Frame(edge=edge, restore=restore, children=children)

    def _leave(self, frame: _Frame) -> None:
        popped = self._path.pop()
        if popped is not frame.edge:
            never("audit path out of sync with frame stack", edge=popped.id)
        if frame.restore is None:
            return
        group, previous = frame.restore
        if previous is None:
            self._auditor.pop(group, None)
        else:
            self._auditor[group] = previous


def audit_depgraph(
    graph: DepGraph,
    entry_points: Sequence[NodeHandle],
    markings: MarkingSource,
    *,
    visit_scope: VisitScope = VisitScope.ENTRY_POINT,
) -> AuditReport:
    return AuditTraversal(graph, markings, visit_scope=visit_scope).run(entry_points)
