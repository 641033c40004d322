"""Dependency graph construction and lang-item pruning.

Nodes are integer handles allocated in first-seen order; each carries the
identifier it stands for under the `name` attribute. Edges are keyed
multigraph edges carrying the call-site `SourceLocation` under `loc`, one per
call site, never deduplicated. Handles stay valid after removals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

import networkx as nx

from taurus.invariants import never
from taurus.order_contract import sort_once
from taurus.schema import CallEdge, SourceLocation

logger = logging.getLogger(__name__)

NodeHandle = int
EdgeId = tuple[int, int, int]


@dataclass(frozen=True)
class EdgeRef:
    source: NodeHandle
    target: NodeHandle
    key: int
    loc: SourceLocation

    @property
    def id(self) -> EdgeId:
        return (self.source, self.target, self.key)


@dataclass
class DepGraph:
    graph: nx.MultiDiGraph = field(default_factory=nx.MultiDiGraph)
    handles_by_name: dict[str, NodeHandle] = field(default_factory=dict)
    _next_handle: int = 0

    def intern(self, name: str) -> NodeHandle:
        handle = self.handles_by_name.get(name)
        if handle is not None:
            return handle
        handle = self._next_handle
        self._next_handle += 1
        self.graph.add_node(handle, name=name)
        self.handles_by_name[name] = handle
        return handle

    def add_edge(self, caller: NodeHandle, callee: NodeHandle, loc: SourceLocation) -> EdgeId:
        key = self.graph.add_edge(caller, callee, loc=loc)
        return (caller, callee, key)

    def name_of(self, handle: NodeHandle) -> str:
        if handle not in self.graph:
            never("unknown dependency graph node", handle=handle)
        return str(self.graph.nodes[handle]["name"])

    def handle_of(self, name: str) -> NodeHandle | None:
        handle = self.handles_by_name.get(name)
        if handle is None or handle not in self.graph:
            return None
        return handle

    def nodes(self) -> Iterator[NodeHandle]:
        return iter(self.graph.nodes)

    def out_edges(self, handle: NodeHandle) -> Iterator[EdgeRef]:
        for source, target, key, loc in self.graph.out_edges(handle, keys=True, data="loc"):
            yield EdgeRef(source=source, target=target, key=key, loc=loc)

    def in_edges(self, handle: NodeHandle) -> Iterator[EdgeRef]:
        for source, target, key, loc in self.graph.in_edges(handle, keys=True, data="loc"):
            yield EdgeRef(source=source, target=target, key=key, loc=loc)

    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    def remove_edges(self, edge_ids: Iterable[EdgeId]) -> None:
        self.graph.remove_edges_from(list(edge_ids))

    def remove_nodes(self, handles: Iterable[NodeHandle]) -> None:
        doomed = [handle for handle in handles if handle in self.graph]
        for handle in doomed:
            self.handles_by_name.pop(self.name_of(handle), None)
        self.graph.remove_nodes_from(doomed)


@dataclass(frozen=True)
class PruneResult:
    lang_item_roots: tuple[str, ...]
    removed_nodes: tuple[str, ...]
    removed_edges: int


def build_depgraph(
    records: Iterable[tuple[str, list[CallEdge]]],
) -> tuple[DepGraph, set[NodeHandle]]:
    """Build the unpruned graph and collect its lang-item roots.

    A caller is a lang-item root as soon as one of its call edges comes from
    compiler-synthesized code.
    """
    graph = DepGraph()
    lang_item_roots: set[NodeHandle] = set()
    for caller, call_edges in records:
        caller_handle = graph.intern(caller)
        for call_edge in call_edges:
            callee_handle = graph.intern(call_edge.full_callee_name())
            graph.add_edge(caller_handle, callee_handle, call_edge.src_loc)
            if call_edge.is_lang_item:
                lang_item_roots.add(caller_handle)
    logger.debug(
        "built dependency graph: %d nodes, %d edges, %d lang item roots",
        graph.node_count(),
        graph.edge_count(),
        len(lang_item_roots),
    )
    return graph, lang_item_roots


def prune_lang_items(graph: DepGraph, lang_item_roots: set[NodeHandle]) -> PruneResult:
    """Remove the parts of the graph that only synthesized code reaches.

    A node downstream of the pruning frontier joins it only once every one of
    its incoming edges has been marked for pruning, so a node with a single
    surviving non-synthesized caller is kept.
    """
    root_names = tuple(
        sort_once(
            (graph.name_of(handle) for handle in lang_item_roots),
            source="depgraph.prune_lang_items.roots",
        )
    )
    edges_to_prune: set[EdgeId] = set()
    nodes_to_prune: set[NodeHandle] = set(lang_item_roots)
    worklist: list[NodeHandle] = sort_once(
        lang_item_roots,
        source="depgraph.prune_lang_items.worklist",
    )
    while worklist:
        nodes_to_inspect: set[NodeHandle] = set()
        for node in worklist:
            for out_edge in graph.out_edges(node):
                nodes_to_inspect.add(out_edge.target)
                edges_to_prune.add(out_edge.id)
        worklist = []
        for candidate in sort_once(
            nodes_to_inspect,
            source="depgraph.prune_lang_items.candidates",
        ):
            if candidate in nodes_to_prune:
                continue
            if all(edge.id in edges_to_prune for edge in graph.in_edges(candidate)):
                nodes_to_prune.add(candidate)
                worklist.append(candidate)

    removed_names = tuple(
        sort_once(
            (graph.name_of(handle) for handle in nodes_to_prune),
            source="depgraph.prune_lang_items.removed",
        )
    )
    edges_before = graph.edge_count()
    graph.remove_edges(edges_to_prune)
    graph.remove_nodes(nodes_to_prune)
    result = PruneResult(
        lang_item_roots=root_names,
        removed_nodes=removed_names,
        removed_edges=edges_before - graph.edge_count(),
    )
    logger.debug(
        "pruned %d node(s) and %d edge(s) reachable only from lang items",
        len(result.removed_nodes),
        result.removed_edges,
    )
    return result


def get_depgraph(
    records: Iterable[tuple[str, list[CallEdge]]],
) -> tuple[DepGraph, PruneResult]:
    graph, lang_item_roots = build_depgraph(records)
    return graph, prune_lang_items(graph, lang_item_roots)
