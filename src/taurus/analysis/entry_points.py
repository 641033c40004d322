from __future__ import annotations

import logging

from taurus.analysis.depgraph import DepGraph, NodeHandle
from taurus.analysis.summaries import PersistentSummaryStore, without_type_params
from taurus.order_contract import sort_once
from taurus.schema import MarkedItem

logger = logging.getLogger(__name__)


def select_entry_points(
    graph: DepGraph,
    marking_store: PersistentSummaryStore[MarkedItem],
) -> list[NodeHandle]:
    """Return the surviving nodes whose definition is marked as an entry point.

    Markings are recorded against the unparameterized definition, so the
    instantiation suffix is stripped before the lookup.
    """
    entry_points: list[NodeHandle] = []
    for handle in graph.nodes():
        marked = marking_store.get(without_type_params(graph.name_of(handle)))
        if marked is not None and marked.marking.is_entry_point:
            entry_points.append(handle)
    logger.debug("found %d entry points", len(entry_points))
    return sort_once(
        entry_points,
        source="entry_points.select_entry_points",
        key=lambda handle: graph.name_of(handle),
    )
