"""Dependency-graph audit engine for Taurus."""

from .analyzer import DEFAULT_DEPSTORE, DepGraphView, TaurusAnalyzer
from .audit import AuditedUse, AuditPath, AuditReport, VisitScope, audit_depgraph
from .depgraph import DepGraph, PruneResult, build_depgraph, get_depgraph, prune_lang_items
from .entry_points import select_entry_points
from .report_rendering import render_dot, render_json, render_text

__all__ = [
    "AuditPath",
    "AuditReport",
    "AuditedUse",
    "DEFAULT_DEPSTORE",
    "DepGraph",
    "DepGraphView",
    "PruneResult",
    "TaurusAnalyzer",
    "VisitScope",
    "audit_depgraph",
    "build_depgraph",
    "get_depgraph",
    "prune_lang_items",
    "render_dot",
    "render_json",
    "render_text",
    "select_entry_points",
]
