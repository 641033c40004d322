from __future__ import annotations

import json

from taurus.analysis.audit import AuditedUse, AuditPath, AuditReport, ProgPoint
from taurus.analysis.depgraph import get_depgraph
from taurus.analysis.report_rendering import (
    DiagnosticLevel,
    render_dot,
    render_json,
    render_text,
    report_diagnostics,
    report_payload,
    summary_line,
)
from taurus.schema import REPORT_VERSION
from tests.record_helpers import call, inst, loc


def _path(*steps: tuple[str, int]) -> AuditPath:
    return AuditPath(steps=tuple(ProgPoint(identifier=name, loc=loc(line)) for name, line in steps))


def _report() -> AuditReport:
    return AuditReport(
        audited=(
            AuditedUse(
                escort="app::escort<>",
                path=_path(("app::escort<>", 2), ("app::sign<>", 5)),
            ),
        ),
        unaudited=(
            _path(("app::sign<>", 9)),
            _path(("app::relay<>", 3), ("app::sign<>", 4)),
        ),
        entry_points=("app::main<>",),
    )


def test_diagnostics_put_violations_first_in_canonical_order() -> None:
    diagnostics = report_diagnostics(_report())
    assert [diagnostic.level for diagnostic in diagnostics] == [
        DiagnosticLevel.WARNING,
        DiagnosticLevel.WARNING,
        DiagnosticLevel.NOTE,
    ]
    assert diagnostics[0].message == (
        "Unaudited use of insecure functions:\n"
        "-> app::relay<> at src/main.rs:3\n"
        "-> app::sign<> at src/main.rs:4\n"
    )
    assert diagnostics[2].render() == (
        "note: Audited use of insecure functions:\n"
        "   app::escort<>\n"
        "-> app::escort<> at src/main.rs:2\n"
        "-> app::sign<> at src/main.rs:5\n"
    )


def test_render_text_ends_with_summary() -> None:
    text = render_text(_report())
    assert text.startswith("warning: Unaudited use of insecure functions:\n")
    assert text.endswith("Audit completed: 2 unaudited, 1 audited, 1 entry point(s)\n")
    assert text.count("warning: ") == 2
    assert text.count("note: ") == 1


def test_render_text_for_clean_report() -> None:
    report = AuditReport(audited=(), unaudited=(), entry_points=())
    assert render_text(report) == summary_line(report) + "\n"
    assert summary_line(report) == "Audit completed: 0 unaudited, 0 audited, 0 entry point(s)"


def test_render_json_payload() -> None:
    payload = json.loads(render_json(_report()))
    assert payload["version"] == REPORT_VERSION
    assert payload["summary"] == {"audited": 1, "entry_points": 1, "unaudited": 2}
    assert payload["audited"] == [
        {
            "escort": "app::escort<>",
            "path": [
                {"identifier": "app::escort<>", "location": {"file": "src/main.rs", "line": 2}},
                {"identifier": "app::sign<>", "location": {"file": "src/main.rs", "line": 5}},
            ],
        }
    ]
    assert [entry["path"][0]["identifier"] for entry in payload["unaudited"]] == [
        "app::relay<>",
        "app::sign<>",
    ]


def test_report_payload_ignores_input_order() -> None:
    report = _report()
    flipped = AuditReport(
        audited=report.audited,
        unaudited=tuple(reversed(report.unaudited)),
        entry_points=report.entry_points,
    )
    assert report_payload(report) == report_payload(flipped)
    assert render_json(report) == render_json(flipped)


def test_render_dot_lists_nodes_and_edges() -> None:
    graph, _ = get_depgraph(
        [
            (inst("app::main"), [call("app::escort", 1), call("app::escort", 2)]),
            (inst("app::escort"), [call("app::sign", 3)]),
        ]
    )
    assert render_dot(graph) == (
        "digraph {\n"
        '    0 [ label = "app::main<>" ]\n'
        '    1 [ label = "app::escort<>" ]\n'
        '    2 [ label = "app::sign<>" ]\n'
        "    0 -> 1 [ ]\n"
        "    0 -> 1 [ ]\n"
        "    1 -> 2 [ ]\n"
        "}\n"
    )


def test_render_dot_escapes_labels() -> None:
    graph, _ = get_depgraph([('app::quote"d', [])])
    assert '[ label = "app::quote\\"d" ]' in render_dot(graph)


def test_render_dot_skips_pruned_nodes() -> None:
    graph, _ = get_depgraph(
        [
            (inst("app::main"), []),
            ("__drop_glue<app::Key,>", [call("app::helper", 1, lang_item=True)]),
        ]
    )
    dot = render_dot(graph)
    assert "app::helper" not in dot
    assert "__drop_glue" not in dot
    assert '    0 [ label = "app::main<>" ]' in dot
