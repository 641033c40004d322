from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from taurus.analysis.analyzer import DEFAULT_DEPSTORE, TaurusAnalyzer
from taurus.analysis.audit import VisitScope
from taurus.analysis.report_rendering import (
    DiagnosticLevel,
    render_json,
    render_text,
    report_diagnostics,
    summary_line,
)
from taurus.config import (
    audit_defaults,
    audit_depstore,
    audit_dot,
    audit_format,
    audit_visit_scope,
    merge_payload,
)
from taurus.exceptions import TaurusError
from taurus.ingest import ingest_records
from taurus.runtime.env_policy import depstore_override
from taurus.runtime.log_policy import configure_logging

app = typer.Typer(add_completion=False)

EXIT_OK = 0
EXIT_FATAL = 2

_REPORT_FORMATS = ("text", "json")
_STDOUT_ALIAS = "-"
_DIAGNOSTIC_COLORS: dict[DiagnosticLevel, str] = {
    DiagnosticLevel.WARNING: typer.colors.YELLOW,
    DiagnosticLevel.NOTE: typer.colors.CYAN,
}


def _resolve_depstore(depstore: Path | None, *, root: Path, section: dict) -> Path:
    if depstore is not None:
        return depstore
    override = depstore_override()
    if override is not None:
        return override
    configured = audit_depstore(section, root=root)
    if configured is not None:
        return configured
    return root / DEFAULT_DEPSTORE


def _resolve_visit_scope(value: object) -> VisitScope:
    text = str(value or VisitScope.ENTRY_POINT.value).strip().lower()
    for candidate in VisitScope:
        if candidate.value == text:
            return candidate
    raise typer.BadParameter(
        "visit scope must be one of: "
        + ", ".join(candidate.value for candidate in VisitScope)
    )


def _write_text_to_target(target: Path | None, payload: str) -> None:
    if target is None or str(target) == _STDOUT_ALIAS:
        typer.echo(payload, nl=False)
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")


def _emit_diagnostics(analyzer: TaurusAnalyzer) -> None:
    report = analyzer.audit()
    for diagnostic in report_diagnostics(report):
        typer.secho(
            diagnostic.render(),
            err=True,
            fg=_DIAGNOSTIC_COLORS.get(diagnostic.level),
        )
    typer.echo(summary_line(report), err=True)


@app.callback()
def main() -> None:
    """Check that calls into audit-requiring functions are escorted by an auditor."""
    configure_logging()


@app.command("audit")
def audit(
    depstore: Optional[Path] = typer.Option(None, "--depstore"),
    dot: Optional[bool] = typer.Option(
        None,
        "--dot/--no-dot",
        help="Print the pruned dependency graph in DOT format instead of auditing.",
    ),
    report_format: Optional[str] = typer.Option(None, "--format", help="text or json."),
    output: Optional[Path] = typer.Option(None, "--output"),
    visit_scope: Optional[str] = typer.Option(None, "--visit-scope"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Run the audit over a depstore and report escorted and unescorted calls."""
    section = audit_defaults(root=root, config_path=config)
    settings = merge_payload(
        {
            "format": report_format.strip().lower() if report_format else None,
            "dot": dot,
            "visit_scope": visit_scope,
        },
        {
            "format": audit_format(section) or "text",
            "dot": audit_dot(section),
            "visit_scope": audit_visit_scope(section),
        },
    )
    resolved_format = str(settings["format"])
    if resolved_format not in _REPORT_FORMATS:
        raise typer.BadParameter(f"--format must be one of: {', '.join(_REPORT_FORMATS)}.")
    scope = _resolve_visit_scope(settings.get("visit_scope"))
    resolved_depstore = _resolve_depstore(depstore, root=root, section=section)
    try:
        with TaurusAnalyzer(resolved_depstore, visit_scope=scope) as analyzer:
            if settings["dot"]:
                _write_text_to_target(output, analyzer.get_depgraph_dot())
            elif resolved_format == "json":
                _write_text_to_target(output, render_json(analyzer.audit()))
            elif output is not None:
                _write_text_to_target(output, render_text(analyzer.audit()))
            else:
                _emit_diagnostics(analyzer)
    except TaurusError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FATAL) from exc


@app.command("ingest")
def ingest(
    depstore: Optional[Path] = typer.Option(None, "--depstore"),
    markings: Optional[Path] = typer.Option(None, "--markings"),
    call_edges: Optional[Path] = typer.Option(None, "--call-edges"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Load JSON-lines marking and call-edge records into a depstore."""
    if markings is None and call_edges is None:
        raise typer.BadParameter("Provide --markings and/or --call-edges.")
    section = audit_defaults(root=root, config_path=config)
    resolved_depstore = _resolve_depstore(depstore, root=root, section=section)
    try:
        summary = ingest_records(
            resolved_depstore,
            markings_path=markings,
            calledges_path=call_edges,
        )
    except TaurusError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_FATAL) from exc
    typer.echo(
        f"Ingested {summary.markings} marking(s), {summary.callers} caller(s), "
        f"{summary.call_edges} call edge(s) into {resolved_depstore}"
    )
