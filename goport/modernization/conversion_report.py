#!/usr/bin/env python3
# CUI // SP-CTI
"""Conversion summary, manual checklist and GOPORT_REPORT.md.

``summarize`` reduces the action/result lists to counts and file lists;
``render_summary`` turns that into the fixed-format terminal block;
``write_report`` writes the markdown mirror into the converted project.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from goport.cli.output_formatter import format_banner, format_kv, format_list, format_section
from goport.schemas.conversion import ConversionPlan, DetectedStack, EmitResult, FileAction

logger = logging.getLogger("goport.modernization.conversion_report")

REPORT_FILENAME = "GOPORT_REPORT.md"
REVIEW_MARKER = "TODO(goport)"


def summarize(actions: List[FileAction], results: Optional[List[EmitResult]] = None) -> Dict:
    """Count what a run did.

    Without results (plan only) every create/migrate counts as planned.

    Returns:
        dict with counts (created, migrated, preserved, remove_candidates,
        skipped, planned), per-category file lists and review_items.
    """
    results = results if results is not None else [
        EmitResult(action=a, status={"preserve": "preserved", "remove-candidate": "listed"}.get(a.kind, "planned"),
                   path=a.destination)
        for a in actions
    ]
    summary = {
        "counts": {
            "created": 0,
            "migrated": 0,
            "preserved": 0,
            "remove_candidates": 0,
            "skipped": 0,
            "planned": 0,
        },
        "files": {
            "created": [],
            "migrated": [],
            "preserved": [],
            "remove_candidates": [],
            "skipped": [],
            "planned": [],
        },
        "review_items": [],
        "total_actions": len(actions),
    }
    counts, files = summary["counts"], summary["files"]

    for result in results:
        kind = result.action.kind
        if result.status == "skipped":
            bucket = "skipped"
        elif result.status == "planned":
            bucket = "planned"
        elif kind == "preserve":
            bucket = "preserved"
        elif kind == "remove-candidate":
            bucket = "remove_candidates"
        elif kind == "migrate":
            bucket = "migrated"
        else:
            bucket = "created"
        counts[bucket] += 1
        files[bucket].append(result.path or result.action.destination)
        summary["review_items"].extend(result.review_items)
    return summary


def build_checklist(plan: ConversionPlan, summary: Dict) -> List[str]:
    """Manual next steps, in the order they should be done."""
    steps = ["go mod tidy"]
    if plan.has_frontend:
        steps.append("templ generate")
    steps.append("sqlc generate")
    steps.append(f'goose -dir migrations {plan.driver["goose_dialect"]} "$DATABASE_URL" up')
    review = len(summary["review_items"])
    steps.append(f"Review the {REVIEW_MARKER} markers ({review} manual-review item(s))")
    removals = summary["counts"]["remove_candidates"]
    if removals:
        steps.append(f"Review the {removals} remove candidate(s) and delete the legacy files yourself")
    if plan.proxies_legacy:
        steps.append("Set LEGACY_URL to the running legacy application")
        steps.append("Uncomment the route registrations in cmd/server/main.go as handlers are ported")
    if plan.admin_ui:
        steps.append("Set ADMIN_USER and ADMIN_PASSWORD before exposing /admin")
    steps.append("go run ./cmd/server   (or: make dev)")
    return steps


def render_summary(summary: Dict, plan: ConversionPlan, stack: Optional[DetectedStack] = None,
                   dry_run: bool = False) -> str:
    """Fixed-format terminal summary plus the manual checklist."""
    counts = summary["counts"]
    title = f"goport: {plan.source_framework} -> Go ({plan.scope})"
    lines = [
        format_banner("info" if dry_run else "ok", title + ("  [dry run]" if dry_run else "")),
        "",
        format_kv([
            ("Project", plan.project_name),
            ("Module", plan.module_path),
            ("Database", f"{plan.database} ({plan.driver['driver_name']})"),
            ("Admin UI", "yes" if plan.admin_ui else "no"),
            ("Deploy", plan.deploy),
        ]),
        "",
        format_kv([
            ("Created", counts["created"]),
            ("Migrated", counts["migrated"]),
            ("Preserved", counts["preserved"]),
            ("Remove candidates", counts["remove_candidates"]),
            ("Skipped", counts["skipped"]),
        ] + ([("Planned", counts["planned"])] if dry_run else []), title="Files"),
    ]
    if stack is not None and stack.evidence:
        lines.append("")
        lines.append(f"  Detected from: {', '.join(str(e) for e in stack.evidence)}")
    if summary["files"]["skipped"]:
        lines.append("")
        lines.append(format_list(f"skipped (exists): {p}" for p in summary["files"]["skipped"]))
    if summary["review_items"]:
        lines.append("")
        lines.append(format_section(f"Manual review ({len(summary['review_items'])})"))
        shown = summary["review_items"][:20]
        lines.append(format_list(shown))
        if len(summary["review_items"]) > len(shown):
            lines.append(f"  ... {len(summary['review_items']) - len(shown)} more in {REPORT_FILENAME}")
    lines.append("")
    lines.append(format_section("Next steps"))
    lines.append(format_list(build_checklist(plan, summary), numbered=True))
    return "\n".join(lines)


def to_json(summary: Dict, plan: ConversionPlan, stack: Optional[DetectedStack] = None,
            results: Optional[List[EmitResult]] = None, dry_run: bool = False,
            report_path: Optional[str] = None) -> Dict:
    """Machine-readable form of the run for ``--json``."""
    return {
        "status": "dry-run" if dry_run else "completed",
        "stack": stack.to_dict() if stack is not None else None,
        "plan": plan.to_dict(),
        "summary": summary,
        "actions": [r.to_dict() for r in (results or [])],
        "checklist": build_checklist(plan, summary),
        "report_path": report_path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def write_report(root, summary: Dict, plan: ConversionPlan, stack: Optional[DetectedStack] = None,
                 results: Optional[List[EmitResult]] = None) -> str:
    """Write GOPORT_REPORT.md into ``root`` and return its path.

    The report belongs to goport and is regenerated on every run.
    """
    root = Path(root)
    counts = summary["counts"]
    report_lines = [
        "# goport Conversion Report",
        "",
        f"**Generated:** {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"**Source framework:** {plan.source_framework}",
        f"**Module:** `{plan.module_path}`",
        "",
        "---",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Scope | {plan.scope} |",
        f"| Database | {plan.database} |",
        f"| Admin UI | {'yes' if plan.admin_ui else 'no'} |",
        f"| Deployment | {plan.deploy} |",
        f"| Files created | {counts['created']} |",
        f"| Files migrated | {counts['migrated']} |",
        f"| Files preserved | {counts['preserved']} |",
        f"| Remove candidates | {counts['remove_candidates']} |",
        f"| Skipped (already existed) | {counts['skipped']} |",
        "",
    ]
    if stack is not None and stack.evidence:
        report_lines.append("Detected from: " + ", ".join(f"`{e}`" for e in stack.evidence))
        report_lines.append("")
    if plan.decisions:
        report_lines.append("## Decisions")
        report_lines.append("")
        for key, value in sorted(plan.decisions.items()):
            report_lines.append(f"- **{key}**: {value}")
        report_lines.append("")

    if results:
        report_lines.append("## Files")
        report_lines.append("")
        report_lines.append("| Stage | Action | Path | Status |")
        report_lines.append("|-------|--------|------|--------|")
        for result in results:
            action = result.action
            source = f" (from `{action.source}`)" if action.kind == "migrate" else ""
            report_lines.append(
                f"| {action.stage.label} | {action.kind} | `{action.destination}`{source} | {result.status} |"
            )
        report_lines.append("")

    if summary["files"]["remove_candidates"]:
        report_lines.append("## Remove Candidates")
        report_lines.append("")
        report_lines.append("goport never deletes source files. Remove these once the Go version is verified:")
        report_lines.append("")
        for path in summary["files"]["remove_candidates"]:
            report_lines.append(f"- `{path}`")
        report_lines.append("")

    report_lines.append("## Manual Review Items")
    report_lines.append("")
    if summary["review_items"]:
        for item in summary["review_items"]:
            report_lines.append(f"- {item}")
    else:
        report_lines.append("_No manual review items found._")
    report_lines.append("")

    report_lines.append("## Next Steps")
    report_lines.append("")
    for step in build_checklist(plan, summary):
        report_lines.append(f"- [ ] `{step}`" if not step.startswith(("Review", "Set")) else f"- [ ] {step}")
    report_lines.append("")

    report_path = root / REPORT_FILENAME
    report_path.write_text("\n".join(report_lines), encoding="utf-8")
    logger.info("Report written to %s", report_path)
    return str(report_path)
