#!/usr/bin/env python3
# CUI // SP-CTI
"""goport: convert a web project to Go (Echo + templ + HTMX + sqlc + goose).

Pipeline: detect -> ask -> plan -> emit -> report.

Exit codes:
    0    converted, or the project is already Go (nothing to do)
    1    error (bad config, unreadable project, template failure)
    2    halted at a decision point
    130  cancelled by the user

Usage:
    goport /path/to/app
    goport /path/to/app --scope incremental --database sqlite --yes
    goport /path/to/app --dry-run --json
    python -m goport /path/to/app
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from goport.builder.go_scaffolder import GoScaffolder
from goport.errors import (
    AlreadyGoError,
    ConversionCancelled,
    DecisionRequiredError,
    GoportError,
)
from goport.modernization.conversion_planner import build_plan, plan_actions
from goport.modernization.conversion_report import render_summary, summarize, to_json, write_report
from goport.modernization.source_inventory import DEFAULT_EXCLUDE_DIRS, scan_sources
from goport.modernization.stack_detector import detect_stack
from goport.project.config_loader import load_project_config, load_tool_config
from goport.project.questionnaire import ask_questions, required_decisions
from goport.schemas.conversion import DATABASES, DEPLOY_TARGETS, SCOPES

logger = logging.getLogger("goport.cli.convert")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goport",
        description="Convert a web project to Go (Echo, templ, HTMX, sqlc, goose)",
    )
    parser.add_argument("path", nargs="?", default=".", help="Project directory (default: cwd)")
    parser.add_argument("--scope", choices=SCOPES, help="Migration scope")
    parser.add_argument("--database", choices=DATABASES, help="Target database")
    parser.add_argument("--admin-ui", dest="admin_ui", action="store_true", default=None,
                        help="Generate a basic admin page")
    parser.add_argument("--no-admin-ui", dest="admin_ui", action="store_false",
                        help="Do not generate an admin page")
    parser.add_argument("--deploy", choices=DEPLOY_TARGETS, help="Deployment target")
    parser.add_argument("--name", help="Project name (default: directory name)")
    parser.add_argument("--on-unsupported", choices=["generic", "halt"],
                        help="Decision when no supported framework is detected")
    parser.add_argument("--on-complex-query", choices=["split", "raw", "defer"],
                        help="Decision for ORM queries that cannot be translated")
    parser.add_argument("--on-spa", choices=["keep-frontend", "progressive", "rewrite"],
                        help="Decision for frontend-heavy projects")
    parser.add_argument("--yes", "-y", action="store_true", help="Accept defaults for unanswered questions")
    parser.add_argument("--dry-run", action="store_true", help="Plan and render without writing files")
    parser.add_argument("--json", action="store_true", dest="json_output", help="JSON output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _provided_answers(args, project_config: dict) -> dict:
    """Merge goport.yaml/env answers with CLI flags (flags win)."""
    provided = {
        key: project_config.get(key)
        for key in ("scope", "database", "admin_ui", "deploy", "module_prefix", "site_name")
    }
    decisions = dict(project_config.get("decisions") or {})
    for key in ("scope", "database", "admin_ui", "deploy"):
        value = getattr(args, key)
        if value is not None:
            provided[key] = value
    for key, flag in (("unsupported", args.on_unsupported),
                      ("complex_query", args.on_complex_query),
                      ("spa", args.on_spa)):
        if flag:
            decisions[key] = flag
    provided["decisions"] = decisions
    return provided


def _tool_defaults(tool_config: dict) -> dict:
    defaults = dict(tool_config.get("defaults", {}))
    defaults["module_prefix"] = tool_config.get("go", {}).get("module_prefix", "")
    defaults["go_version"] = tool_config.get("go", {}).get("version", "1.22")
    defaults["site_name"] = tool_config.get("site", {}).get("name", "")
    return defaults


def _error(message: str, args, **extra) -> None:
    if args.json_output:
        print(json.dumps(dict({"status": "error", "error": message}, **extra), indent=2))
    else:
        print(f"[ERROR] {message}", file=sys.stderr)


def run(args) -> int:
    root = Path(args.path).resolve()
    if not root.is_dir():
        _error(f"Not a directory: {root}", args)
        return 1

    tool_config = load_tool_config()
    project_config = load_project_config(directory=root)
    for warning in project_config["warnings"]:
        print(f"[WARN] goport.yaml: {warning}", file=sys.stderr)
    if not project_config["valid"]:
        for err in project_config["errors"]:
            _error(f"goport.yaml: {err}", args)
        return 1
    normalized = project_config["normalized"]

    stack = detect_stack(root)
    if stack.is_go:
        raise AlreadyGoError()

    exclude = set(DEFAULT_EXCLUDE_DIRS) | set(tool_config.get("scan", {}).get("exclude_dirs") or [])
    inventory = scan_sources(root, stack, exclude_dirs=exclude)

    answers = ask_questions(
        stack,
        defaults=_tool_defaults(tool_config),
        provided=_provided_answers(args, normalized),
        assume_yes=args.yes,
        decisions_needed=required_decisions(stack, bool(inventory.complex_queries)),
    )

    name = args.name or normalized.get("name") or root.name
    plan = build_plan(stack, answers, name=name)
    actions = plan_actions(stack, plan, inventory, root)

    scaffolder = GoScaffolder(root, plan, inventory=inventory, tool_config=tool_config, dry_run=args.dry_run)
    results = scaffolder.emit(actions)
    summary = summarize(actions, results)

    report_path = None
    if not args.dry_run:
        report_path = write_report(root, summary, plan, stack, results)

    if args.json_output:
        print(json.dumps(to_json(summary, plan, stack, results, dry_run=args.dry_run,
                                 report_path=report_path), indent=2, default=str))
    else:
        print(render_summary(summary, plan, stack, dry_run=args.dry_run))
        if report_path:
            print(f"\n  Report: {report_path}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    try:
        return run(args)
    except AlreadyGoError as exc:
        if args.json_output:
            print(json.dumps({"status": "already-go", "message": str(exc)}, indent=2))
        else:
            print(f"[INFO] {exc}")
        return exc.exit_code
    except DecisionRequiredError as exc:
        _error(str(exc), args, decision=exc.decision, choices=list(exc.choices))
        if not args.json_output and exc.choices:
            flag = {"unsupported": "--on-unsupported", "complex_query": "--on-complex-query",
                    "spa": "--on-spa"}.get(exc.decision, "")
            for key, label in exc.choices.items():
                print(f"  {flag} {key:<14} {label}", file=sys.stderr)
        return exc.exit_code
    except ConversionCancelled as exc:
        print(f"[WARN] {exc}", file=sys.stderr)
        if exc.written:
            print("[WARN] Files already written (kept):", file=sys.stderr)
            for path in exc.written:
                print(f"    {path}", file=sys.stderr)
        return exc.exit_code
    except GoportError as exc:
        _error(str(exc), args)
        return exc.exit_code
    except KeyboardInterrupt:
        print("[WARN] Conversion cancelled by user", file=sys.stderr)
        return ConversionCancelled.exit_code


if __name__ == "__main__":
    sys.exit(main())
