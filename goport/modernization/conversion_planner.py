#!/usr/bin/env python3
# CUI // SP-CTI
"""Conversion planner: DetectedStack + answers -> ConversionPlan + FileActions.

The planner never touches the filesystem except to check which
destinations already exist. Its output is an ordered action list that the
scaffolder executes stage by stage:

    foundation -> configuration -> database -> handler -> template
    -> entrypoint -> deployment -> cleanup

Usage:
    python -m goport.modernization.conversion_planner --path /path/to/app --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from goport.errors import (
    AlreadyGoError,
    ComplexQueryError,
    FrontendHeavyError,
    UnsupportedFrameworkError,
)
from goport.modernization.naming import module_slug, snake_case
from goport.modernization.route_transforms import route_group_name
from goport.modernization.source_inventory import SourceInventory, scan_sources
from goport.modernization.template_transforms import template_destination
from goport.schemas.conversion import ConversionPlan, DetectedStack, FileAction, Stage

logger = logging.getLogger("goport.modernization.conversion_planner")

# Existing project files that are always kept as-is
PRESERVE_NAMES = (".git", ".gitignore", "LICENSE", "LICENSE.md", "LICENSE.txt", ".env")

# Lockfiles listed next to their manifests as remove candidates
LOCKFILES = {
    "package.json": ("package-lock.json", "yarn.lock", "pnpm-lock.yaml"),
    "composer.json": ("composer.lock",),
    "Gemfile": ("Gemfile.lock",),
    "Pipfile": ("Pipfile.lock",),
    "pyproject.toml": ("poetry.lock",),
}

MIGRATION_FILE = "migrations/00001_init.sql"


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

def _answer(answers, key, default=None):
    if isinstance(answers, dict):
        return answers.get(key, default)
    return getattr(answers, key, default)


def resolve_scope(stack: DetectedStack, scope: str, decisions: dict) -> str:
    """Apply the frontend-heavy decision to the requested scope."""
    if not stack.is_frontend_heavy:
        return scope
    choice = decisions.get("spa")
    if choice is None:
        raise FrontendHeavyError(
            f"{stack.framework} project looks frontend-heavy ({', '.join(stack.frontend) or 'nextjs'})"
        )
    if choice == "keep-frontend":
        return "backend-only"
    if choice == "progressive":
        return "incremental"
    return scope


def build_plan(stack: DetectedStack, answers, name: Optional[str] = None) -> ConversionPlan:
    """Build the ConversionPlan for a detected stack.

    Args:
        stack: Detection result.
        answers: Answers object (or dict) with scope, database, admin_ui,
            deploy, decisions and optional module_prefix/go_version/site_name.
        name: Project name; defaults to "app".

    Raises:
        AlreadyGoError: the project already has a go.mod.
        UnsupportedFrameworkError: unrecognized stack without a ``generic``
            decision, or the user chose ``halt``.
        FrontendHeavyError: frontend-heavy stack without an ``spa`` decision.
    """
    if stack.is_go:
        raise AlreadyGoError()

    decisions = dict(_answer(answers, "decisions", None) or {})
    if not stack.is_recognized:
        choice = decisions.get("unsupported")
        if choice is None:
            raise UnsupportedFrameworkError(
                f"No supported framework detected ({stack.reason or 'unknown stack'})"
            )
        if choice == "halt":
            raise UnsupportedFrameworkError(
                "Conversion halted: provide more context about the project and re-run"
            )

    requested = _answer(answers, "scope", "full")
    scope = resolve_scope(stack, requested, decisions)
    if scope != requested:
        logger.info("Scope %s forced to %s by the spa decision", requested, scope)

    project_name = name or "app"
    slug = module_slug(project_name)
    prefix = (_answer(answers, "module_prefix", "") or "").strip().rstrip("/")
    module_path = f"{prefix}/{slug}" if prefix else slug
    site_name = _answer(answers, "site_name", "") or project_name.replace("-", " ").replace("_", " ").title()

    plan = ConversionPlan(
        project_name=slug,
        module_path=module_path,
        scope=scope,
        database=_answer(answers, "database", "postgres"),
        admin_ui=bool(_answer(answers, "admin_ui", False)),
        deploy=_answer(answers, "deploy", "docker"),
        source_framework=stack.framework,
        site_name=site_name,
        go_version=str(_answer(answers, "go_version", "1.22") or "1.22"),
        decisions=decisions,
    )
    logger.debug("Plan: %s", plan.to_dict())
    return plan


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

def _create(dest, stage, template, note=""):
    return FileAction(kind="create", destination=dest, stage=stage, template=template, note=note)


def _foundation(plan):
    actions = [
        _create("go.mod", Stage.FOUNDATION, "go.mod.j2"),
        _create(".gitignore", Stage.FOUNDATION, "gitignore.j2"),
        _create("README.md", Stage.FOUNDATION, "README.md.j2"),
        _create("Makefile", Stage.FOUNDATION, "Makefile.j2"),
        _create(".air.toml", Stage.FOUNDATION, "air.toml.j2"),
    ]
    return actions


def _configuration(plan):
    return [
        _create("internal/config/config.go", Stage.CONFIGURATION, "config.go.j2"),
        _create(".env.example", Stage.CONFIGURATION, "env.example.j2"),
        _create("sqlc.yaml", Stage.CONFIGURATION, "sqlc.yaml.j2"),
    ]


def _database(plan, inventory):
    actions = [
        _create("internal/database/database.go", Stage.DATABASE, "database.go.j2"),
        _create(MIGRATION_FILE, Stage.DATABASE, "migration_init.sql.j2",
                note=f"{len(inventory.tables)} table(s) from the source models"),
    ]
    tables = inventory.tables or ["items"]
    for table in tables:
        actions.append(_create(f"queries/{snake_case(table)}.sql", Stage.DATABASE, "queries.sql.j2",
                               note=f"table:{table}"))
    if inventory.complex_queries:
        decision = plan.decisions.get("complex_query", "defer")
        actions.append(_create("queries/complex_queries.sql", Stage.DATABASE, "complex_queries.sql.j2",
                               note=f"{len(inventory.complex_queries)} site(s), decision: {decision}"))
    return actions


def _handlers(plan, inventory):
    actions = [
        _create("internal/handlers/handlers.go", Stage.HANDLER, "handlers.go.j2"),
        _create("internal/handlers/health.go", Stage.HANDLER, "health.go.j2"),
        _create("internal/middleware/middleware.go", Stage.HANDLER, "middleware.go.j2"),
    ]
    if plan.has_frontend:
        actions.append(_create("internal/handlers/home.go", Stage.HANDLER, "home.go.j2"))
    if plan.admin_ui:
        actions.append(_create("internal/handlers/admin.go", Stage.HANDLER, "admin.go.j2"))

    used = set()
    for source in inventory.routes:
        group = route_group_name(source.path)
        dest = f"internal/handlers/{snake_case(group)}_routes.go"
        suffix = 2
        while dest in used:
            dest = f"internal/handlers/{snake_case(group)}_{suffix}_routes.go"
            suffix += 1
        used.add(dest)
        actions.append(FileAction(
            kind="migrate", source=source.path, destination=dest,
            stage=Stage.HANDLER, transform=source.transform,
        ))
    return actions


def _templates(plan, inventory):
    if not plan.has_frontend:
        return []
    actions = [
        _create("templates/layout.templ", Stage.TEMPLATE, "layout.templ.j2"),
        _create("templates/home.templ", Stage.TEMPLATE, "home.templ.j2"),
        _create("static/css/app.css", Stage.TEMPLATE, "app.css.j2"),
    ]
    if plan.admin_ui:
        actions.append(_create("templates/admin.templ", Stage.TEMPLATE, "admin.templ.j2"))
    if plan.scope != "full":
        return actions

    used = {a.destination for a in actions}
    for source in inventory.templates:
        dest = template_destination(source.path)
        if dest in used:
            stem = dest[: -len(".templ")]
            suffix = 2
            while f"{stem}_{suffix}.templ" in used:
                suffix += 1
            dest = f"{stem}_{suffix}.templ"
        used.add(dest)
        actions.append(FileAction(
            kind="migrate", source=source.path, destination=dest,
            stage=Stage.TEMPLATE, transform=source.transform,
        ))
    return actions


def _deployment(plan):
    if plan.deploy == "docker":
        return [
            _create("Dockerfile", Stage.DEPLOYMENT, "Dockerfile.j2"),
            _create(".dockerignore", Stage.DEPLOYMENT, "dockerignore.j2"),
        ]
    if plan.deploy == "fly":
        return [
            _create("Dockerfile", Stage.DEPLOYMENT, "Dockerfile.j2"),
            _create("fly.toml", Stage.DEPLOYMENT, "fly.toml.j2"),
        ]
    if plan.deploy == "systemd":
        return [_create(f"deploy/{plan.project_name}.service", Stage.DEPLOYMENT, "systemd.service.j2")]
    return []


def _remove_candidates(stack, plan, inventory, root, preserved):
    if plan.scope != "full" or not stack.is_recognized:
        return []
    candidates = []
    for manifest in stack.manifests:
        candidates.append((manifest, "source manifest"))
        for lockfile in LOCKFILES.get(manifest, ()):
            if (root / lockfile).exists():
                candidates.append((lockfile, "source lockfile"))
    candidates.extend((r.path, "migrated to a Go handler") for r in inventory.routes)
    candidates.extend((t.path, "migrated to a templ component") for t in inventory.templates)

    actions = []
    seen = set()
    for path, note in candidates:
        if path in seen or path in preserved:
            continue
        seen.add(path)
        actions.append(FileAction(
            kind="remove-candidate", source=path, destination=path,
            stage=Stage.CLEANUP, note=note,
        ))
    return actions


def plan_actions(stack: DetectedStack, plan: ConversionPlan, inventory: SourceInventory,
                 root) -> List[FileAction]:
    """Build the ordered FileAction list for a plan.

    Creates over existing destinations become preserve actions. The result
    is sorted by stage; the sort is stable, so actions keep their planned
    order inside a stage.

    Raises:
        ComplexQueryError: the inventory has complex query sites and the
            plan carries no ``complex_query`` decision.
    """
    root = Path(root)
    if inventory.complex_queries and "complex_query" not in plan.decisions:
        first = inventory.complex_queries[0]
        raise ComplexQueryError(
            f"{len(inventory.complex_queries)} ORM query site(s) cannot be translated "
            f"automatically (first: {first.path}:{first.line} {first.label})"
        )

    actions = []
    preserved = set()
    readmes = sorted(p.name for p in root.glob("README*"))
    for name in readmes + [n for n in PRESERVE_NAMES if (root / n).exists()]:
        preserved.add(name)
        actions.append(FileAction(kind="preserve", source=name, destination=name, stage=Stage.FOUNDATION))

    planned = (
        _foundation(plan)
        + _configuration(plan)
        + _database(plan, inventory)
        + _handlers(plan, inventory)
        + _templates(plan, inventory)
        + [_create("cmd/server/main.go", Stage.ENTRYPOINT, "main.go.j2")]
        + _deployment(plan)
    )
    seen = set(preserved)
    for action in planned:
        if action.destination in seen:
            continue
        seen.add(action.destination)
        if (root / action.destination).exists():
            preserved.add(action.destination)
            actions.append(FileAction(
                kind="preserve", source=action.destination, destination=action.destination,
                stage=Stage.FOUNDATION, note="already exists; left untouched",
            ))
            continue
        actions.append(action)

    actions.extend(_remove_candidates(stack, plan, inventory, root, preserved))
    ordered = sorted(actions, key=lambda a: a.stage)
    logger.info("Planned %d action(s) for scope %s", len(ordered), plan.scope)
    return ordered


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main():
    from goport.modernization.stack_detector import detect_stack

    parser = argparse.ArgumentParser(description="Plan a Go conversion without writing files")
    parser.add_argument("--path", default=".", help="Project directory")
    parser.add_argument("--scope", default="full", choices=["full", "incremental", "backend-only"])
    parser.add_argument("--database", default="postgres", choices=["postgres", "sqlite", "mysql"])
    parser.add_argument("--deploy", default="docker", choices=["docker", "fly", "systemd", "none"])
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    root = Path(args.path).resolve()
    stack = detect_stack(root)
    answers = {
        "scope": args.scope, "database": args.database, "deploy": args.deploy,
        "decisions": {"unsupported": "generic", "spa": "rewrite", "complex_query": "defer"},
    }
    plan = build_plan(stack, answers, name=root.name)
    actions = plan_actions(stack, plan, scan_sources(root, stack), root)
    if args.json:
        print(json.dumps({"plan": plan.to_dict(), "actions": [a.to_dict() for a in actions]}, indent=2))
    else:
        from goport.cli.output_formatter import format_table

        rows = [(a.stage.label, a.kind, a.destination, a.source or "") for a in actions]
        print(format_table(["Stage", "Action", "Destination", "Source"], rows,
                           title=f"{stack.framework} -> Go ({plan.scope})"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
