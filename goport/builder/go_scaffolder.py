#!/usr/bin/env python3
# CUI // SP-CTI
"""Go project emitter: executes a FileAction list against a project root.

``create`` actions render a Jinja2 template from
``context/conversion/templates/``; ``migrate`` actions run a route or view
transform on the source file and render the result through the
``routes.go.j2`` / ``component.templ.j2`` templates. Preserve and
remove-candidate actions only produce a result entry.

Files are written at most once per run and never over an existing file.
There is no rollback: ``GoScaffolder.written`` always holds what is on
disk so far, including after an interrupt.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from goport.errors import ConversionCancelled, TemplateRenderError
from goport.modernization.naming import pascal_case, snake_case
from goport.modernization.route_transforms import ROUTE_TRANSFORMS, transform_routes
from goport.modernization.source_inventory import SourceInventory
from goport.modernization.template_transforms import TEMPLATE_TRANSFORMS, destination_component, transform_template
from goport.project.config_loader import load_tool_config
from goport.schemas.conversion import ConversionPlan, EmitResult, FileAction

BASE_DIR = Path(__file__).resolve().parent.parent.parent
TEMPLATES_DIR = BASE_DIR / "context" / "conversion" / "templates"

logger = logging.getLogger("goport.builder.go_scaffolder")

REVIEW_MARKER = "TODO(goport): manual review"

# Handler names declared by the built-in handler files
RESERVED_HANDLERS = {"Health", "Home", "Admin", "New", "Handler"}

ECHO_METHODS = {
    "GET": "GET", "POST": "POST", "PUT": "PUT",
    "PATCH": "PATCH", "DELETE": "DELETE", "ANY": "Any",
}

# Column DDL, bind placeholder and identifier quote per goose dialect
SQL_COLUMNS = {
    "postgres": {
        "id": "id BIGSERIAL PRIMARY KEY",
        "timestamp": "TIMESTAMPTZ NOT NULL DEFAULT now()",
        "text": "TEXT NOT NULL DEFAULT ''",
        "placeholder": "$1",
        "quote": "\"",
    },
    "sqlite3": {
        "id": "id INTEGER PRIMARY KEY AUTOINCREMENT",
        "timestamp": "DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP",
        "text": "TEXT NOT NULL DEFAULT ''",
        "placeholder": "?",
        "quote": "\"",
    },
    "mysql": {
        "id": "id BIGINT AUTO_INCREMENT PRIMARY KEY",
        "timestamp": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
        "text": "VARCHAR(255) NOT NULL DEFAULT ''",
        "placeholder": "?",
        "quote": "`",
    },
}

# go.mod version key in the libraries config per database
DRIVER_LIBRARIES = {"postgres": "pgx", "sqlite": "sqlite", "mysql": "mysql"}

_PATH_PARAM_RE = re.compile(r":(\w+)")


def _table(name, dialect):
    """Template entry for a table; ``quoted`` is safe for reserved words like user or order."""
    quote = SQL_COLUMNS[dialect]["quote"]
    return {
        "name": name,
        "quoted": quote + name.replace(quote, quote * 2) + quote,
        "struct": pascal_case(name),
        "file": snake_case(name),
    }


def _build_env(templates_dir) -> Environment:
    return Environment(  # nosec B701 -- renders Go/SQL/templ source, not HTML
        loader=FileSystemLoader(str(templates_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )


def routes_group(destination: str) -> str:
    """Register-function group for a migrated routes file."""
    stem = Path(destination).name[: -len("_routes.go")]
    return pascal_case(stem)


class GoScaffolder:
    """Render and write the files of one conversion plan."""

    def __init__(self, root, plan: ConversionPlan, inventory: Optional[SourceInventory] = None,
                 tool_config: Optional[dict] = None, dry_run: bool = False, templates_dir=None):
        self.root = Path(root)
        self.plan = plan
        self.inventory = inventory or SourceInventory()
        self.tool_config = tool_config or load_tool_config()
        self.dry_run = dry_run
        self.env = _build_env(templates_dir or TEMPLATES_DIR)
        self.written: List[str] = []
        self.route_groups: List[str] = []
        self._handler_names = set(RESERVED_HANDLERS)
        self._context: Optional[dict] = None

    # ------------------------------------------------------------------
    # Template context
    # ------------------------------------------------------------------
    def context(self) -> dict:
        if self._context is None:
            plan = self.plan
            libraries = dict(self.tool_config.get("libraries", {}))
            site = self.tool_config.get("site", {})
            dialect = plan.driver["goose_dialect"]
            tables = [_table(t, dialect) for t in (self.inventory.tables or ["items"])]
            self._context = {
                "project_name": plan.project_name,
                "module_path": plan.module_path,
                "site_name": plan.site_name or plan.project_name,
                "go_version": plan.go_version,
                "scope": plan.scope,
                "database": plan.database,
                "admin_ui": plan.admin_ui,
                "deploy": plan.deploy,
                "source_framework": plan.source_framework,
                "has_frontend": plan.has_frontend,
                "proxies_legacy": plan.proxies_legacy,
                "driver": plan.driver,
                "driver_library": DRIVER_LIBRARIES[plan.database],
                "database_url": plan.driver["default_url"].format(name=snake_case(plan.project_name) or "app"),
                "sql": SQL_COLUMNS[dialect],
                "libraries": libraries,
                "htmx_version": site.get("htmx_version", "2.0.3"),
                "port": site.get("port", 8080),
                "tables": tables,
                "complex_queries": [
                    {"path": q.path, "line": q.line, "label": q.label, "snippet": q.snippet}
                    for q in self.inventory.complex_queries
                ],
                "complex_decision": plan.decisions.get("complex_query", "defer"),
                "route_groups": self.route_groups,
                "review_marker": REVIEW_MARKER,
            }
        return self._context

    def render(self, template: str, **extra) -> str:
        """Render a built-in template with the plan context plus ``extra``."""
        try:
            return self.env.get_template(template).render(**self.context(), **extra)
        except TemplateNotFound:
            raise TemplateRenderError(f"Template not found: {template}", template=template)
        except TemplateError as exc:
            raise TemplateRenderError(f"Failed to render {template}: {exc}", template=template)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def _write(self, rel: str, content: str) -> str:
        if rel in self.written:
            logger.warning("%s already written in this run; skipping", rel)
            return "skipped"
        path = self.root / rel
        if path.exists():
            logger.warning("%s exists; not overwriting", rel)
            return "skipped"
        if self.dry_run:
            logger.debug("dry-run: would write %s (%d bytes)", rel, len(content))
            return "planned"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self.written.append(rel)
        logger.debug("Wrote %s", rel)
        return "written"

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _emit_create(self, action: FileAction) -> EmitResult:
        extra = {}
        if action.template == "queries.sql.j2":
            stem = Path(action.destination).stem
            extra["table"] = next(
                (t for t in self.context()["tables"] if t["file"] == stem),
                _table(stem, self.plan.driver["goose_dialect"]),
            )
        content = self.render(action.template, **extra)
        status = self._write(action.destination, content)
        return EmitResult(action=action, status=status, path=action.destination)

    def _unique_handler(self, name: str, group: str) -> str:
        candidate = name
        if candidate in self._handler_names:
            candidate = group + name
        counter = 2
        base = candidate
        while candidate in self._handler_names:
            candidate = f"{base}{counter}"
            counter += 1
        self._handler_names.add(candidate)
        return candidate

    def _render_routes(self, action: FileAction, content: str):
        table = transform_routes(action.transform, content, action.source)
        group = routes_group(action.destination)
        renamed: Dict[str, str] = {}
        for handler in table.handlers:
            renamed[handler] = self._unique_handler(handler, group)
        routes = [
            {
                "method": route.method,
                "echo_method": ECHO_METHODS.get(route.method, "Any"),
                "path": route.path,
                "handler": renamed[route.handler],
            }
            for route in table.routes
        ]
        handlers = []
        for original in table.handlers:
            name = renamed[original]
            served = [r for r in routes if r["handler"] == name]
            params = []
            for r in served:
                for param in _PATH_PARAM_RE.findall(r["path"]):
                    if param not in params:
                        params.append(param)
            handlers.append({"name": name, "routes": served, "params": params})
        if not table.routes:
            table.review_items.append(f"{action.source}: no routes recognized")
        rendered = self.render(
            "routes.go.j2",
            group=group,
            source=action.source,
            transform=action.transform,
            routes=routes,
            handlers=handlers,
            review_items=table.review_items,
        )
        self.route_groups.append(group)
        return rendered, table.review_items

    def _render_component(self, action: FileAction, content: str):
        result = transform_template(action.transform, content, action.source)
        rendered = self.render(
            "component.templ.j2",
            component=destination_component(action.destination),
            signature=result.signature,
            body=result.body,
            source=action.source,
            review_items=result.review_items,
        )
        return rendered, result.review_items

    def _emit_migrate(self, action: FileAction) -> EmitResult:
        source_path = self.root / action.source
        try:
            content = source_path.read_text(encoding="utf-8", errors="replace")
        except (OSError, IOError) as exc:
            logger.warning("Cannot read %s: %s", action.source, exc)
            return EmitResult(action=action, status="skipped", path=action.destination,
                              review_items=[f"{action.source}: could not be read ({exc})"])

        if action.transform in ROUTE_TRANSFORMS:
            rendered, review = self._render_routes(action, content)
        elif action.transform in TEMPLATE_TRANSFORMS:
            rendered, review = self._render_component(action, content)
        else:
            logger.warning("No transform named %s for %s", action.transform, action.source)
            return EmitResult(action=action, status="skipped", path=action.destination,
                              review_items=[f"{action.source}: unknown transform {action.transform}"])

        status = self._write(action.destination, rendered)
        return EmitResult(action=action, status=status, path=action.destination, review_items=list(review))

    def emit(self, actions: List[FileAction]) -> List[EmitResult]:
        """Execute actions in order.

        Raises:
            ConversionCancelled: KeyboardInterrupt during emission; carries
                the files already written.
            TemplateRenderError: a built-in template failed to render.
        """
        results: List[EmitResult] = []
        try:
            for action in actions:
                if action.kind == "preserve":
                    results.append(EmitResult(action=action, status="preserved", path=action.destination))
                elif action.kind == "remove-candidate":
                    results.append(EmitResult(action=action, status="listed", path=action.destination))
                elif action.kind == "migrate":
                    results.append(self._emit_migrate(action))
                else:
                    results.append(self._emit_create(action))
                logger.debug("[%s] %s %s -> %s", action.stage.label, action.kind,
                             action.destination, results[-1].status)
        except KeyboardInterrupt:
            raise ConversionCancelled("Emission interrupted; files written so far are kept",
                                      written=self.written)
        logger.info("Emitted %d action(s), wrote %d file(s)%s", len(results), len(self.written),
                    " (dry run)" if self.dry_run else "")
        return results


def emit_actions(actions: List[FileAction], plan: ConversionPlan, root,
                 inventory: Optional[SourceInventory] = None, tool_config: Optional[dict] = None,
                 dry_run: bool = False) -> List[EmitResult]:
    """Convenience wrapper: build a GoScaffolder and run ``actions``."""
    scaffolder = GoScaffolder(root, plan, inventory=inventory, tool_config=tool_config, dry_run=dry_run)
    return scaffolder.emit(actions)
