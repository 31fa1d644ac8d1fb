#!/usr/bin/env python3
# CUI // SP-CTI
"""Source inventory: route files, view templates, tables and complex queries.

The planner turns this inventory into ``migrate`` actions; the scaffolder
uses the table list to seed the initial migration and sqlc query files.
Everything here is regex/glob based and scoped to the frameworks goport
knows; anything else is left for manual review.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from goport.modernization.naming import table_name
from goport.schemas.conversion import DetectedStack

BASE_DIR = Path(__file__).resolve().parent.parent.parent
QUERY_PATTERNS_PATH = BASE_DIR / "context" / "conversion" / "complex_query_patterns.json"

logger = logging.getLogger("goport.modernization.source_inventory")

DEFAULT_EXCLUDE_DIRS = {
    "node_modules", "vendor", ".git", "venv", ".venv", "env", "dist", "build",
    ".next", "__pycache__", "storage", "tmp", "log", "coverage", ".goport",
}
MAX_SCAN_BYTES = 1_000_000

_EXPRESS_ROUTE_RE = re.compile(r"\b(?:app|router)\.(?:get|post|put|patch|delete)\s*\(")
_FLASK_ROUTE_RE = re.compile(r"^\s*@\w+\.route\(", re.MULTILINE)
_FASTAPI_ROUTE_RE = re.compile(r"^\s*@\w+\.(?:get|post|put|patch|delete)\(", re.MULTILINE)

_TABLE_PATTERNS = [
    # (extensions, regex, is_model_class)
    ((".py",), re.compile(r"^class\s+(\w+)\((?:models\.)?Model\)", re.MULTILINE), True),
    ((".py",), re.compile(r"__tablename__\s*=\s*['\"](\w+)['\"]"), False),
    ((".prisma",), re.compile(r"^model\s+(\w+)\s*\{", re.MULTILINE), True),
    ((".js", ".ts"), re.compile(r"sequelize\.define\(\s*['\"](\w+)['\"]"), True),
    ((".php",), re.compile(r"Schema::create\(\s*['\"](\w+)['\"]"), False),
    ((".rb",), re.compile(r"create_table\s+[:\"'](\w+)"), False),
]


@dataclass(frozen=True)
class SourceFile:
    """A source file and the transform that migrates it."""

    path: str
    transform: str


@dataclass(frozen=True)
class QuerySite:
    path: str
    line: int
    label: str
    snippet: str


@dataclass
class SourceInventory:
    routes: List[SourceFile] = field(default_factory=list)
    templates: List[SourceFile] = field(default_factory=list)
    tables: List[str] = field(default_factory=list)
    complex_queries: List[QuerySite] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "routes": [{"path": r.path, "transform": r.transform} for r in self.routes],
            "templates": [{"path": t.path, "transform": t.transform} for t in self.templates],
            "tables": list(self.tables),
            "complex_queries": [
                {"path": q.path, "line": q.line, "label": q.label} for q in self.complex_queries
            ],
        }


# ---------------------------------------------------------------------------
# File walking
# ---------------------------------------------------------------------------

def iter_source_files(root, exclude_dirs=None):
    """Yield (relative posix path, Path) for every file under ``root``.

    Excluded directories are pruned during the walk; output is sorted so
    repeated scans of the same tree produce the same order.
    """
    root = Path(root)
    exclude = set(exclude_dirs or DEFAULT_EXCLUDE_DIRS)
    results = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in exclude]
        for name in filenames:
            full = Path(dirpath) / name
            results.append((full.relative_to(root).as_posix(), full))
    results.sort(key=lambda item: item[0])
    return results


def _read(path):
    try:
        if path.stat().st_size > MAX_SCAN_BYTES:
            return None
        return path.read_text(encoding="utf-8", errors="replace")
    except (OSError, IOError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _classify_route(framework, rel, full):
    """Return the route transform name for a file, or None."""
    name = Path(rel).name
    suffix = Path(rel).suffix
    parts = Path(rel).parts

    if framework == "express" and suffix in (".js", ".ts", ".mjs", ".cjs"):
        content = _read(full)
        if content and _EXPRESS_ROUTE_RE.search(content):
            return "express-routes"
    elif framework == "nextjs" and suffix in (".js", ".ts"):
        if "api" in parts and "pages" in parts and not name.startswith("_"):
            return "nextjs-api-route"
        if "app" in parts and Path(rel).stem == "route":
            return "nextjs-app-route"
    elif framework == "django" and name == "urls.py":
        return "django-urls"
    elif framework == "flask" and suffix == ".py":
        content = _read(full)
        if content and _FLASK_ROUTE_RE.search(content):
            return "flask-routes"
    elif framework == "fastapi" and suffix == ".py":
        content = _read(full)
        if content and _FASTAPI_ROUTE_RE.search(content):
            return "fastapi-routes"
    elif framework == "laravel" and rel in ("routes/web.php", "routes/api.php"):
        return "laravel-routes"
    elif framework == "rails" and rel == "config/routes.rb":
        return "rails-routes"
    return None


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _classify_template(framework, rel):
    path = Path(rel)
    parts = path.parts
    if framework == "express" and "views" in parts:
        if path.suffix in (".ejs", ".html"):
            return "ejs-template"
        if path.suffix in (".hbs", ".pug", ".handlebars"):
            return "unsupported-template"
    elif framework in ("django", "flask", "fastapi"):
        if "templates" in parts and path.suffix in (".html", ".jinja", ".j2"):
            return "jinja-template"
    elif framework == "laravel" and rel.startswith("resources/views/"):
        if rel.endswith(".blade.php"):
            return "blade-template"
    elif framework == "rails" and rel.startswith("app/views/"):
        if path.suffix == ".erb":
            return "erb-template"
    elif framework == "nextjs" and path.suffix in (".jsx", ".tsx"):
        if "pages" in parts and "api" not in parts and not path.name.startswith("_"):
            return "unsupported-template"
        if "app" in parts and path.stem == "page":
            return "unsupported-template"
    return None


# ---------------------------------------------------------------------------
# Tables and complex queries
# ---------------------------------------------------------------------------

def _tables_in(suffix, content):
    found = []
    for extensions, regex, is_model in _TABLE_PATTERNS:
        if suffix not in extensions:
            continue
        for match in regex.finditer(content):
            name = match.group(1)
            found.append(table_name(name) if is_model else name)
    return found


def load_query_patterns(path=None):
    qp_path = Path(path) if path else QUERY_PATTERNS_PATH
    with open(qp_path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    compiled = {}
    for language, entries in data.get("patterns", {}).items():
        compiled[language] = [(re.compile(e["pattern"]), e["label"]) for e in entries]
    return compiled, data.get("extensions", {})


def _queries_in(rel, content, patterns):
    sites = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        for regex, label in patterns:
            if regex.search(line):
                sites.append(QuerySite(path=rel, line=lineno, label=label, snippet=line.strip()[:120]))
                break
    return sites


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def scan_sources(root, stack: DetectedStack, exclude_dirs=None,
                 query_patterns: Optional[Tuple[dict, dict]] = None) -> SourceInventory:
    """Build the SourceInventory for a detected stack.

    Args:
        root: Project root directory.
        stack: Result of detect_stack().
        exclude_dirs: Directory names to prune (default DEFAULT_EXCLUDE_DIRS).
        query_patterns: Optional pre-loaded (patterns, extensions) pair.

    Returns:
        SourceInventory with files sorted by path and tables de-duplicated
        in first-seen order.
    """
    inventory = SourceInventory()
    if not stack.is_recognized:
        return inventory

    patterns, extensions = query_patterns or load_query_patterns()
    language = stack.language or ""
    lang_patterns = patterns.get(language, [])
    lang_exts = tuple(extensions.get(language, []))
    seen_tables = set()

    for rel, full in iter_source_files(root, exclude_dirs):
        transform = _classify_route(stack.framework, rel, full)
        if transform:
            inventory.routes.append(SourceFile(path=rel, transform=transform))

        template = _classify_template(stack.framework, rel)
        if template:
            inventory.templates.append(SourceFile(path=rel, transform=template))

        suffix = full.suffix
        if suffix in (".py", ".prisma", ".js", ".ts", ".php", ".rb"):
            content = _read(full)
            if content is None:
                continue
            for table in _tables_in(suffix, content):
                if table and table not in seen_tables:
                    seen_tables.add(table)
                    inventory.tables.append(table)
            if suffix in lang_exts:
                inventory.complex_queries.extend(_queries_in(rel, content, lang_patterns))

    logger.info(
        "Inventory: %d route file(s), %d template(s), %d table(s), %d complex query site(s)",
        len(inventory.routes), len(inventory.templates),
        len(inventory.tables), len(inventory.complex_queries),
    )
    return inventory
