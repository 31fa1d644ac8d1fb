#!/usr/bin/env python3
# CUI // SP-CTI
"""Source Stack Detector for goport conversions.

Inspects the manifest files at the root of a project directory
(package.json, requirements.txt, pyproject.toml, Pipfile, composer.json,
Gemfile, go.mod) and classifies the web framework by the dependency names
they declare. Signatures come from
context/conversion/framework_signatures.json so new frameworks can be added
without code changes.

An existing go.mod always wins: the project is already Go and should be
extended, not converted. Directories with no known dependency yield an
``unrecognized`` stack instead of an error.

Usage:
    python -m goport.modernization.stack_detector --path /path/to/project --json
"""

import argparse
import json
import logging
import re
import sys
from pathlib import Path

from goport.schemas.conversion import FRAMEWORK_LANGUAGES, DetectedStack, Evidence

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SIGNATURES_PATH = BASE_DIR / "context" / "conversion" / "framework_signatures.json"

logger = logging.getLogger("goport.modernization.stack_detector")

_GEM_RE = re.compile(r"""^\s*gem\s+['"]([^'"]+)['"]""", re.MULTILINE)
_TOML_KEY_RE = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*=", re.MULTILINE)
_QUOTED_REQ_RE = re.compile(r"""["']([A-Za-z0-9_.\-]+)(?:\[[^\]]*\])?\s*(?:[<>=!~;@ ][^"']*)?["']""")
_TOML_STRING_RE = re.compile(r"\"[^\"]*\"|'[^']*'")
_TOML_TABLE_RE = re.compile(r"^\[\[?\s*([^\]]+?)\s*\]\]?\s*(?:#.*)?$")
# Tables whose keys are requirement names (Poetry, Pipfile)
_DEP_TABLE_RE = re.compile(r"^(?:tool\.poetry(?:\.group\.[\w\-]+)?\.(?:dev-)?dependencies|(?:dev-)?packages)$")
_REQ_SPLIT_RE = re.compile(r"[\s\[<>=!~;@]")


def load_signatures(path=None):
    """Load the framework signature table.

    Args:
        path: Optional override for the JSON table location.

    Returns:
        dict parsed from framework_signatures.json.
    """
    sig_path = Path(path) if path else SIGNATURES_PATH
    with open(sig_path, "r", encoding="utf-8") as fh:
        return json.load(fh)


# ---------------------------------------------------------------------------
# Manifest parsing
# ---------------------------------------------------------------------------

def _normalize_dep(name):
    return name.strip().lower().replace("_", "-")


def _read_text(path):
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except (OSError, IOError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


def _deps_from_npm(content, key_sets=("dependencies", "devDependencies", "peerDependencies")):
    data = json.loads(content)
    if not isinstance(data, dict):
        return set()
    deps = set()
    for key in key_sets:
        section = data.get(key) or {}
        if isinstance(section, dict):
            deps.update(_normalize_dep(k) for k in section)
    return deps


def _deps_from_composer(content):
    return _deps_from_npm(content, key_sets=("require", "require-dev"))


def _deps_from_gemfile(content):
    return {_normalize_dep(m) for m in _GEM_RE.findall(content)}


def _deps_from_requirements(content):
    deps = set()
    for raw in content.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        name = _REQ_SPLIT_RE.split(line, 1)[0]
        if name:
            deps.add(_normalize_dep(name))
    return deps


def _deps_from_pyproject(content):
    """Collect requirement names from PEP 621 arrays and Poetry/Pipenv tables.

    Only ``[project] dependencies``, ``[project.optional-dependencies]`` and
    the Poetry/Pipenv dependency tables are read. Keywords, classifiers and
    ``[tool.*]`` settings never count as dependencies.
    """
    deps = set()
    table = ""
    in_array = False
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if in_array:
            deps.update(_normalize_dep(m) for m in _QUOTED_REQ_RE.findall(line))
            in_array = "]" not in _TOML_STRING_RE.sub("", line)
            continue
        header = _TOML_TABLE_RE.match(line)
        if header:
            table = header.group(1).replace('"', "").replace("'", "")
            continue
        key = _TOML_KEY_RE.match(line)
        if not key:
            continue
        if _DEP_TABLE_RE.match(table):
            deps.add(_normalize_dep(key.group(1)))
        elif (table == "project" and key.group(1) == "dependencies") or table == "project.optional-dependencies":
            value = line[key.end():].strip()
            if value.startswith("["):
                deps.update(_normalize_dep(m) for m in _QUOTED_REQ_RE.findall(value))
                in_array = "]" not in _TOML_STRING_RE.sub("", value)
    deps.discard("python")
    return deps


_PARSERS = {
    "npm": _deps_from_npm,
    "composer": _deps_from_composer,
    "gemfile": _deps_from_gemfile,
    "requirements": _deps_from_requirements,
    "pyproject": _deps_from_pyproject,
}


def read_manifest_dependencies(manifest_path, fmt):
    """Return the set of normalized dependency names declared in a manifest.

    Unreadable or malformed manifests are logged and treated as empty.
    """
    content = _read_text(manifest_path)
    if content is None:
        return set()
    try:
        return _PARSERS[fmt](content)
    except (ValueError, KeyError) as exc:
        logger.warning("Ignoring malformed manifest %s: %s", manifest_path, exc)
        return set()


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def _detect_database_hint(all_deps, signatures):
    for db_name, hints in signatures.get("database_hints", {}).items():
        if any(_normalize_dep(h) in all_deps for h in hints):
            return db_name
    return None


def detect_stack(path, signatures=None):
    """Classify the framework of the project at ``path``.

    Args:
        path: Project root directory.
        signatures: Optional pre-loaded signature table.

    Returns:
        DetectedStack. ``framework`` is "go" when go.mod exists and
        "unrecognized" when no signature matched.
    """
    root = Path(path)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    signatures = signatures or load_signatures()

    go_marker = signatures.get("go_marker", "go.mod")
    if (root / go_marker).is_file():
        logger.info("Found %s in %s; project is already Go", go_marker, root)
        return DetectedStack(
            framework="go",
            evidence=(Evidence(manifest=go_marker, dependency="module"),),
            language="go",
            manifests=(go_marker,),
            reason="existing go.mod: extend, don't convert",
        )

    manifest_deps = {}
    for manifest, meta in signatures.get("manifests", {}).items():
        manifest_path = root / manifest
        if not manifest_path.is_file():
            continue
        manifest_deps[manifest] = read_manifest_dependencies(manifest_path, meta["format"])
        logger.debug("%s declares %d dependencies", manifest, len(manifest_deps[manifest]))

    found = tuple(sorted(manifest_deps))
    all_deps = set()
    for deps in manifest_deps.values():
        all_deps.update(deps)

    frontend = tuple(
        lib for lib in signatures.get("frontend_libraries", [])
        if lib in manifest_deps.get("package.json", set())
    )
    db_hint = _detect_database_hint(all_deps, signatures)

    for entry in signatures.get("frameworks", []):
        evidence = []
        for manifest in entry["manifests"]:
            deps = manifest_deps.get(manifest)
            if not deps:
                continue
            for dep in entry["dependencies"]:
                if _normalize_dep(dep) in deps:
                    evidence.append(Evidence(manifest=manifest, dependency=dep))
        if evidence:
            framework = entry["framework"]
            logger.info("Detected %s (%s)", framework, ", ".join(str(e) for e in evidence))
            return DetectedStack(
                framework=framework,
                evidence=tuple(evidence),
                language=FRAMEWORK_LANGUAGES.get(framework),
                manifests=found,
                frontend=frontend,
                database_hint=db_hint,
            )

    if not found:
        reason = "no manifest files found"
    else:
        reason = f"no known framework dependency in {', '.join(found)}"
    logger.info("Unrecognized stack in %s: %s", root, reason)
    language = None
    if found:
        language = signatures["manifests"][found[0]].get("language")
    return DetectedStack(
        framework="unrecognized",
        language=language,
        manifests=found,
        frontend=frontend,
        database_hint=db_hint,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="Detect the web framework of a project")
    parser.add_argument("--path", default=".", help="Project directory (default: cwd)")
    parser.add_argument("--json", action="store_true", dest="json_output", help="JSON output")
    args = parser.parse_args()

    try:
        stack = detect_stack(args.path)
    except NotADirectoryError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    if args.json_output:
        print(json.dumps(stack.to_dict(), indent=2))
    else:
        print(f"Framework: {stack.framework}")
        for ev in stack.evidence:
            print(f"  evidence: {ev}")
        if stack.reason:
            print(f"  reason:   {stack.reason}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
