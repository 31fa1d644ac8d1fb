#!/usr/bin/env python3
# CUI // SP-CTI
"""Load goport tool defaults and per-project goport.yaml answers.

Two layers, both YAML:

    args/goport_config.yaml   tool defaults (Go version, library versions,
                              module prefix, question defaults, scan excludes)
    <project>/goport.yaml     pre-answered questions for one project

Env var overrides use the ``GOPORT_`` prefix and take precedence over
yaml values; CLI flags take precedence over both (applied by the CLI).

Usage:
    python -m goport.project.config_loader --dir /path/to/project --json
"""

import argparse
import json
import os
import sys
from copy import deepcopy
from pathlib import Path

import yaml

from goport.errors import ConfigurationError
from goport.schemas.conversion import DATABASES, DEPLOY_TARGETS, SCOPES

BASE_DIR = Path(__file__).resolve().parent.parent.parent
TOOL_CONFIG_PATH = BASE_DIR / "args" / "goport_config.yaml"

PROJECT_CONFIG_FILENAME = "goport.yaml"
PROJECT_CONFIG_VERSION = 1

DEFAULT_TOOL_CONFIG = {
    "go": {"version": "1.22", "module_prefix": ""},
    "libraries": {
        "echo": "v4.12.0",
        "templ": "v0.2.771",
        "goose": "v3.22.1",
        "pgx": "v5.7.1",
        "sqlite": "v1.33.1",
        "mysql": "v1.8.1",
        "godotenv": "v1.5.1",
    },
    "defaults": {"scope": "full", "database": "postgres", "admin_ui": False, "deploy": "docker"},
    "site": {"name": "", "htmx_version": "2.0.3", "port": 8080},
    "scan": {"exclude_dirs": []},
}

KNOWN_PROJECT_KEYS = {
    "version", "name", "module_prefix", "site_name",
    "scope", "database", "admin_ui", "deploy", "decisions",
}
DECISION_CHOICES = {
    "unsupported": ("generic", "halt"),
    "complex_query": ("split", "raw", "defer"),
    "spa": ("keep-frontend", "progressive", "rewrite"),
}

# ── Env-var override mapping ─────────────────────────────────────────────

_ENV_MAP = {
    "GOPORT_SCOPE": ("scope",),
    "GOPORT_DATABASE": ("database",),
    "GOPORT_ADMIN_UI": ("admin_ui",),
    "GOPORT_DEPLOY": ("deploy",),
    "GOPORT_MODULE_PREFIX": ("module_prefix",),
}


# ── Helpers ──────────────────────────────────────────────────────────────

def _deep_merge(base: dict, override: dict) -> dict:
    merged = deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _deep_set(d: dict, keys: tuple, value):
    """Set a nested dict value by key path, creating intermediate dicts."""
    for k in keys[:-1]:
        d = d.setdefault(k, {})
    d[keys[-1]] = value


def parse_bool(val):
    """Parse yes/no style values; returns the original value when unrecognized."""
    if isinstance(val, bool):
        return val
    text = str(val).strip().lower()
    if text in ("1", "true", "yes", "y", "on"):
        return True
    if text in ("0", "false", "no", "n", "off"):
        return False
    return val


# ── Tool config ──────────────────────────────────────────────────────────

def load_tool_config(path=None) -> dict:
    """Load args/goport_config.yaml merged over the built-in defaults.

    Raises:
        ConfigurationError: the file exists but is not a valid YAML mapping.
    """
    config_path = Path(path) if path else TOOL_CONFIG_PATH
    if not config_path.exists():
        return deepcopy(DEFAULT_TOOL_CONFIG)
    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse {config_path}: {exc}", config_key=str(config_path))
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must be a YAML mapping", config_key=str(config_path))
    return _deep_merge(DEFAULT_TOOL_CONFIG, raw)


# ── Project config ───────────────────────────────────────────────────────

def load_project_config(directory=None, file_path=None) -> dict:
    """Load goport.yaml from a project directory.

    A missing file is not an error: the result is empty and valid, and
    env overrides still apply.

    Returns:
        dict with keys:
            raw (dict): Original yaml content.
            normalized (dict): Content with env overrides applied.
            file_path (str): Resolved file path.
            found (bool): Whether the file exists.
            valid (bool): True if no errors.
            errors (list[str]): Validation errors.
            warnings (list[str]): Validation warnings.
    """
    if file_path:
        config_path = Path(file_path)
    else:
        base = Path(directory) if directory else Path.cwd()
        config_path = base / PROJECT_CONFIG_FILENAME

    result = {
        "raw": {},
        "normalized": {},
        "file_path": str(config_path),
        "found": config_path.exists(),
        "valid": False,
        "errors": [],
        "warnings": [],
    }

    raw = {}
    if result["found"]:
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            result["errors"].append(f"YAML parse error: {exc}")
            return result
        if not isinstance(raw, dict):
            result["errors"].append(f"{PROJECT_CONFIG_FILENAME} root must be a YAML mapping")
            return result
        result["raw"] = raw

        version = raw.get("version")
        if version is not None and version != PROJECT_CONFIG_VERSION:
            result["warnings"].append(
                f"{PROJECT_CONFIG_FILENAME} version {version} differs from expected {PROJECT_CONFIG_VERSION}"
            )

    normalized = _apply_env_overrides(deepcopy(raw))
    if "admin_ui" in normalized:
        normalized["admin_ui"] = parse_bool(normalized["admin_ui"])
    result["normalized"] = normalized

    errors, warnings = validate_project_config(normalized)
    result["errors"] = errors
    result["warnings"] += warnings
    result["valid"] = len(errors) == 0
    return result


def _apply_env_overrides(config: dict) -> dict:
    """Override config values from GOPORT_* environment variables."""
    for env_var, key_path in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None and val != "":
            _deep_set(config, key_path, val)
    return config


def validate_project_config(config: dict) -> tuple:
    """Validate answer values.

    Returns:
        (errors: list[str], warnings: list[str])
    """
    errors = []
    warnings = []

    for key in sorted(set(config) - KNOWN_PROJECT_KEYS):
        warnings.append(f"Unknown key '{key}' ignored")

    for key, allowed in (("scope", SCOPES), ("database", DATABASES), ("deploy", DEPLOY_TARGETS)):
        value = config.get(key)
        if value is not None and value not in allowed:
            errors.append(f"{key} must be one of {', '.join(allowed)} (got '{value}')")

    admin_ui = config.get("admin_ui")
    if admin_ui is not None and not isinstance(admin_ui, bool):
        errors.append(f"admin_ui must be true or false (got '{admin_ui}')")

    decisions = config.get("decisions")
    if decisions is not None:
        if not isinstance(decisions, dict):
            errors.append("decisions must be a mapping")
        else:
            for key, value in decisions.items():
                allowed = DECISION_CHOICES.get(key)
                if allowed is None:
                    warnings.append(f"Unknown decision point '{key}' ignored")
                elif value not in allowed:
                    errors.append(f"decisions.{key} must be one of {', '.join(allowed)} (got '{value}')")

    name = config.get("name")
    if name is not None and not str(name).strip():
        errors.append("name must not be empty")

    return errors, warnings


# ── CLI ──────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Show goport configuration for a project")
    parser.add_argument("--dir", default=".", help="Project directory")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    result = load_project_config(directory=args.dir)
    if args.json:
        print(json.dumps({"tool": load_tool_config(), "project": result}, indent=2, default=str))
    else:
        print(f"Project config: {result['file_path']} ({'found' if result['found'] else 'not found'})")
        for key, value in sorted(result["normalized"].items()):
            print(f"  {key}: {value}")
        for err in result["errors"]:
            print(f"[ERROR] {err}", file=sys.stderr)
        for warn in result["warnings"]:
            print(f"[WARN] {warn}", file=sys.stderr)
    return 0 if result["valid"] else 1


if __name__ == "__main__":
    sys.exit(main())
