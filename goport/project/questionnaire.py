#!/usr/bin/env python3
# CUI // SP-CTI
"""Interactive questionnaire: scope, database, admin UI, deployment.

Questions are always asked in the same order and every one is a numbered
menu. Answers already supplied (CLI flags, goport.yaml, GOPORT_* env vars)
are not asked again. Decision points (unsupported framework, SPA,
untranslatable queries) are asked only when they apply.

Everything is asked before a single file is written, so cancelling here
leaves the project untouched.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from goport.errors import DECISION_POINTS, ConversionCancelled
from goport.schemas.conversion import DATABASES, DetectedStack

logger = logging.getLogger("goport.project.questionnaire")

# (key, title, [(value, label), ...])
QUESTIONS: List[Tuple[str, str, List[Tuple[object, str]]]] = [
    ("scope", "Migration scope", [
        ("full", "Full conversion (handlers, templ views, cleanup list)"),
        ("incremental", "Incremental (Go in front, proxy the rest to the legacy app)"),
        ("backend-only", "Backend only (JSON API, keep the existing frontend)"),
    ]),
    ("database", "Database", [
        ("postgres", "PostgreSQL (pgx)"),
        ("sqlite", "SQLite (modernc.org/sqlite, no cgo)"),
        ("mysql", "MySQL (go-sql-driver/mysql)"),
    ]),
    ("admin_ui", "Admin UI", [
        (False, "No admin UI"),
        (True, "Generate a basic admin page"),
    ]),
    ("deploy", "Deployment target", [
        ("docker", "Docker image"),
        ("fly", "Fly.io (Dockerfile + fly.toml)"),
        ("systemd", "systemd service on a VM"),
        ("none", "None"),
    ]),
]

DECISION_ORDER = ("unsupported", "spa", "complex_query")

# Choice taken by --yes for a decision point nobody answered
DECISION_DEFAULTS = {"unsupported": "generic", "spa": "keep-frontend", "complex_query": "defer"}

PromptFunc = Callable[[str, List[str], int], int]


@dataclass
class Answers:
    """Resolved questionnaire answers."""

    scope: str = "full"
    database: str = "postgres"
    admin_ui: bool = False
    deploy: str = "docker"
    module_prefix: str = ""
    go_version: str = "1.22"
    site_name: str = ""
    decisions: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def _prompt_choice(prompt: str, options: List[str], default: int = 0) -> int:
    """Display a numbered list and prompt for a single selection.

    Args:
        prompt: Header text for the prompt.
        options: List of option display strings.
        default: Zero-based default selection index.

    Returns:
        Zero-based index of selected option.
    """
    print(f"\n{prompt}")
    print("-" * 50)
    for i, opt in enumerate(options):
        marker = " *" if i == default else ""
        print(f"  {i + 1}. {opt}{marker}")
    print()

    while True:
        raw = input(f"Enter choice [1-{len(options)}] (default={default + 1}): ").strip()
        if not raw:
            return default
        try:
            choice = int(raw) - 1
            if 0 <= choice < len(options):
                return choice
            print(f"  Please enter a number between 1 and {len(options)}.")
        except ValueError:
            print("  Please enter a valid number.")


def required_decisions(stack: DetectedStack, has_complex_queries: bool = False) -> List[str]:
    """Decision points that apply to a stack, in asking order."""
    needed = []
    if not stack.is_recognized and not stack.is_go:
        needed.append("unsupported")
    if stack.is_frontend_heavy:
        needed.append("spa")
    if has_complex_queries:
        needed.append("complex_query")
    return needed


def _ask(prompt: PromptFunc, title: str, options: List[Tuple[object, str]], default) -> object:
    values = [value for value, _ in options]
    default_idx = values.index(default) if default in values else 0
    try:
        idx = prompt(title, [label for _, label in options], default_idx)
    except (EOFError, KeyboardInterrupt):
        raise ConversionCancelled()
    if not isinstance(idx, int) or not 0 <= idx < len(options):
        idx = default_idx
    return values[idx]


def ask_questions(stack: DetectedStack, defaults: Optional[dict] = None,
                  provided: Optional[dict] = None, prompt: Optional[PromptFunc] = None,
                  assume_yes: bool = False, decisions_needed: Iterable[str] = ()) -> Answers:
    """Resolve every answer, prompting only for the ones still missing.

    Args:
        stack: Detection result (seeds the database default).
        defaults: Tool defaults, e.g. ``{"scope": "full", ...}``.
        provided: Already-answered values from flags/yaml/env, including a
            ``decisions`` mapping.
        prompt: Callable(title, option labels, default index) -> index.
            Defaults to an ``input()`` menu.
        assume_yes: Accept the default for every unanswered question.
        decisions_needed: Decision keys to resolve (see required_decisions).

    Raises:
        ConversionCancelled: EOF or Ctrl-C at a prompt.
    """
    defaults = dict(defaults or {})
    provided = {k: v for k, v in (provided or {}).items() if v is not None}
    prompt = prompt or _prompt_choice
    if stack.database_hint in DATABASES and "database" not in provided:
        defaults["database"] = stack.database_hint

    decisions = dict(provided.get("decisions") or {})
    answers = Answers(
        module_prefix=provided.get("module_prefix", defaults.get("module_prefix", "")) or "",
        go_version=str(defaults.get("go_version", "1.22")),
        site_name=provided.get("site_name", defaults.get("site_name", "")) or "",
    )

    for key in DECISION_ORDER:
        if key not in decisions_needed or key in decisions:
            continue
        error_cls = DECISION_POINTS[key]
        options = list(error_cls.choices.items())
        if assume_yes:
            decisions[key] = DECISION_DEFAULTS[key]
            logger.info("Decision %s defaulted to %s", key, decisions[key])
            continue
        decisions[key] = _ask(prompt, f"Decision: {error_cls.__doc__.strip()}", options, DECISION_DEFAULTS[key])
        if key == "unsupported" and decisions[key] == "halt":
            break
    answers.decisions = decisions
    if decisions.get("unsupported") == "halt":
        return answers

    forced_scope = {"keep-frontend": "backend-only", "progressive": "incremental"}.get(decisions.get("spa"))
    if forced_scope and "scope" not in provided:
        provided["scope"] = forced_scope

    total = len(QUESTIONS)
    for step, (key, title, options) in enumerate(QUESTIONS, start=1):
        if key in provided:
            value = provided[key]
        elif assume_yes:
            value = defaults.get(key, options[0][0])
        else:
            value = _ask(prompt, f"Step {step}/{total}: {title}", options, defaults.get(key, options[0][0]))
        setattr(answers, key, value)

    logger.debug("Answers: %s", answers.to_dict())
    return answers
