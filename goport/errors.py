#!/usr/bin/env python3
# CUI // SP-CTI
"""goport: structured exception hierarchy.

Every failure a conversion run can hit is one of these. None of them is
retried automatically: the permanent ones stop the run, and the
``DecisionRequiredError`` family carries the menu of choices the user has
to pick from before the run can continue.

Usage:
    from goport.errors import UnsupportedFrameworkError

    raise UnsupportedFrameworkError("No known framework in package.json")
"""

from typing import Dict, List, Optional


class GoportError(Exception):
    """Base exception for all goport errors.

    Attributes:
        stage: Pipeline stage that raised ("detect", "plan", "emit", ...).
        recoverable: Whether the run can continue once the user decides.
    """

    exit_code = 1

    def __init__(self, message: str, stage: str = "", recoverable: bool = False):
        super().__init__(message)
        self.stage = stage
        self.recoverable = recoverable


class GoportPermanentError(GoportError):
    """Permanent error: re-running with the same input will not help."""

    def __init__(self, message: str, stage: str = ""):
        super().__init__(message, stage=stage, recoverable=False)


class ConfigurationError(GoportPermanentError):
    """Configuration error: missing or invalid goport.yaml / config value."""

    def __init__(self, message: str, config_key: str = ""):
        super().__init__(message, stage="config")
        self.config_key = config_key


class TemplateRenderError(GoportPermanentError):
    """A built-in template is missing or failed to render."""

    def __init__(self, message: str, template: str = ""):
        super().__init__(message, stage="emit")
        self.template = template


class AlreadyGoError(GoportPermanentError):
    """The target already has a go.mod: extend it, don't convert it."""

    exit_code = 0

    def __init__(self, message: str = "", go_mod: str = "go.mod"):
        super().__init__(
            message or f"Project already contains {go_mod}; extend it instead of converting",
            stage="detect",
        )
        self.go_mod = go_mod


class ConversionCancelled(GoportError):
    """The user aborted the interactive session."""

    exit_code = 130

    def __init__(self, message: str = "Conversion cancelled by user",
                 written: Optional[List[str]] = None):
        super().__init__(message, stage="ask", recoverable=False)
        self.written = list(written or [])


class DecisionRequiredError(GoportError):
    """A decision point was reached and no answer was supplied.

    Attributes:
        decision: Decision point key ("unsupported", "complex_query", "spa").
        choices: Mapping of choice key -> human-readable description.
    """

    exit_code = 2
    decision = ""
    choices: Dict[str, str] = {}

    def __init__(self, message: str, stage: str = "plan"):
        super().__init__(message, stage=stage, recoverable=True)


class UnsupportedFrameworkError(DecisionRequiredError):
    """Source framework is not one goport knows how to convert."""

    decision = "unsupported"
    choices = {
        "generic": "Attempt a best-effort generic conversion",
        "halt": "Stop here and provide more context about the project",
    }


class ComplexQueryError(DecisionRequiredError):
    """An ORM query pattern cannot be translated to a sqlc query."""

    decision = "complex_query"
    choices = {
        "split": "Split into simpler queries",
        "raw": "Keep it as a raw SQL query",
        "defer": "Leave a TODO marker and handle it later",
    }


class FrontendHeavyError(DecisionRequiredError):
    """The project is a frontend-heavy SPA."""

    decision = "spa"
    choices = {
        "keep-frontend": "Keep the frontend, convert only the backend",
        "progressive": "Adopt HTMX progressively, page by page",
        "rewrite": "Rewrite the frontend as templ + HTMX",
    }


DECISION_POINTS = {
    cls.decision: cls
    for cls in (UnsupportedFrameworkError, ComplexQueryError, FrontendHeavyError)
}
