#!/usr/bin/env python3
# CUI // SP-CTI
"""
goport CLI Output Formatter
===========================

Human-friendly terminal output for the conversion summary. ``--json``
bypasses this module entirely.

Color is on for a TTY unless NO_COLOR is set; FORCE_COLOR=1 turns it on
for pipes as well.

Usage::

    from goport.cli.output_formatter import (
        format_banner, format_kv, format_section, format_list, format_table,
    )
"""

import os
import re
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

# ---------------------------------------------------------------------------
# ANSI color support
# ---------------------------------------------------------------------------

def _is_tty() -> bool:
    """Return True if stdout is connected to a terminal."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def colors_enabled() -> bool:
    # Also respect NO_COLOR (https://no-color.org/) and FORCE_COLOR env vars.
    if os.environ.get("FORCE_COLOR", "") == "1":
        return True
    return _is_tty() and os.environ.get("NO_COLOR") is None


class _Ansi:
    """ANSI escape-code helpers.  All methods return plain text when color
    is disabled (piped output, NO_COLOR, etc.)."""

    _CODES = {
        "reset":     "\033[0m",
        "bold":      "\033[1m",
        "dim":       "\033[2m",
        "underline": "\033[4m",
        "red":       "\033[31m",
        "green":     "\033[32m",
        "yellow":    "\033[33m",
        "blue":      "\033[34m",
        "magenta":   "\033[35m",
        "cyan":      "\033[36m",
    }

    @classmethod
    def wrap(cls, text: str, *styles: str) -> str:
        """Wrap *text* with one or more ANSI styles."""
        if not colors_enabled() or not styles:
            return text
        prefix = "".join(cls._CODES.get(s, "") for s in styles)
        return f"{prefix}{text}{cls._CODES['reset']}"

    @classmethod
    def strip(cls, text: str) -> str:
        """Remove all ANSI escape sequences from *text*."""
        return re.sub(r"\033\[[0-9;]*m", "", text)


C = _Ansi  # short alias

# ---------------------------------------------------------------------------
# Value-based auto-coloring
# ---------------------------------------------------------------------------

_VALUE_COLORS: List[Tuple[str, List[str]]] = [
    # (pattern_substring, [ansi_styles])
    ("error",       ["red"]),
    ("halt",        ["red"]),
    ("skipped",     ["yellow"]),
    ("review",      ["yellow"]),
    ("listed",      ["yellow"]),
    ("planned",     ["blue"]),
    ("preserved",   ["dim"]),
    ("written",     ["green"]),
    ("migrated",    ["green"]),
    ("created",     ["green"]),
]


def _auto_color_value(value: str) -> str:
    """Apply color to *value* if it matches a known status pattern."""
    lower = value.lower().strip()
    for pattern, styles in _VALUE_COLORS:
        if pattern in lower:
            return C.wrap(value, *styles)
    return value

# ---------------------------------------------------------------------------
# format_banner
# ---------------------------------------------------------------------------

_BANNER_STYLES = {
    "ok":      ("green",),
    "warning": ("yellow",),
    "error":   ("red", "bold"),
    "info":    ("blue",),
}


def format_banner(status: str, message: str) -> str:
    """Full-width colored status banner.

    Args:
        status: One of ok, warning, error, info.
        message: Text to display inside the banner.
    """
    styles = _BANNER_STYLES.get(status.lower(), ("blue",))
    icon_map = {"ok": "[OK]", "warning": "[!!]", "error": "[XX]", "info": "[ii]"}
    icon = icon_map.get(status.lower(), "[--]")
    width = max(60, len(message) + 12)
    rule = "=" * width
    inner = f"  {icon}  {message}"
    return "\n".join([
        C.wrap(rule, *styles),
        C.wrap(inner.ljust(width), *styles),
        C.wrap(rule, *styles),
    ])

# ---------------------------------------------------------------------------
# format_kv
# ---------------------------------------------------------------------------

def format_kv(pairs: Union[Dict[str, Any], List[Tuple[str, Any]]], title: Optional[str] = None) -> str:
    """Formatted key-value display with aligned colons and colored values."""
    items = list(pairs.items()) if isinstance(pairs, dict) else list(pairs)
    if not items:
        return ""

    max_key = max(len(str(k)) for k, _ in items)
    lines: List[str] = []
    if title:
        lines.append(C.wrap(f"  {title}", "bold", "underline"))
        lines.append("")
    for key, val in items:
        k_str = str(key).ljust(max_key)
        lines.append(f"  {C.wrap(k_str, 'cyan')} : {_auto_color_value(str(val))}")
    return "\n".join(lines)

# ---------------------------------------------------------------------------
# format_section
# ---------------------------------------------------------------------------

def format_section(title: str, width: int = 60) -> str:
    """Decorated section header with horizontal rules."""
    rule = "-" * width
    return "\n".join([
        C.wrap(rule, "dim"),
        C.wrap(f"  {title}", "bold", "magenta"),
        C.wrap(rule, "dim"),
    ])

# ---------------------------------------------------------------------------
# format_list
# ---------------------------------------------------------------------------

def format_list(items: Sequence[str], numbered: bool = False, bullet: str = "-") -> str:
    """Bulleted or numbered list."""
    lines: List[str] = []
    for i, item in enumerate(items, start=1):
        prefix = f"  {i}." if numbered else f"  {bullet}"
        lines.append(f"{prefix} {_auto_color_value(str(item))}")
    return "\n".join(lines)

# ---------------------------------------------------------------------------
# format_table
# ---------------------------------------------------------------------------

def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]], title: Optional[str] = None) -> str:
    """Render a plain ASCII table with auto-width columns."""
    str_rows = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in str_rows:
        for i, cell in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(cell))

    def _row_str(cells: List[str], color_fn: Optional[Callable] = None) -> str:
        parts = []
        for i, cell in enumerate(cells):
            display = color_fn(cell) if color_fn else cell
            parts.append(f" {display}{' ' * (widths[i] - len(cell))} ")
        return "|" + "|".join(parts) + "|"

    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    lines: List[str] = []
    if title:
        lines.append(C.wrap(f"  {title}", "bold", "underline"))
        lines.append("")
    lines.append(sep)
    lines.append(_row_str(list(headers), lambda c: C.wrap(c, "bold", "cyan")))
    lines.append(sep)
    for row in str_rows:
        lines.append(_row_str(row, _auto_color_value))
    lines.append(sep)
    return "\n".join(lines)
