#!/usr/bin/env python3
# CUI // SP-CTI
"""Identifier helpers shared by the inventory, transforms and scaffolder."""

import re

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")

# Go initialisms (golint convention)
_INITIALISMS = {"api", "id", "url", "http", "json", "html", "sql", "uuid", "ui"}


def split_words(name):
    """Split camelCase, snake_case, kebab-case and path-ish names into words."""
    return [w.lower() for w in _WORD_RE.findall(name or "")]


def snake_case(name):
    return "_".join(split_words(name))


def pascal_case(name):
    """Exported Go identifier for ``name`` ("user_detail" -> "UserDetail")."""
    parts = []
    for word in split_words(name):
        parts.append(word.upper() if word in _INITIALISMS else word.capitalize())
    ident = "".join(parts)
    if not ident:
        return "Handler"
    if ident[0].isdigit():
        ident = "N" + ident
    return ident


def pluralize(word):
    if not word:
        return word
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def table_name(model_name):
    """Conventional table name for an ORM model class ("BlogPost" -> "blog_posts")."""
    words = split_words(model_name)
    if not words:
        return ""
    words[-1] = pluralize(words[-1])
    return "_".join(words)


def go_package_name(name):
    """Lower-case Go package/module segment."""
    cleaned = re.sub(r"[^a-z0-9]", "", (name or "").lower())
    return cleaned or "app"


def module_slug(name):
    """Module path segment ("My App" -> "my-app")."""
    return "-".join(split_words(name)) or "app"
