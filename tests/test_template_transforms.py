#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for goport.modernization.template_transforms (views -> templ)."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from goport.modernization.template_transforms import (
    REVIEW_MARKER,
    component_name,
    destination_component,
    template_destination,
    transform_template,
)
from tests.conftest import DJANGO_APP, EXPRESS_APP, LARAVEL_APP, RAILS_APP


class TestNaming:
    @pytest.mark.parametrize("source,expected", [
        ("app/views/users/show.html.erb", "UsersShow"),
        ("blog/templates/blog/index.html", "BlogIndex"),
        ("resources/views/posts/show.blade.php", "PostsShow"),
        ("views/index.ejs", "Index"),
    ])
    def test_component_name(self, source, expected):
        assert component_name(source) == expected

    def test_destination(self):
        assert template_destination("app/views/users/show.html.erb") == "templates/users_show.templ"

    def test_component_name_without_words(self):
        assert component_name("app/views/.html.erb") == "Page"

    @pytest.mark.parametrize("destination,expected", [
        ("templates/users_show.templ", "UsersShow"),
        ("templates/home_2.templ", "Home2"),
        ("templates/layout_3.templ", "Layout3"),
    ])
    def test_destination_component(self, destination, expected):
        assert destination_component(destination) == expected


class TestEjs:
    def test_loop_and_expressions(self):
        result = transform_template("ejs-template", EXPRESS_APP["views/index.ejs"], "views/index.ejs")
        assert result.component == "Index"
        assert list(result.params.items()) == [
            ("title", "string"),
            ("users", "[]map[string]string"),
        ]
        assert result.signature == "title string, users []map[string]string"
        assert "{ title }" in result.body
        assert "for _, user := range users {" in result.body
        assert '{ user["name"] }' in result.body
        assert result.review_items == []

    def test_unescaped_output_is_raw(self):
        result = transform_template("ejs-template", "<%- html %>", "views/x.ejs")
        assert "@templ.Raw(html)" in result.body

    def test_literal_braces_reported_once(self):
        source = "views/page.ejs"
        content = (
            "<style>p { color: red; }</style>\n"
            "<p><%= title %></p>\n"
            "<script>function f() { return 1; }</script>\n"
        )
        result = transform_template("ejs-template", content, source)
        braces = [item for item in result.review_items if "literal braces" in item]
        assert len(braces) == 1


class TestJinja:
    def test_extends_is_reviewed_and_loop_translated(self):
        source = "blog/templates/blog/index.html"
        result = transform_template("jinja-template", DJANGO_APP[source], source)
        assert result.component == "BlogIndex"
        assert "for _, post := range posts {" in result.body
        assert '{ post["title"] }' in result.body
        assert REVIEW_MARKER in result.body
        assert any("inheritance" in item for item in result.review_items)

    def test_if_else(self):
        content = "{% if user %}hi {{ user }}{% else %}anon{% endif %}"
        result = transform_template("jinja-template", content, "templates/x.html")
        assert 'if user != "" {' in result.body
        assert "} else {" in result.body
        assert result.review_items == []

    def test_filters_are_reported(self):
        result = transform_template("jinja-template", "{{ name|upper }}", "templates/x.html")
        assert "{ name }" in result.body
        assert any("upper" in item for item in result.review_items)

    def test_unclosed_block_is_closed_and_reported(self):
        result = transform_template("jinja-template", "{% for a in items %}{{ a }}", "templates/x.html")
        assert result.body.rstrip().endswith("}")
        assert any("unclosed for" in item for item in result.review_items)


class TestErbAndBlade:
    def test_erb_each(self):
        source = "app/views/articles/index.html.erb"
        result = transform_template("erb-template", RAILS_APP[source], source)
        assert "for _, article := range articles {" in result.body
        assert '{ article["title"] }' in result.body

    def test_blade_object_access(self):
        source = "resources/views/posts/show.blade.php"
        result = transform_template("blade-template", LARAVEL_APP[source], source)
        assert result.params == {"post": "map[string]string"}
        assert '{ post["title"] }' in result.body

    def test_blade_csrf_needs_review(self):
        result = transform_template("blade-template", "<form>@csrf</form>", "resources/views/f.blade.php")
        assert any("CSRF" in item for item in result.review_items)


class TestUnsupported:
    def test_stub_component(self):
        result = transform_template("unsupported-template", "<div/>", "pages/index.jsx")
        assert result.component == "Index"
        assert REVIEW_MARKER in result.body
        assert result.signature == ""
        assert len(result.review_items) == 1

    def test_unknown_transform(self):
        assert transform_template("mustache-template", "", "x") is None
