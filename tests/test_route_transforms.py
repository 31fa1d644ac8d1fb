#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for goport.modernization.route_transforms."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from goport.modernization.route_transforms import (
    Route,
    derive_handler_name,
    normalize_path,
    route_group_name,
    transform_routes,
)
from tests.conftest import DJANGO_APP, EXPRESS_APP, LARAVEL_APP, RAILS_APP


class TestExpress:
    def test_named_handlers(self):
        table = transform_routes("express-routes", EXPRESS_APP["routes/users.js"], "routes/users.js")
        assert table.routes == [
            Route("GET", "/users", "ListUsers"),
            Route("GET", "/users/:id", "ShowUser"),
            Route("POST", "/users", "CreateUser"),
        ]
        assert table.review_items == []

    def test_inline_handler_gets_derived_name(self):
        table = transform_routes("express-routes", EXPRESS_APP["server.js"], "server.js")
        assert table.routes == [Route("GET", "/", "GetRoot")]

    def test_all_maps_to_any(self):
        table = transform_routes("express-routes", "app.all('/ping', ping)\n", "server.js")
        assert table.routes == [Route("ANY", "/ping", "Ping")]

    def test_router_mount_is_review_item(self):
        """A router mount cannot be resolved statically."""
        table = transform_routes("express-routes", "app.use('/api', apiRouter);\n", "server.js")
        assert table.routes == []
        assert len(table.review_items) == 1
        assert table.review_items[0].startswith("server.js:1:")


class TestPythonFrameworks:
    def test_django_converters(self):
        table = transform_routes("django-urls", DJANGO_APP["blog/urls.py"], "blog/urls.py")
        assert table.routes == [
            Route("ANY", "/", "Index"),
            Route("ANY", "/posts/:pk/", "Detail"),
        ]

    def test_django_include_is_review_item(self):
        content = "urlpatterns = [path('api/', include('api.urls'))]\n"
        table = transform_routes("django-urls", content, "urls.py")
        assert table.routes == []
        assert table.review_items

    def test_flask_methods(self):
        content = (
            "@app.route('/users/<int:user_id>', methods=['GET', 'POST'])\n"
            "def user_detail(user_id):\n"
            "    return ''\n"
        )
        table = transform_routes("flask-routes", content, "app.py")
        assert table.routes == [
            Route("GET", "/users/:user_id", "UserDetail"),
            Route("POST", "/users/:user_id", "UserDetail"),
        ]
        assert table.handlers == ["UserDetail"]

    def test_fastapi_path_params(self):
        content = "@router.get('/items/{item_id}')\nasync def read_item(item_id: int):\n    ...\n"
        table = transform_routes("fastapi-routes", content, "main.py")
        assert table.routes == [Route("GET", "/items/:item_id", "ReadItem")]


class TestPhpAndRuby:
    def test_laravel_controller_action(self):
        table = transform_routes("laravel-routes", LARAVEL_APP["routes/web.php"], "routes/web.php")
        assert table.routes == [Route("GET", "/posts/:post", "PostShow")]

    def test_laravel_resource_expands(self):
        content = "Route::resource('photos', PhotoController::class);\n"
        table = transform_routes("laravel-routes", content, "routes/web.php")
        assert len(table.routes) == 7
        assert Route("DELETE", "/photos/:photo", "PhotoDestroy") in table.routes

    def test_laravel_optional_parameter_is_review_item(self):
        content = "Route::get('/user/{name?}', [UserController::class, 'show']);\n"
        table = transform_routes("laravel-routes", content, "routes/web.php")
        assert table.routes == []
        assert table.review_items

    def test_rails_root_and_resources(self):
        table = transform_routes("rails-routes", RAILS_APP["config/routes.rb"], "config/routes.rb")
        assert table.routes == [
            Route("GET", "/", "HomeIndex"),
            Route("GET", "/articles", "ArticlesIndex"),
            Route("GET", "/articles/:id", "ArticlesShow"),
        ]
        assert table.review_items == []

    def test_rails_namespace_is_review_item(self):
        content = "Rails.application.routes.draw do\n  namespace :admin do\n  end\nend\n"
        table = transform_routes("rails-routes", content, "config/routes.rb")
        assert table.review_items


class TestNextjs:
    def test_pages_api_dynamic_segment(self):
        content = "export default function handler(req, res) { if (req.method === 'GET') {} }\n"
        table = transform_routes("nextjs-api-route", content, "pages/api/users/[id].js")
        assert table.routes == [Route("GET", "/api/users/:id", "GetAPIUsersID")]

    def test_app_router_exports(self):
        content = "export async function GET() {}\nexport async function POST() {}\n"
        table = transform_routes("nextjs-app-route", content, "app/api/items/route.ts")
        assert [r.method for r in table.routes] == ["GET", "POST"]
        assert {r.path for r in table.routes} == {"/api/items"}


class TestHelpers:
    @pytest.mark.parametrize("raw,expected", [
        ("users", "/users"),
        ("//a//b", "/a/b"),
        ("/", "/"),
    ])
    def test_normalize_path(self, raw, expected):
        assert normalize_path(raw) == expected

    def test_derive_handler_name(self):
        assert derive_handler_name("GET", "/users/:id") == "GetUsersID"

    def test_route_group_name(self):
        assert route_group_name("routes/users.js") == "RoutesUsers"
        assert route_group_name("blog/urls.py") == "BlogUrls"

    @pytest.mark.parametrize("source", ["app.js", "src/app.js", "app.py", "app/route.ts"])
    def test_route_group_name_for_entry_files(self, source):
        assert route_group_name(source) == "Routes"

    def test_unknown_transform(self):
        assert transform_routes("cobol-routes", "", "x") is None
