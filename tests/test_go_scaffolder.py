#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for goport.builder.go_scaffolder: rendering and writing files."""

import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from goport.builder.go_scaffolder import GoScaffolder, emit_actions, routes_group
from goport.errors import ConversionCancelled, TemplateRenderError
from goport.modernization.conversion_planner import build_plan, plan_actions
from goport.modernization.source_inventory import scan_sources
from goport.modernization.stack_detector import detect_stack
from goport.schemas.conversion import FileAction, Stage


def _setup(root, **answers):
    stack = detect_stack(root)
    answers.setdefault("module_prefix", "github.com/acme")
    plan = build_plan(stack, answers, name=root.name)
    inventory = scan_sources(root, stack)
    actions = plan_actions(stack, plan, inventory, root)
    return plan, inventory, actions


@pytest.fixture
def converted(express_project):
    """Express sample converted with the default answers."""
    plan, inventory, actions = _setup(express_project, admin_ui=True)
    scaffolder = GoScaffolder(express_project, plan, inventory=inventory)
    results = scaffolder.emit(actions)
    return express_project, scaffolder, results


class TestEmit:
    """Files written for the sample Express project."""

    def test_go_mod(self, converted):
        root, _s, _r = converted
        go_mod = (root / "go.mod").read_text()
        assert go_mod.startswith("module github.com/acme/shop\n")
        assert "github.com/labstack/echo/v4" in go_mod
        assert "github.com/jackc/pgx/v5" in go_mod
        assert "github.com/a-h/templ" in go_mod

    def test_migration_and_queries(self, converted):
        root, _s, _r = converted
        migration = (root / "migrations" / "00001_init.sql").read_text()
        assert "-- +goose Up" in migration
        assert 'CREATE TABLE "users" (' in migration
        assert "BIGSERIAL" in migration
        queries = (root / "queries" / "users.sql").read_text()
        assert "-- name: GetUsersByID :one" in queries
        assert "$1" in queries

    def test_route_handlers(self, converted):
        root, _s, _r = converted
        routes = (root / "internal" / "handlers" / "routes_users_routes.go").read_text()
        assert "func RegisterRoutesUsersRoutes(e *echo.Echo, h *Handler) {" in routes
        assert 'e.GET("/users/:id", h.ShowUser)' in routes
        assert 'e.POST("/users", h.CreateUser)' in routes
        assert '_ = c.Param("id")' in routes

    def test_main_registers_route_groups(self, converted):
        root, _s, _r = converted
        main_go = (root / "cmd" / "server" / "main.go").read_text()
        assert "\thandlers.RegisterRoutesUsersRoutes(e, h)" in main_go
        assert "\thandlers.RegisterServerRoutes(e, h)" in main_go
        assert 'e.Group("/admin"' in main_go
        assert "httputil" not in main_go

    def test_component(self, converted):
        root, _s, _r = converted
        component = (root / "templates" / "index.templ").read_text()
        assert "templ Index(title string, users []map[string]string) {" in component
        assert "for _, user := range users {" in component

    def test_preserved_files_untouched(self, converted):
        root, _s, results = converted
        assert (root / "README.md").read_text() == "# Shop\n"
        statuses = {r.action.destination: r.status for r in results}
        assert statuses["README.md"] == "preserved"
        assert statuses["package.json"] == "listed"
        assert (root / "package.json").exists()

    def test_written_list_matches_disk(self, converted):
        root, scaffolder, results = converted
        assert scaffolder.written
        assert all((root / rel).is_file() for rel in scaffolder.written)
        assert len(scaffolder.written) == len([r for r in results if r.status == "written"])


class TestSafety:
    """No overwrites, dry runs, interrupts."""

    def test_dry_run_writes_nothing(self, express_project):
        before = sorted(p.relative_to(express_project) for p in express_project.rglob("*"))
        plan, inventory, actions = _setup(express_project)
        results = emit_actions(actions, plan, express_project, inventory=inventory, dry_run=True)
        after = sorted(p.relative_to(express_project) for p in express_project.rglob("*"))
        assert before == after
        assert {r.status for r in results} <= {"planned", "preserved", "listed"}

    def test_existing_file_is_skipped(self, express_project):
        plan, inventory, actions = _setup(express_project)
        (express_project / "go.mod").write_text("module keep\n")
        results = GoScaffolder(express_project, plan, inventory=inventory).emit(actions)
        assert (express_project / "go.mod").read_text() == "module keep\n"
        assert [r.status for r in results if r.action.destination == "go.mod"] == ["skipped"]

    def test_second_run_writes_nothing(self, express_project):
        plan, inventory, actions = _setup(express_project)
        GoScaffolder(express_project, plan, inventory=inventory).emit(actions)
        again = GoScaffolder(express_project, plan, inventory=inventory)
        results = again.emit(actions)
        assert again.written == []
        assert "written" not in {r.status for r in results}

    def test_interrupt_reports_written_files(self, express_project, monkeypatch):
        plan, inventory, actions = _setup(express_project)
        scaffolder = GoScaffolder(express_project, plan, inventory=inventory)
        original = scaffolder._emit_create
        calls = {"n": 0}

        def flaky(action):
            calls["n"] += 1
            if calls["n"] == 3:
                raise KeyboardInterrupt
            return original(action)

        monkeypatch.setattr(scaffolder, "_emit_create", flaky)
        with pytest.raises(ConversionCancelled) as exc_info:
            scaffolder.emit(actions)
        assert len(exc_info.value.written) == 2
        assert exc_info.value.exit_code == 130

    def test_missing_template(self, express_project):
        plan, inventory, _actions = _setup(express_project)
        action = FileAction(kind="create", destination="x.go", stage=Stage.FOUNDATION, template="nope.j2")
        with pytest.raises(TemplateRenderError):
            GoScaffolder(express_project, plan, inventory=inventory).emit([action])

    def test_unreadable_source_is_skipped(self, express_project):
        plan, inventory, _actions = _setup(express_project)
        action = FileAction(kind="migrate", source="gone.js", destination="internal/handlers/gone_routes.go",
                            stage=Stage.HANDLER, transform="express-routes")
        results = GoScaffolder(express_project, plan, inventory=inventory).emit([action])
        assert results[0].status == "skipped"
        assert results[0].review_items


class TestVariants:
    def test_sqlite_incremental(self, express_project):
        plan, inventory, actions = _setup(express_project, scope="incremental", database="sqlite")
        GoScaffolder(express_project, plan, inventory=inventory).emit(actions)
        main_go = (express_project / "cmd" / "server" / "main.go").read_text()
        assert "httputil.NewSingleHostReverseProxy" in main_go
        assert "modernc.org/sqlite" in (express_project / "go.mod").read_text()
        migration = (express_project / "migrations" / "00001_init.sql").read_text()
        assert "AUTOINCREMENT" in migration
        assert 'CREATE TABLE "users" (' in migration

    def test_incremental_leaves_routes_on_legacy_app(self, express_project):
        plan, inventory, actions = _setup(express_project, scope="incremental")
        GoScaffolder(express_project, plan, inventory=inventory).emit(actions)
        main_go = (express_project / "cmd" / "server" / "main.go").read_text()
        assert "\thandlers.Register" not in main_go
        assert "\t// handlers.RegisterRoutesUsersRoutes(e, h)" in main_go
        assert '\te.GET("/", h.Home)' not in main_go
        assert '\t// e.GET("/", h.Home)' in main_go
        assert main_go.index("// handlers.Register") < main_go.index('e.Any("/*"')
        assert (express_project / "internal" / "handlers" / "routes_users_routes.go").is_file()

    def test_reserved_table_name_is_quoted(self, flask_project):
        plan, inventory, actions = _setup(flask_project)
        GoScaffolder(flask_project, plan, inventory=inventory).emit(actions)
        migration = (flask_project / "migrations" / "00001_init.sql").read_text()
        assert 'CREATE TABLE "user" (' in migration
        assert 'DROP TABLE IF EXISTS "user";' in migration
        queries = (flask_project / "queries" / "user.sql").read_text()
        assert 'SELECT * FROM "user" WHERE id = $1;' in queries
        assert 'INSERT INTO "user" (name) VALUES ($1);' in queries

    def test_mysql_quotes_with_backticks(self, flask_project):
        plan, inventory, actions = _setup(flask_project, database="mysql")
        GoScaffolder(flask_project, plan, inventory=inventory).emit(actions)
        migration = (flask_project / "migrations" / "00001_init.sql").read_text()
        assert "CREATE TABLE `user` (" in migration
        assert "DELETE FROM `user` WHERE id = ?;" in (flask_project / "queries" / "user.sql").read_text()

    def test_component_names_are_unique(self, flask_project):
        plan, inventory, actions = _setup(flask_project, admin_ui=True)
        GoScaffolder(flask_project, plan, inventory=inventory).emit(actions)
        declared = []
        for templ_file in sorted((flask_project / "templates").glob("*.templ")):
            declared.extend(re.findall(r"^templ (\w+)\(", templ_file.read_text(), re.MULTILINE))
        assert len(declared) == len(set(declared))
        assert {"Layout", "Home", "Admin", "Home2", "Layout2"} <= set(declared)
        assert "templ Home2(title string) {" in (flask_project / "templates" / "home_2.templ").read_text()

    def test_entry_file_routes_group(self, flask_project):
        plan, inventory, actions = _setup(flask_project, scope="backend-only")
        GoScaffolder(flask_project, plan, inventory=inventory).emit(actions)
        routes = (flask_project / "internal" / "handlers" / "routes_routes.go").read_text()
        assert "func RegisterRoutesRoutes(e *echo.Echo, h *Handler) {" in routes
        assert "\thandlers.RegisterRoutesRoutes(e, h)" in (flask_project / "cmd" / "server" / "main.go").read_text()

    def test_backend_only_has_no_templ(self, express_project):
        plan, inventory, actions = _setup(express_project, scope="backend-only")
        GoScaffolder(express_project, plan, inventory=inventory).emit(actions)
        assert "a-h/templ" not in (express_project / "go.mod").read_text()
        assert not (express_project / "templates").exists()

    def test_handler_name_collision_is_prefixed(self, tmp_path):
        root = tmp_path / "app"
        (root / "routes").mkdir(parents=True)
        (root / "package.json").write_text('{"dependencies": {"express": "^4"}}')
        (root / "routes" / "a.js").write_text("router.get('/a', show);\n")
        (root / "routes" / "b.js").write_text("router.get('/b', show);\n")
        plan, inventory, actions = _setup(root, scope="backend-only")
        GoScaffolder(root, plan, inventory=inventory).emit(actions)
        second = (root / "internal" / "handlers" / "routes_b_routes.go").read_text()
        assert "h.RoutesBShow" in second

    def test_routes_group(self):
        assert routes_group("internal/handlers/routes_users_routes.go") == "RoutesUsers"
