#!/usr/bin/env python3
# CUI // SP-CTI
"""End-to-end tests for the goport CLI (goport.cli.convert.main)."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from goport.cli.convert import build_parser, main
from goport.modernization.conversion_report import REPORT_FILENAME


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.path == "."
        assert args.admin_ui is None
        assert args.yes is False

    def test_admin_flags(self):
        assert build_parser().parse_args(["--admin-ui"]).admin_ui is True
        assert build_parser().parse_args(["--no-admin-ui"]).admin_ui is False

    def test_invalid_choice_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--scope", "half"])


class TestConvert:
    """Full runs against the sample projects."""

    def test_express_full_run(self, express_project, capsys):
        code = main([str(express_project), "--yes", "--database", "sqlite"])
        out = capsys.readouterr().out
        assert code == 0
        assert (express_project / "go.mod").is_file()
        assert (express_project / "cmd" / "server" / "main.go").is_file()
        assert (express_project / REPORT_FILENAME).is_file()
        assert (express_project / "package.json").is_file()
        assert "goport: express -> Go (full)" in out
        assert "Next steps" in out

    def test_json_output(self, django_project, capsys):
        code = main([str(django_project), "--yes", "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["status"] == "completed"
        assert payload["stack"]["framework"] == "django"
        assert payload["plan"]["database"] == "postgres"
        assert payload["summary"]["counts"]["created"] > 0
        assert payload["report_path"].endswith(REPORT_FILENAME)

    def test_dry_run_writes_nothing(self, laravel_project, capsys):
        before = sorted(p.name for p in laravel_project.rglob("*"))
        code = main([str(laravel_project), "--yes", "--dry-run", "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["status"] == "dry-run"
        assert payload["report_path"] is None
        assert sorted(p.name for p in laravel_project.rglob("*")) == before

    def test_rerun_stops_at_generated_go_mod(self, rails_project, capsys):
        assert main([str(rails_project), "--yes"]) == 0
        capsys.readouterr()
        main_go = rails_project / "cmd" / "server" / "main.go"
        before = main_go.read_text()
        assert main([str(rails_project), "--yes", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "already-go"
        assert main_go.read_text() == before

    def test_rerun_preserves_existing_files(self, rails_project, capsys):
        assert main([str(rails_project), "--yes"]) == 0
        capsys.readouterr()
        main_go = rails_project / "cmd" / "server" / "main.go"
        main_go.write_text("package main\n\n// hand edited\n")
        (rails_project / "go.mod").unlink()
        assert main([str(rails_project), "--yes", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "completed"
        assert payload["summary"]["counts"]["created"] == 1
        assert payload["summary"]["counts"]["preserved"] > 0
        assert (rails_project / "go.mod").is_file()
        assert main_go.read_text() == "package main\n\n// hand edited\n"

    def test_project_yaml_answers(self, express_project, capsys):
        (express_project / "goport.yaml").write_text("scope: backend-only\ndeploy: none\n")
        assert main([str(express_project), "--yes", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["plan"]["scope"] == "backend-only"
        assert not (express_project / "Dockerfile").exists()

    def test_flags_beat_project_yaml(self, express_project, capsys):
        (express_project / "goport.yaml").write_text("scope: backend-only\n")
        assert main([str(express_project), "--yes", "--json", "--scope", "incremental"]) == 0
        assert json.loads(capsys.readouterr().out)["plan"]["scope"] == "incremental"


class TestExitCodes:
    def test_already_go(self, tmp_path, capsys):
        (tmp_path / "go.mod").write_text("module x\n")
        assert main([str(tmp_path)]) == 0
        assert "already contains go.mod" in capsys.readouterr().out
        assert not (tmp_path / REPORT_FILENAME).exists()

    def test_not_a_directory(self, tmp_path):
        assert main([str(tmp_path / "missing")]) == 1

    def test_invalid_project_yaml(self, express_project, capsys):
        (express_project / "goport.yaml").write_text("database: oracle\n")
        assert main([str(express_project), "--yes"]) == 1
        assert "database must be one of" in capsys.readouterr().err
        assert not (express_project / "go.mod").exists()

    def test_halt_decision(self, empty_project, capsys):
        code = main([str(empty_project), "--yes", "--on-unsupported", "halt", "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert code == 2
        assert payload["decision"] == "unsupported"
        assert list(empty_project.iterdir()) == []

    def test_generic_conversion_of_unrecognized(self, empty_project, capsys):
        assert main([str(empty_project), "--yes"]) == 0
        assert (empty_project / "go.mod").is_file()
        assert (empty_project / "queries" / "items.sql").is_file()

    def test_cancelled_at_prompt(self, express_project, monkeypatch, capsys):
        def eof(_msg):
            raise EOFError

        monkeypatch.setattr("builtins.input", eof)
        assert main([str(express_project)]) == 130
        assert not (express_project / "go.mod").exists()
        assert "cancelled" in capsys.readouterr().err
