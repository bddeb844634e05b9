"""Tests for the command-line entry point, run against local storage only."""

from __future__ import annotations

import json

import pytest

from workboard.cli import main
from workboard.clock import Clock
from workboard.config import Settings


@pytest.fixture(autouse=True)
def _no_remote(monkeypatch):
    for name in (
        "WORKBOARD_SUPABASE_URL",
        "SUPABASE_URL",
        "WORKBOARD_SUPABASE_KEY",
        "SUPABASE_ANON_KEY",
        "WORKBOARD_DATA_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


def _run(tmp_path, *argv):
    out = tmp_path / "out.json"
    code = main(["--offline", "--data-dir", str(tmp_path / "data"), "--output-json", str(out), *argv])
    return code, json.loads(out.read_text())


class TestCommands:
    def test_board_is_the_default_command(self, tmp_path, capsys):
        code, out = _run(tmp_path)

        assert code == 0
        assert out["mode"] == "offline"
        assert out["today"] == Clock().today_key()
        assert out["tasks"]
        assert "Doing" in capsys.readouterr().out

    def test_add_then_show(self, tmp_path):
        code, out = _run(tmp_path, "add", "Fix bug", "Dev", "--notes", "timeout")
        assert code == 0
        task_id = out["task"]["id"]

        code, out = _run(tmp_path, "board", "--person", "dev")
        assert code == 0
        assert task_id in [t["id"] for t in out["tasks"]]
        assert all(t["person"] == "Dev" for t in out["tasks"])
        assert "Dev" in out["people"]
        assert out["people"] == sorted(out["people"], key=str.lower)

    def test_blank_title_fails(self, tmp_path):
        code, out = _run(tmp_path, "add", "  ", "Dev")
        assert code == 1
        assert out == {"error": "invalid"}

    def test_move_priority_and_delete(self, tmp_path):
        _, out = _run(tmp_path, "add", "Fix bug", "Dev")
        task_id = out["task"]["id"]

        code, out = _run(tmp_path, "move", task_id, "blocked")
        assert code == 0
        assert out["task"]["status"] == "blocked"

        code, out = _run(tmp_path, "priority", task_id, "high")
        assert out["task"]["priority"] == "high"

        code, out = _run(tmp_path, "activity")
        assert out["activity"]["message"] == 'Dev set "Fix bug" priority to high'

        code, out = _run(tmp_path, "delete", task_id)
        assert code == 0
        _, out = _run(tmp_path, "board")
        assert task_id not in [t["id"] for t in out["tasks"]]

    def test_edit_keeps_unspecified_fields(self, tmp_path):
        _, out = _run(tmp_path, "add", "Fix bug", "Dev", "--notes", "timeout")
        task_id = out["task"]["id"]

        code, out = _run(tmp_path, "edit", task_id, "--title", "Fix checkout bug")

        assert code == 0
        assert out["task"]["title"] == "Fix checkout bug"
        assert out["task"]["person"] == "Dev"
        assert out["task"]["notes"] == "timeout"

    def test_position_puts_task_on_top(self, tmp_path):
        _, out = _run(tmp_path, "add", "Fix bug", "Dev")
        task_id = out["task"]["id"]

        code, out = _run(tmp_path, "position", task_id, "help", "0")

        assert code == 0
        assert out["task"]["status"] == "help"
        _, board = _run(tmp_path, "board")
        help_orders = [t["sort_order"] for t in board["tasks"] if t["status"] == "help"]
        assert out["task"]["sort_order"] == min(help_orders)

    def test_unknown_task_fails(self, tmp_path):
        code, out = _run(tmp_path, "move", "missing", "done")
        assert code == 1
        assert out == {"error": "not_found"}

    def test_watch_needs_remote(self, tmp_path):
        code, out = _run(tmp_path, "watch")
        assert code == 1
        assert out == {"error": "offline"}


class TestSettings:
    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.setenv("WORKBOARD_SUPABASE_KEY", " anon ")
        monkeypatch.setenv("WORKBOARD_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("WORKBOARD_POLL_INTERVAL", "not-a-number")
        monkeypatch.setenv("WORKBOARD_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.supabase_url == "https://demo.supabase.co"
        assert settings.supabase_key == "anon"
        assert settings.data_dir == tmp_path
        assert settings.poll_interval == 5.0
        assert settings.log_level == "DEBUG"
        assert settings.is_configured
        assert not settings.without_remote().is_configured

    def test_unconfigured_by_default(self):
        assert not Settings.from_env().is_configured
