"""Tests for linescript_ide.cli — the one-shot ``check`` command."""

from __future__ import annotations

import json

import pytest
from conftest import CLEAN_PROGRAM

from linescript_ide.cli import build_parser, check_file, main


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("linescript_ide.cli.configure_logging", lambda *a, **kw: None)


@pytest.fixture
def write(tmp_path):
    def _write(text: str, name: str = "main.lsc"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


class TestCheckFile:
    def test_errors_not_demoted(self, write):
        diags = check_file(write("break\n"), compiler=False)
        assert [(d.code, d.severity) for d in diags] == [("break-outside-loop", "error")]

    def test_clean(self, write):
        assert check_file(write(CLEAN_PROGRAM), compiler=False) == []


class TestMain:
    def test_clean_exit_zero(self, write, capsys):
        assert main(["check", str(write(CLEAN_PROGRAM)), "--no-compiler"]) == 0
        assert capsys.readouterr().out == ""

    def test_error_exit_one(self, write, capsys):
        path = write("break\n")
        assert main(["check", str(path), "--no-compiler"]) == 1
        out = capsys.readouterr().out
        assert f"{path}:1:1: error:" in out
        assert "[break-outside-loop]" in out

    def test_json_output(self, write, capsys):
        assert main(["check", str(write("break\n")), "--no-compiler", "--json"]) == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload[0]["code"] == "break-outside-loop"
        assert payload[0]["range"]["start_line"] == 0
        assert payload[0]["source"] == "heuristic"

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.lsc")]) == 2
        assert "file not found" in capsys.readouterr().err

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
