"""Tests for the lembots command-line front end."""
from __future__ import annotations

import json

import pytest

from lembots.cli import build_parser, main

pytestmark = pytest.mark.unit


def _write_program(tmp_path, steps):
    path = tmp_path / "program.json"
    path.write_text(json.dumps({
        "type": "sequence",
        "steps": [{"type": "action", "action": a} for a in steps],
    }))
    return str(path)


class TestCli:
    def test_levels(self, capsys):
        assert main(["levels"]) == 0
        out = capsys.readouterr().out
        assert "corridor" in out
        assert "convoy" in out

    def test_run_solved(self, tmp_path, capsys):
        program = _write_program(tmp_path, ["MOVE_FORWARD"] * 4)
        assert main(["run", "corridor", "--program", program]) == 0
        assert "Solved:  True" in capsys.readouterr().out

    def test_run_json_reports_cause(self, tmp_path, capsys):
        program = _write_program(tmp_path, ["MOVE_FORWARD", "MOVE_FORWARD"])
        assert main(["run", "hazard-detour", "--program", program, "--json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["solved"] is False
        assert data["failure_cause"] == "hazard"

    def test_run_level_file(self, tmp_path, capsys):
        level = tmp_path / "level.json"
        level.write_text(json.dumps({
            "grid": [[1, 1, 1], [1, 0, 2], [1, 1, 1]],
            "start": {"x": 1, "y": 1, "dir": "E"},
        }))
        program = _write_program(tmp_path, ["MOVE_FORWARD"])
        assert main(["run", str(level), "--program", program]) == 0

    def test_solve(self, capsys):
        assert main(["solve", "corridor", "--time-ms", "60000"]) == 0
        out = capsys.readouterr().out
        assert "Solved:   True" in out
        assert "MOVE_FORWARD MOVE_FORWARD MOVE_FORWARD MOVE_FORWARD" in out

    def test_solve_json(self, capsys):
        assert main(["solve", "ferry", "--time-ms", "60000", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["solved"] is True

    def test_unknown_level_exits_2(self, tmp_path):
        program = _write_program(tmp_path, ["WAIT"])
        assert main(["run", "no-such-level", "--program", program]) == 2

    def test_bad_program_exits_2(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"type": "loop"}')
        assert main(["run", "corridor", "--program", str(path)]) == 2

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])
        assert args.port == 8000
        assert args.func.__name__ == "cmd_serve"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
