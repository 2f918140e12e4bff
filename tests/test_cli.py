"""Tests for CLI argument parsing and the subcommands."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from tests.conftest import at
from timetracking.cli import create_parser, main


@pytest.fixture
def data_file(tmp_path) -> Path:
    return tmp_path / "data" / "tt.json"


@pytest.fixture
def tt(data_file, clock):
    """Run the CLI against a temporary data file, without a log file."""

    def run(*args: str) -> int:
        return main(["--data-file", str(data_file), "--log-level", "NONE", *args])

    return run


@pytest.fixture
def workday(tt, clock):
    """Record the four events of a workday with a 15 minute break."""
    for hhmm, command in [("08:00", "start"), ("12:00", "stop"), ("12:15", "start"), ("16:15", "stop")]:
        clock.set(hhmm)
        assert tt(command) == 0
    clock.set("17:15")


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_has_all_subcommands(self) -> None:
        parser = create_parser()
        for subcommand in ["start", "stop", "continue", "status", "list", "path", "show",
                           "cleanup", "validate"]:
            args = parser.parse_args([subcommand])
            assert args.subcommand == subcommand

    def test_global_options_before_subcommand(self) -> None:
        args = create_parser().parse_args(["-d", "x.json", "-c", "c.toml", "show", "week"])
        assert args.data_file == Path("x.json")
        assert args.config == Path("c.toml")
        assert args.filter == "week"

    def test_range_aliases(self) -> None:
        parser = create_parser()
        args = parser.parse_args(["list", "--since", "2021-03-29", "--until", "2021-03-30"])
        assert (args.start, args.end) == ("2021-03-29", "2021-03-30")
        args = parser.parse_args(["show", "-f", "08:00", "-t", "12:00"])
        assert (args.start, args.end) == ("08:00", "12:00")

    def test_start_arguments(self) -> None:
        args = create_parser().parse_args(["start", "writing report", "--at", "08:15"])
        assert args.description == "writing report"
        assert args.at == "08:15"

    def test_export_format_choices(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["export", "x.csv", "--format", "csv"])


class TestTracking:
    """Tests for start, stop, continue and status."""

    def test_start_and_status(self, tt, clock, capsys) -> None:
        assert tt("start", "coding") == 0
        assert "Start at" in capsys.readouterr().out

        clock.set("09:00")
        assert tt("status") == 0
        out = capsys.readouterr().out
        assert "Active: true" in out
        assert "Description: coding" in out
        assert "Start Time: 08:00:00" in out

    def test_status_after_stop(self, tt, workday, capsys) -> None:
        capsys.readouterr()
        assert tt("status") == 1
        out = capsys.readouterr().out
        assert "Active: false" in out
        assert "End Time: 16:15:00" in out

    def test_status_without_events(self, tt, capsys) -> None:
        assert tt("status") == 1
        assert "No Events found!" in capsys.readouterr().out

    def test_start_while_running(self, tt, clock, data_file, capsys) -> None:
        tt("start")
        clock.set("09:00")
        assert tt("start", "other") == 0

        assert "Time tracking is already running!" in capsys.readouterr().err
        assert len(json.loads(data_file.read_text())) == 1

    def test_redundant_stop(self, tt, workday, data_file, capsys) -> None:
        assert tt("stop") == 0
        assert "Time tracking is already stopped!" in capsys.readouterr().err
        assert len(json.loads(data_file.read_text())) == 4

    def test_start_at(self, tt, clock, data_file) -> None:
        clock.set("09:00")
        assert tt("start", "--at", "08:15") == 0
        record = json.loads(data_file.read_text())[0]
        assert record["timestamp"] == at("08:15").isoformat()

    def test_start_at_date_in_summer_time(self, tt, clock, data_file, capsys, berlin_time) -> None:
        """A summer date entered in winter gets the summer offset."""
        clock.now = datetime(2026, 12, 2, 12, 0, tzinfo=UTC)
        assert tt("start", "--at", "2026-10-20 08:00") == 0
        assert tt("stop", "--at", "2026-10-20 16:00") == 0
        records = json.loads(data_file.read_text())
        assert records[0]["timestamp"] == "2026-10-20T08:00:00+02:00"

        capsys.readouterr()
        assert tt("list", "--from", "2026-10-20") == 0
        assert capsys.readouterr().out.splitlines() == [
            "Start at 2026-10-20 08:00:00",
            "Stop  at 2026-10-20 16:00:00",
        ]
        tt("show", "-p", "--from", "2026-10-20")
        assert capsys.readouterr().out.strip() == "08:00:00"

    def test_start_before_last_event_fails(self, tt, workday, capsys) -> None:
        assert tt("start", "--at", "10:00") == 1
        assert "Error:" in capsys.readouterr().err

    def test_continue(self, tt, clock, data_file) -> None:
        tt("start", "writing report")
        clock.set("12:00")
        tt("stop")
        clock.set("13:00")

        assert tt("continue") == 0
        record = json.loads(data_file.read_text())[-1]
        assert record == {
            "kind": "start",
            "timestamp": at("13:00").isoformat(),
            "description": "writing report",
        }

    def test_continue_without_events(self, tt, capsys, data_file) -> None:
        assert tt("continue") == 1
        assert "no entries" in capsys.readouterr().err
        assert not data_file.exists()

    def test_auto_insert_stop_from_local_config(self, tt, clock, data_file) -> None:
        Path(".timetracking.config").write_text("auto_insert_stop = true\n")
        tt("start", "a")
        clock.set("09:00")
        tt("start", "b")

        kinds = [record["kind"] for record in json.loads(data_file.read_text())]
        assert kinds == ["start", "stop", "start"]


class TestShow:
    """Tests for show and list."""

    def test_show_workday(self, tt, workday, capsys) -> None:
        capsys.readouterr()
        assert tt("show") == 0
        out = capsys.readouterr().out
        assert "Work Time: 08:00:00" in out
        assert "Goal: 08:00:00 (+0h00m)" in out
        assert "Insufficient break" not in out

    def test_show_is_default(self, tt, workday, capsys) -> None:
        capsys.readouterr()
        assert tt() == 0
        assert "Work Time: 08:00:00" in capsys.readouterr().out

    def test_show_with_minimum_break(self, tt, workday, tmp_path, capsys) -> None:
        config = tmp_path / "break.toml"
        config.write_text("min_daily_break = 30\n")
        capsys.readouterr()

        assert tt("--config", str(config), "show") == 0
        out = capsys.readouterr().out
        assert "Work Time: 07:45:00" in out
        assert "Insufficient break: 00:15:00 (deducted)" in out

    def test_show_without_deduction(self, tt, workday, tmp_path, capsys) -> None:
        config = tmp_path / "break.toml"
        config.write_text("min_daily_break = 30\ndeduct_insufficient_break = false\n")
        capsys.readouterr()

        tt("--config", str(config), "show")
        out = capsys.readouterr().out
        assert "Work Time: 08:00:00" in out
        assert "Insufficient break: 00:15:00 (not deducted)" in out

    def test_show_plain_format(self, tt, workday, capsys) -> None:
        capsys.readouterr()
        tt("show", "-p", "--format", "{h}h{mm}")
        assert capsys.readouterr().out.strip() == "8h00"

    def test_show_running_session(self, tt, clock, capsys) -> None:
        tt("start")
        clock.set("16:00")
        capsys.readouterr()
        tt("show", "-p")
        assert capsys.readouterr().out.strip() == "08:00:00"

    def test_remaining_rejects_range(self, tt, workday, capsys) -> None:
        assert tt("show", "-r", "--from", "2021-03-29") == 1
        assert "--remaining" in capsys.readouterr().err

    def test_show_unparseable_range(self, tt, workday, capsys) -> None:
        assert tt("show", "--from", "xyzzy") == 1
        assert "Error:" in capsys.readouterr().err

    def test_list(self, tt, workday, capsys) -> None:
        capsys.readouterr()
        assert tt("list", "--from", "2021-03-29") == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "Start at 2021-03-29 08:00:00",
            "Stop  at 2021-03-29 12:00:00",
            "Start at 2021-03-29 12:15:00",
            "Stop  at 2021-03-29 16:15:00",
        ]

    def test_malformed_data_file(self, tt, data_file, capsys) -> None:
        data_file.parent.mkdir(parents=True)
        data_file.write_text("[{")
        assert tt("show") == 1
        assert "Restore" in capsys.readouterr().err
        assert data_file.read_text() == "[{"


class TestDataCommands:
    """Tests for path, export, import and cleanup."""

    def test_path(self, tt, data_file, capsys) -> None:
        assert tt("path") == 0
        assert capsys.readouterr().out.strip() == str(data_file)

    def test_path_from_config(self, clock, capsys) -> None:
        assert main(["--log-level", "NONE", "path"]) == 0
        assert capsys.readouterr().out.strip() == str(Path.home() / "timetracking.json")

    def test_export_and_import(self, tt, workday, tmp_path, data_file, capsys) -> None:
        backup = tmp_path / "backup.yaml"
        assert tt("export", str(backup)) == 0
        assert "Exported 4 events" in capsys.readouterr().out

        other = tmp_path / "other.json"
        assert main(["--data-file", str(other), "--log-level", "NONE", "import", str(backup)]) == 0
        assert json.loads(other.read_text()) == json.loads(data_file.read_text())

    def test_import_malformed(self, tt, tmp_path, capsys) -> None:
        broken = tmp_path / "broken.json"
        broken.write_text("{")
        assert tt("import", str(broken)) == 1

    def test_cleanup(self, tt, clock, data_file, monkeypatch, capsys) -> None:
        tt("start", "a")
        tt("start", "--at", "09:00", "b")
        clock.set("12:00")
        tt("stop")
        answers = iter(["first", "1"])
        monkeypatch.setattr("builtins.input", lambda prompt: next(answers))

        assert tt("cleanup") == 0

        out = capsys.readouterr().out
        assert "Could not parse number!" in out
        assert "Removed 1 events" in out
        records = json.loads(data_file.read_text())
        assert [r["description"] for r in records] == ["b", None]

    def test_cleanup_nothing_to_do(self, tt, workday, capsys) -> None:
        assert tt("cleanup") == 0
        assert "No repeated events found" in capsys.readouterr().out


class TestValidate:
    def test_valid(self, capsys) -> None:
        assert main(["--log-level", "NONE", "validate"]) == 0
        assert "Configuration is valid" in capsys.readouterr().out

    def test_invalid_local_config(self, capsys) -> None:
        Path(".timetracking.config").write_text("min_daily_break = -5\n")
        assert main(["--log-level", "NONE", "validate"]) == 1
        assert "Configuration errors found:" in capsys.readouterr().out

    def test_missing_config_file(self, capsys) -> None:
        assert main(["--config", "missing.toml", "validate"]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_conflicting_environment_variables(self, tt, monkeypatch, capsys) -> None:
        monkeypatch.setenv("TT_TIME_GOAL", "5")
        monkeypatch.setenv("TT_TIME_GOAL__DAILY__HOURS", "6")
        assert tt("show") == 1
        assert "TT_TIME_GOAL" in capsys.readouterr().err

    def test_invalid_config_fails_commands(self, tt, capsys) -> None:
        Path(".timetracking.config").write_text('last_day_of_work_week = "someday"\n')
        assert tt("show") == 1
        assert "Error:" in capsys.readouterr().err
