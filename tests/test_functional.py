"""Functional test: a work week recorded and reported through the CLI.

Monday to Friday, 2021-03-29 .. 2021-04-02, each day with a quarter hour
break at noon. Two configurations are used: the defaults and one with a
minimum daily break of 30 minutes.
"""

from datetime import timedelta

import pytest

from tests.conftest import TEST_DAY
from timetracking.cli import main


@pytest.fixture
def week(tmp_path, clock, capsys):
    data_file = tmp_path / "test.json"
    plain = tmp_path / "test_config.toml"
    plain.write_text("min_daily_break = 0\n")
    min_break = tmp_path / "test_config_min_break.toml"
    min_break.write_text("min_daily_break = 30\n")
    configs = {"plain": plain, "min_break": min_break}

    def tt(day: int, hhmm: str, config: str, *args: str) -> str:
        clock.set(hhmm, TEST_DAY + timedelta(days=day))
        capsys.readouterr()
        main(["-c", str(configs[config]), "-d", str(data_file), "--log-level", "NONE", *args])
        return capsys.readouterr().out.strip()

    return tt


def test_work_week(week) -> None:
    tt = week

    # Monday
    tt(0, "08:00", "plain", "start")
    tt(0, "12:00", "plain", "stop", "pause")
    tt(0, "12:15", "plain", "start")
    tt(0, "16:15", "plain", "stop")
    assert tt(0, "17:15", "plain", "show", "-p") == "08:00:00"
    assert tt(0, "17:15", "plain", "show", "-p", "-r") == "00:00:00"

    # Tuesday, a 15 minute break is 15 minutes short of the minimum
    tt(1, "08:00", "min_break", "start")
    tt(1, "12:00", "min_break", "stop", "pause")
    tt(1, "12:15", "min_break", "start")
    tt(1, "16:15", "min_break", "stop")
    assert tt(1, "17:15", "min_break", "show", "-p") == "07:45:00"
    assert tt(1, "17:15", "min_break", "show", "-p", "-r") == "00:15:00"

    # Wednesday, the minimum break applies to every day of the week
    tt(2, "08:00", "plain", "start")
    tt(2, "12:00", "plain", "stop", "pause")
    tt(2, "12:15", "plain", "start")
    tt(2, "15:15", "plain", "stop")
    assert tt(2, "17:15", "min_break", "show", "-p", "week") == "22:15:00"

    # Thursday, still running
    tt(3, "08:00", "plain", "start")
    tt(3, "12:00", "plain", "stop", "pause")
    tt(3, "12:15", "plain", "start")
    assert tt(3, "16:00", "plain", "show", "-r", "-p", "week") == "09:15:00"
    assert tt(3, "16:00", "plain", "show", "-r", "-p") == "00:15:00"
    tt(3, "16:15", "plain", "stop")

    # Friday is the last day of the work week: the rest of the weekly goal is due
    tt(4, "08:00", "plain", "start")
    tt(4, "12:00", "plain", "stop", "pause")
    tt(4, "12:15", "plain", "start")
    assert tt(4, "16:00", "plain", "show", "-r", "-p", "week") == "01:15:00"
    assert tt(4, "16:00", "plain", "show", "-r", "-p") == "01:15:00"
    tt(4, "16:15", "plain", "stop")

    assert tt(4, "17:00", "plain", "show", "-p", "week") == "39:00:00"
    assert tt(4, "17:00", "plain", "status") == "Active: false\nEnd Time: 16:15:00"
