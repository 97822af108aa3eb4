from datetime import date, datetime

import pytest

from mysql_helper import input_date_to_system_date, system_date_to_input_date


@pytest.mark.parametrize("value, expected", [
    ("5/3/2024", "2024-03-05"),
    ("05/03/2024", "2024-03-05"),
    ("31/12/99", "2099-12-31"),
    ("1/1/124", "2124-01-01"),
])
def test_input_to_system(value, expected):
    assert input_date_to_system_date(value) == expected


@pytest.mark.parametrize("value", ["", "2024-03-05", "5-3-2024", "5/3/2", "5/3/20245", None])
def test_input_to_system_rejects(value):
    assert input_date_to_system_date(value) is None


def test_system_to_input():
    assert system_date_to_input_date("2024-03-05") == "05/03/2024"


def test_system_to_input_accepts_date_objects():
    assert system_date_to_input_date(date(2024, 3, 5)) == "05/03/2024"
    assert system_date_to_input_date(datetime(2024, 3, 5, 10, 30)) == "05/03/2024"


def test_trailing_newline_rejected():
    assert input_date_to_system_date("5/3/2024\n") is None
    assert system_date_to_input_date("2024-03-05\n") == ""


def test_system_to_input_invalid():
    assert system_date_to_input_date("05/03/2024") == ""
    assert system_date_to_input_date("") == ""


def test_system_to_input_defaults_to_today():
    assert system_date_to_input_date("", default_today=True) == datetime.now().strftime("%d/%m/%Y")
    assert system_date_to_input_date(None, default_today=True) == datetime.now().strftime("%d/%m/%Y")
    # only empty input falls back to today
    assert system_date_to_input_date("garbage", default_today=True) == ""


def test_round_trip():
    assert input_date_to_system_date(system_date_to_input_date("2024-03-05")) == "2024-03-05"
    assert system_date_to_input_date(input_date_to_system_date("5/3/2024")) == "05/03/2024"
