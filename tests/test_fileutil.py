import os
from datetime import datetime, timedelta, timezone

import pytest

from imtools.fileutil import create_file, generate_fn


def _clock(moment):
    return lambda: moment


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(1, 1, 1), "/path/to/0001/01/01"),
        (datetime(1, 1, 1) + timedelta(hours=24), "/path/to/0001/01/02"),
    ],
)
def test_generate_fn_zero_time(moment, expected):
    assert generate_fn("/path/to/%Y/%m/%d", _clock(moment), timedelta(hours=24)) == expected


def test_generate_fn_truncates_wall_clock_in_zone():
    tokyo = timezone(timedelta(hours=9))
    moment = datetime(2018, 6, 1, 3, 18, tzinfo=tokyo)
    assert generate_fn("%Y%m%d%H%M", _clock(moment), timedelta(hours=24)) == "201806010000"
    assert generate_fn("%Y%m%d%H%M", _clock(moment), timedelta(hours=1)) == "201806010300"


def test_generate_fn_zero_rotation_keeps_time():
    moment = datetime(2018, 6, 1, 3, 18, 42)
    assert generate_fn("%H%M%S", _clock(moment), timedelta(0)) == "031842"


def test_generate_fn_various_directives():
    moment = datetime(2024, 3, 5, 14, 7, 9)
    result = generate_fn("%e|%j|%a|%b|%F|%T|%%|%I%p", _clock(moment), timedelta(0))
    assert result == " 5|065|Tue|Mar|2024-03-05|14:07:09|%|02PM"


def test_generate_fn_formats_as_utc():
    moment = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone(timedelta(hours=-10)))
    assert generate_fn("%Z%z", _clock(moment), timedelta(0)) == "UTC+0000"


@pytest.mark.parametrize("pattern", ["log.%Q", "log.%"])
def test_generate_fn_rejects_bad_pattern(pattern):
    with pytest.raises(ValueError):
        generate_fn(pattern, _clock(datetime(2024, 1, 1)), timedelta(hours=1))


def test_create_file_makes_parents_and_appends(tmp_path):
    target = tmp_path / "a" / "b" / "c.log"
    with create_file(target) as fh:
        assert fh.write(b"x") == 1
    with create_file(str(target)) as fh:
        fh.write(b"y")
    assert target.read_bytes() == b"xy"
    assert os.path.isdir(tmp_path / "a" / "b")


def test_create_file_fails_when_parent_is_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("data")
    with pytest.raises(OSError):
        create_file(blocker / "child.log")