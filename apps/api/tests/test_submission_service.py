"""Tests for submit-time helpers."""

import pytest

from app.services.submission_service import (
    MAX_TIME_TO_COMPLETE,
    build_submitter,
    detect_device_type,
    parse_time_to_complete,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ({"timeToComplete": "42"}, 42),
        ({"time_to_complete": "12.9"}, 12),
        ({"timeToComplete": "-3"}, 0),
        ({"timeToComplete": "soon"}, 0),
        ({"timeToComplete": "inf"}, 0),
        ({"timeToComplete": "1e400"}, 0),
        ({"timeToComplete": "nan"}, 0),
        ({"timeToComplete": "1e12"}, MAX_TIME_TO_COMPLETE),
        ({}, 0),
    ],
)
def test_parse_time_to_complete(raw, expected):
    assert parse_time_to_complete(raw) == expected


def test_detect_device_type():
    assert detect_device_type("Mozilla/5.0 (iPhone) Mobile Safari") == "mobile"
    assert detect_device_type("Mozilla/5.0 (X11; Linux x86_64)") == "desktop"
    assert detect_device_type(None) == "desktop"


def test_build_submitter_takes_first_list_value():
    submitter = build_submitter({"email": ["a@x.com", "b@x.com"], "name": ""}, "1.2.3.4", "UA", None)

    assert submitter.email == "a@x.com"
    assert submitter.name is None
    assert submitter.ip == "1.2.3.4"
