"""Tests for the reminder preference codec."""

import pytest

from studybuddy.models.reminder import NO_PREFERENCE, REMINDER_OPTIONS, decode_reminder, encode_reminder


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("none", None),
        ("60", 60),
        ("0", 0),
        ("-5", 1440),
        ("abc", 1440),
        (None, 1440),
        ("", 1440),
    ],
)
def test_decode(raw, expected):
    assert decode_reminder(raw) == expected


def test_encode():
    assert encode_reminder(None) == "none"
    assert encode_reminder(60) == "60"


def test_options_cover_none_at_time_hour_day():
    assert [minutes for _, minutes in REMINDER_OPTIONS] == [None, 0, 60, 1440]


def test_no_preference_is_distinct_from_none():
    assert NO_PREFERENCE is not None
    assert not NO_PREFERENCE
    assert repr(NO_PREFERENCE) == "NO_PREFERENCE"
