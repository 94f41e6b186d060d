"""Reminder preference for calendar sync.

A reminder setting is tri-state and the three states must stay distinct
all the way to the calendar payload:

- ``NO_PREFERENCE``: leave the ``reminders`` field out (calendar default applies)
- ``None``: explicitly no reminder
- ``int``: a single popup N minutes before start
"""

from typing import List, Optional, Tuple, Union

from studybuddy.models.constants import DEFAULT_REMINDER_MINUTES


class _NoPreference:
    """Sentinel type for "caller expressed no reminder preference"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_PREFERENCE"

    def __bool__(self) -> bool:
        return False


NO_PREFERENCE = _NoPreference()

ReminderMinutes = Optional[int]
ReminderSetting = Union[_NoPreference, None, int]

REMINDER_NONE = "none"

REMINDER_OPTIONS: List[Tuple[str, ReminderMinutes]] = [
    ("None", None),
    ("At time", 0),
    ("1 hour before", 60),
    ("1 day before", 1440),
]


def encode_reminder(value: ReminderMinutes) -> str:
    """Encode a stored reminder preference."""
    if value is None:
        return REMINDER_NONE
    return str(value)


def decode_reminder(raw: Optional[str]) -> ReminderMinutes:
    """Decode a stored reminder preference.

    Missing, unparseable, or negative values fall back to the default.
    """
    if not raw:
        return DEFAULT_REMINDER_MINUTES
    if raw == REMINDER_NONE:
        return None
    try:
        minutes = int(raw)
    except ValueError:
        return DEFAULT_REMINDER_MINUTES
    if minutes < 0:
        return DEFAULT_REMINDER_MINUTES
    return minutes
