"""Constants for studybuddy.

This module centralizes all magic numbers and default values used throughout the application.
"""


# Calendar sync
SYNC_CONCURRENCY = 3
SYNC_MAX_RETRIES = 6  # Retries after the first attempt (so at most 7 requests)
SYNC_BASE_DELAY_SECONDS = 0.5
SYNC_JITTER_MIN = 0.6
SYNC_JITTER_MAX = 1.4
DEFAULT_TIME_ZONE = "UTC"
DEFAULT_CALENDAR_ID = "primary"
GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"

# 403 reasons that Google uses for quota exhaustion
RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded"})

# Reminders
DEFAULT_REMINDER_MINUTES = 1440  # 1 day before

# Task sources
SOURCE_SYLLABUS = "syllabus"
SOURCE_MANUAL = "manual"

# Dashboard
WEEKLY_WINDOW_DAYS = 7
