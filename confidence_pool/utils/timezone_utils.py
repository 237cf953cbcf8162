"""
Timezone utility functions for the confidence pool
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def utc_now_naive():
    """Current UTC time without tzinfo, matching how datetimes are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    app_tz = get_app_timezone()

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(app_tz)


def to_naive_utc(dt):
    """Normalise an incoming datetime to naive UTC for storage"""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_game_time(dt, format_str="%a %m/%d at %I:%M %p"):
    """Format a game time in the application's timezone"""
    if dt is None:
        return "TBD"

    app_time = convert_to_app_timezone(dt)
    return app_time.strftime(format_str)
