"""
date_time_helper.py

Helpers for conversion and formatting of date and time values: timestamps are
stored as timezone-aware UTC, and rendered in the configured local timezone
for certificates and filenames.

All features and modules should use ONLY these helpers for date/time logic.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

# Fallback when no configuration is available
DEFAULT_LOCAL_TZ = "America/Santiago"


def local_tz(name: Optional[str] = None) -> tzinfo:
    """Resolve a timezone name, defaulting to the configured local zone."""
    if name is None:
        try:
            from core.config.config_service import get_config
            name = get_config().signing.local_timezone
        except Exception:  # pragma: no cover
            name = DEFAULT_LOCAL_TZ
    return ZoneInfo(name or DEFAULT_LOCAL_TZ)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def utc_now_iso() -> str:
    """
    Returns the current UTC time as an ISO8601 string (YYYY-MM-DDTHH:MM:SS+00:00).
    Used for logging and DB storage.
    """
    return utc_now().isoformat()


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an aware (or naive UTC) datetime to local time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz or local_tz())


def format_local(value: datetime, fmt: str, tz: Optional[tzinfo] = None) -> str:
    """Format a stored timestamp for display in local time."""
    return to_local(value, tz).strftime(fmt)


def filename_stamp(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """yyyyMMdd_HHmmss in local time, used in certificate filenames."""
    return to_local(value, tz).strftime("%Y%m%d_%H%M%S")


def utc_to_local_str(utc_iso: str) -> str:
    """
    Formats a UTC ISO8601 timestamp as a localized, human-readable string for display.

    :param utc_iso: UTC time as ISO string (from DB/logs)
    :return: String in format "DD-MM-YYYY HH:mm:ss" (local time)
    """
    dt_utc = from_iso(utc_iso)
    return to_local(dt_utc).strftime("%d-%m-%Y %H:%M:%S")
