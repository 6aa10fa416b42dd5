"""The service's single clock. Month keys, rental starts and customer dates all read UTC from here."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()
