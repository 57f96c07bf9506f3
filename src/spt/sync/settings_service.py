"""Persistence for the singleton sync settings row."""

from __future__ import annotations

from datetime import datetime, timezone

from croniter import croniter
from sqlalchemy.ext.asyncio import AsyncSession

from spt.config import get_settings
from spt.db.models import SyncSettings
from spt.errors import InvalidScheduleError

SETTINGS_KEY = "app_settings"
# Same limits as the dashboard form: minutes 1-59, everything else 1-23
_FREQUENCY_BOUNDS = {"minute": (1, 59), "hour": (1, 23), "day": (1, 23)}


def validate_schedule(expr: str) -> str:
    """Return ``expr`` unchanged if it is a valid 5-field cron expression."""
    if not isinstance(expr, str) or len(expr.split()) != 5 or not croniter.is_valid(expr):
        msg = f"Invalid cron schedule: {expr!r}"
        raise InvalidScheduleError(msg)
    return expr


def validate_frequency(unit: str, value: int) -> None:
    """Reject an unknown unit or a value outside the unit's bounds."""
    bounds = _FREQUENCY_BOUNDS.get(unit)
    if bounds is None:
        msg = f"Unknown frequency unit: {unit}"
        raise InvalidScheduleError(msg)
    low, high = bounds
    if not low <= value <= high:
        msg = f"{unit.capitalize()} frequency must be {low}-{high}, got {value}"
        raise InvalidScheduleError(msg)


def schedule_from_frequency(unit: str, value: int = 1, at: str = "02:00") -> str:
    """Build the cron string the dashboard form produces for a unit/value pair.

    day -> once a day at ``at`` (HH:MM, UTC); hour -> every ``value`` hours on
    the hour; minute -> every ``value`` minutes.
    """
    validate_frequency(unit, value)
    if unit == "day":
        hour, minute = at.split(":")
        return f"{int(minute)} {int(hour)} * * *"
    if unit == "hour":
        return f"0 */{value} * * *"
    return f"*/{value} * * * *"


async def get_or_create_settings(db: AsyncSession) -> SyncSettings:
    """Load the settings row, creating it with defaults on first read."""
    settings = await db.get(SyncSettings, SETTINGS_KEY)
    if settings is None:
        settings = SyncSettings(
            singleton_id=SETTINGS_KEY,
            cron_schedule=get_settings().default_sync_schedule,
            frequency_unit="day",
            frequency_value=1,
        )
        db.add(settings)
        await db.commit()
    return settings


async def update_settings(
    db: AsyncSession,
    cron_schedule: str | None = None,
    frequency_unit: str | None = None,
    frequency_value: int | None = None,
) -> tuple[SyncSettings, bool]:
    """Apply the provided fields. Returns ``(settings, schedule_changed)``.

    The cron string is stored exactly as given. Restarting the scheduler is
    the caller's job (see ``SyncEvents.on_settings_updated``).
    """
    if cron_schedule is not None:
        validate_schedule(cron_schedule)

    settings = await get_or_create_settings(db)
    if frequency_unit is not None or frequency_value is not None:
        # Check the pair as it will be stored
        validate_frequency(
            frequency_unit if frequency_unit is not None else settings.frequency_unit,
            frequency_value if frequency_value is not None else settings.frequency_value,
        )
    old_schedule = settings.cron_schedule

    if cron_schedule is not None:
        settings.cron_schedule = cron_schedule
    if frequency_unit is not None:
        settings.frequency_unit = frequency_unit
    if frequency_value is not None:
        settings.frequency_value = frequency_value
    settings.updated_at = datetime.now(timezone.utc)
    await db.commit()

    return settings, settings.cron_schedule != old_schedule


async def record_run(db: AsyncSession, when: datetime | None = None) -> SyncSettings:
    """Stamp ``last_run_at`` on the settings row."""
    settings = await get_or_create_settings(db)
    settings.last_run_at = when or datetime.now(timezone.utc)
    await db.commit()
    return settings
