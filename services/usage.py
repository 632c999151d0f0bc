# services/usage.py - monthly usage aggregation and usage-entry writes
from __future__ import annotations
import asyncio
import calendar
from datetime import datetime
from typing import Any, Dict, Tuple

from tortoise.exceptions import IntegrityError

from models import Household, UsageEntry
from schemas import MonthlyCostSummary, MonthlyUnits, UsageCreate
from services.calculator import calculate_cost
from services.errors import DuplicateError, ValidationError


def check_period(month: int, year: int) -> None:
    if not 1 <= int(month) <= 12:
        raise ValidationError("month must be 1-12")
    if not 2000 <= int(year) <= 2100:
        raise ValidationError("year must be between 2000 and 2100")


def month_window(month: int, year: int) -> Tuple[datetime, datetime]:
    """[first day 00:00, last day 23:59:59.999] of the calendar month."""
    check_period(month, year)
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime(year, month, last_day, 23, 59, 59, 999000)
    return start, end


async def get_monthly_total_units(household_id: int, month: int, year: int) -> MonthlyUnits:
    """
    Sum ``units_used`` over the household's entries dated inside the month.
    No entries is a valid zero result, not an error.
    """
    start, end = month_window(month, year)
    units = await UsageEntry.filter(
        household_id=household_id,
        date__gte=start.date(),
        date__lte=end.date(),
    ).values_list("units_used", flat=True)
    return MonthlyUnits(total_units=float(sum(units or [])), entries=len(units or []))


async def get_monthly_cost_summary(household_id: int, month: int, year: int, tariffs) -> MonthlyCostSummary:
    """Units for the month priced against the live tariff; nothing is persisted."""
    usage, tariff = await asyncio.gather(
        get_monthly_total_units(household_id, month, year),
        tariffs.get(),
    )
    cost = calculate_cost(usage.total_units, tariff)
    return MonthlyCostSummary(
        household_id=household_id,
        month=month,
        year=year,
        entries=usage.entries,
        **cost.model_dump(),
    )


async def create_usage_entry(household: Household, payload: UsageCreate) -> UsageEntry:
    prev, curr = payload.previous_reading, payload.current_reading
    units = payload.units_used

    if prev is not None and curr is not None and curr < prev:
        raise ValidationError("current_reading must be >= previous_reading")
    if units is None:
        if prev is None or curr is None:
            raise ValidationError("Provide either units_used or both previous_reading and current_reading")
        units = curr - prev

    try:
        return await UsageEntry.create(
            household=household,
            date=payload.date,
            entry_type=payload.entry_type,
            units_used=units,
            previous_reading=prev,
            current_reading=curr,
        )
    except IntegrityError as exc:
        raise DuplicateError("Duplicate usage entry for the given household and date") from exc


USAGE_UPDATABLE_FIELDS = ("date", "entry_type", "units_used", "previous_reading", "current_reading")


async def update_usage_entry(entry: UsageEntry, fields: Dict[str, Any]) -> UsageEntry:
    """
    Apply a partial edit. Readings are checked against the values they end up
    next to, and ``units_used`` is re-derived from them when a reading changes
    without an explicit unit count.
    """
    changes = {k: v for k, v in fields.items() if k in USAGE_UPDATABLE_FIELDS}
    if not changes:
        raise ValidationError("No valid fields to update")
    for k in ("date", "entry_type"):
        if k in changes and changes[k] is None:
            raise ValidationError(f"{k} cannot be null")

    prev = changes.get("previous_reading", entry.previous_reading)
    curr = changes.get("current_reading", entry.current_reading)
    if prev is not None and curr is not None and curr < prev:
        raise ValidationError("current_reading must be >= previous_reading")

    units = changes.get("units_used")
    if units is None:
        readings_touched = "previous_reading" in changes or "current_reading" in changes
        if readings_touched or "units_used" in changes:
            if prev is None or curr is None:
                raise ValidationError("Provide either units_used or both previous_reading and current_reading")
            changes["units_used"] = curr - prev

    for k, v in changes.items():
        setattr(entry, k, v)
    try:
        await entry.save()
    except IntegrityError as exc:
        raise DuplicateError("Duplicate usage entry for the given household and date") from exc
    return entry
