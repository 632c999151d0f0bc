# services/billing.py - bill generation/upsert and month-over-month comparison
from __future__ import annotations
import asyncio
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterator, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from tortoise import timezone
from tortoise.exceptions import IntegrityError, OperationalError
from tortoise.queryset import QuerySet

from models import Bill, Household
from schemas import BillComparison, BillDifference, CostResult, PeriodTotals
from services import config
from services.calculator import calculate_cost, round2
from services.errors import NotFoundError, StorageError, ValidationError
from services.tariffs import TariffProvider
from services.usage import check_period, get_monthly_total_units

BillKey = Tuple[int, int, int]  # (household_id, month, year)


# -----------------------------
# User-entered bill input
# -----------------------------
class DirectUnits(BaseModel):
    kind: Literal["units"] = "units"
    total_units: float
    model_config = ConfigDict(frozen=True)

    @property
    def units(self) -> float:
        return self.total_units


class MeterReadings(BaseModel):
    kind: Literal["readings"] = "readings"
    previous: float
    current: float
    model_config = ConfigDict(frozen=True)

    @property
    def units(self) -> float:
        return self.current - self.previous


BillInput = Union[DirectUnits, MeterReadings]


def bill_input_from(
    total_units: Optional[float] = None,
    previous_reading: Optional[float] = None,
    current_reading: Optional[float] = None,
) -> BillInput:
    """A direct unit count wins; otherwise both readings are required."""
    if total_units is not None:
        if total_units < 0:
            raise ValidationError("total_units must be a non-negative number")
        return DirectUnits(total_units=total_units)
    if previous_reading is None or current_reading is None:
        raise ValidationError("Provide either total_units or both previous_reading and current_reading")
    if current_reading < previous_reading:
        raise ValidationError("current_reading must be greater than previous_reading")
    return MeterReadings(previous=previous_reading, current=current_reading)


def due_date_for(month: int, year: int) -> date:
    """BILL_DUE_DAY of the month after the billing month."""
    if month == 12:
        return date(year + 1, 1, config.BILL_DUE_DAY)
    return date(year, month + 1, config.BILL_DUE_DAY)


def previous_period(month: int, year: int) -> Tuple[int, int]:
    return (12, year - 1) if month == 1 else (month - 1, year)


def _round1(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _pct_change(diff: float, baseline: float) -> Optional[float]:
    return _round1(diff / baseline * 100) if baseline > 0 else None


# -----------------------------
# Service
# -----------------------------
class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class BillService:
    """
    Every bill-producing path funnels through ``calculate_cost`` and ``_upsert``.
    Writes for one (household, month, year) are serialized in-process, and the
    write itself is a single transactional ``update_or_create`` on the unique key.
    A key's lock is dropped once no caller holds or waits on it.
    """

    def __init__(self, tariffs: TariffProvider):
        self.tariffs = tariffs
        self._locks: Dict[BillKey, _KeyLock] = {}

    @asynccontextmanager
    async def _locked(self, key: BillKey) -> AsyncIterator[None]:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    async def _ensure_household(self, household_id: int) -> None:
        if not await Household.exists(id=household_id):
            raise NotFoundError(f"Household {household_id} not found")

    async def _upsert(
        self,
        key: BillKey,
        cost: CostResult,
        previous_reading: Optional[float] = None,
        current_reading: Optional[float] = None,
    ) -> Bill:
        household_id, month, year = key
        # full replacement: payment state is reset on every (re)generation
        values = dict(
            previous_reading=previous_reading,
            current_reading=current_reading,
            total_units=cost.total_units,
            energy_charge=cost.energy_charge,
            fixed_charge=cost.fixed_charge,
            sub_total=cost.sub_total,
            sscl=cost.sscl,
            total_cost=cost.total_cost,
            breakdown=[line.model_dump() for line in cost.breakdown],
            due_date=due_date_for(month, year),
            status="unpaid",
            paid_at=None,
        )
        try:
            bill, _ = await Bill.update_or_create(
                defaults=values, household_id=household_id, month=month, year=year
            )
        except (IntegrityError, OperationalError) as exc:
            raise StorageError(f"Bill upsert failed for {key}: {exc}") from exc
        return bill

    # ---------- auto path ----------
    async def generate_bill(self, household_id: int, month: int, year: int) -> Bill:
        """Price the month's recorded usage and create or replace its bill."""
        check_period(month, year)
        await self._ensure_household(household_id)
        key = (household_id, month, year)
        async with self._locked(key):
            usage, tariff = await asyncio.gather(
                get_monthly_total_units(household_id, month, year),
                self.tariffs.get(),
            )
            cost = calculate_cost(usage.total_units, tariff)
            return await self._upsert(key, cost)

    # ---------- user-entered path ----------
    async def create_user_bill(
        self,
        household_id: int,
        month: int,
        year: int,
        total_units: Optional[float] = None,
        previous_reading: Optional[float] = None,
        current_reading: Optional[float] = None,
    ) -> Bill:
        check_period(month, year)
        entered = bill_input_from(total_units, previous_reading, current_reading)
        await self._ensure_household(household_id)
        key = (household_id, month, year)
        async with self._locked(key):
            tariff = await self.tariffs.get()
            cost = calculate_cost(entered.units, tariff)
            if isinstance(entered, MeterReadings):
                return await self._upsert(key, cost, entered.previous, entered.current)
            return await self._upsert(key, cost)

    async def regenerate_bill(self, bill_id: int) -> Bill:
        bill = await self.get_bill(bill_id)
        return await self.generate_bill(bill.household_id, bill.month, bill.year)

    # ---------- reads / payment state ----------
    async def get_bill(self, bill_id: int) -> Bill:
        bill = await Bill.get_or_none(id=bill_id)
        if not bill:
            raise NotFoundError("Bill not found")
        return bill

    def list_bills(self, household_id: Optional[int] = None) -> QuerySet[Bill]:
        qs = Bill.all()
        if household_id is not None:
            qs = qs.filter(household_id=household_id)
        return qs

    async def update_bill_status(
        self,
        bill: Bill,
        status: Optional[str] = None,
        paid_at: Optional[datetime] = None,
        due_date: Optional[date] = None,
    ) -> Bill:
        """
        Payment-state edits only; charges are never touched here.
        ``paid_at`` is accepted only for a bill that is (or becomes) paid.
        """
        if paid_at is not None and (status or bill.status) != "paid":
            raise ValidationError("paid_at can only be set on a paid bill")
        if status == "paid":
            bill.status = "paid"
            bill.paid_at = paid_at or timezone.now()
        elif status == "unpaid":
            bill.status = "unpaid"
            bill.paid_at = None
        elif status is not None:
            raise ValidationError("status must be 'unpaid' or 'paid'")
        elif paid_at is not None:
            bill.paid_at = paid_at
        if due_date is not None:
            bill.due_date = due_date
        await bill.save()
        return bill

    async def delete_bill(self, bill_id: int) -> Bill:
        bill = await self.get_bill(bill_id)
        await bill.delete()
        return bill

    # ---------- comparison ----------
    async def compare_bills(self, household_id: int, month: int, year: int) -> BillComparison:
        """
        Current month against the month before it. A missing current bill is a
        reportable result (``message`` only); a missing previous bill leaves
        ``previous`` null and omits ``difference``.
        """
        check_period(month, year)
        prev_month, prev_year = previous_period(month, year)

        current, previous = await asyncio.gather(
            Bill.get_or_none(household_id=household_id, month=month, year=year),
            Bill.get_or_none(household_id=household_id, month=prev_month, year=prev_year),
        )
        if current is None:
            return BillComparison(message="No bill found for the requested month")

        cur = PeriodTotals(month=month, year=year, total_units=current.total_units, total_cost=current.total_cost)
        if previous is None:
            return BillComparison(current=cur, previous=None)

        prev = PeriodTotals(
            month=prev_month, year=prev_year,
            total_units=previous.total_units, total_cost=previous.total_cost,
        )
        units_diff = round2(current.total_units - previous.total_units)
        cost_diff = round2(current.total_cost - previous.total_cost)
        if units_diff > 0:
            trend = "increased"
        elif units_diff < 0:
            trend = "decreased"
        else:
            trend = "unchanged"

        return BillComparison(
            current=cur,
            previous=prev,
            difference=BillDifference(
                units=units_diff,
                cost=cost_diff,
                units_change_percent=_pct_change(units_diff, previous.total_units),
                cost_change_percent=_pct_change(cost_diff, previous.total_cost),
                trend=trend,
            ),
        )
