import uuid
from datetime import datetime, date
from typing import Optional, Literal, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =========================
# Users
# =========================
class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    disabled: bool
    is_admin: bool
    model_config = ConfigDict(from_attributes=True)


# =========================
# Tariff
# =========================
class Slab(BaseModel):
    """
    One pricing bracket. ``up_to`` is the inclusive cumulative upper bound;
    ``None`` marks the open-ended last slab.
    """
    up_to: Optional[float] = Field(default=None, gt=0)
    rate: float = Field(ge=0)
    fixed_charge: float = Field(default=0.0, ge=0)
    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def open_ended(self) -> bool:
        return self.up_to is None


def check_slab_order(slabs: List[Slab]) -> List[Slab]:
    if not slabs:
        raise ValueError("slab list must not be empty")
    prev = 0.0
    for i, s in enumerate(slabs):
        if s.open_ended:
            if i != len(slabs) - 1:
                raise ValueError("only the last slab may be open-ended")
            continue
        if s.up_to <= prev:
            raise ValueError("slab up_to values must be strictly ascending")
        prev = s.up_to
    return slabs


class TariffData(BaseModel):
    name: str = "domestic"
    tariff_low: List[Slab]
    tariff_high: List[Slab]
    sscl_rate: float = Field(ge=0, le=1)
    model_config = ConfigDict(from_attributes=True)


class TariffRead(TariffData):
    id: int
    created_at: datetime
    updated_at: datetime


class TariffUpdate(BaseModel):
    tariff_low: Optional[List[Slab]] = None
    tariff_high: Optional[List[Slab]] = None
    sscl_rate: Optional[float] = Field(default=None, ge=0, le=1)

    @field_validator("tariff_low", "tariff_high")
    @classmethod
    def _ordered(cls, v: Optional[List[Slab]]) -> Optional[List[Slab]]:
        return check_slab_order(v) if v is not None else v


# =========================
# Cost calculation
# =========================
class BreakdownLine(BaseModel):
    range: str
    units: float
    rate: float
    cost: float


class CostResult(BaseModel):
    total_units: float
    energy_charge: float
    fixed_charge: float
    sub_total: float
    sscl: float
    total_cost: float
    breakdown: List[BreakdownLine] = Field(default_factory=list)


# =========================
# Usage
# =========================
EntryType = Literal["manual", "meter"]
UsageDate = date  # lets a field named `date` default to None

class UsageCreate(BaseModel):
    household_id: int
    date: date
    entry_type: EntryType = "manual"
    units_used: Optional[float] = Field(default=None, ge=0)
    previous_reading: Optional[float] = Field(default=None, ge=0)
    current_reading: Optional[float] = Field(default=None, ge=0)


class UsageUpdate(BaseModel):
    date: Optional[UsageDate] = None
    entry_type: Optional[EntryType] = None
    units_used: Optional[float] = Field(default=None, ge=0)
    previous_reading: Optional[float] = Field(default=None, ge=0)
    current_reading: Optional[float] = Field(default=None, ge=0)


class UsageRead(BaseModel):
    id: int
    household_id: int
    date: date
    entry_type: EntryType
    units_used: float
    previous_reading: Optional[float] = None
    current_reading: Optional[float] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MonthlyUnits(BaseModel):
    total_units: float = 0.0
    entries: int = 0


class MonthlyCostSummary(CostResult):
    household_id: int
    month: int
    year: int
    entries: int


# =========================
# Bills
# =========================
BillStatus = Literal["unpaid", "paid"]

class BillCreate(BaseModel):
    household_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    total_units: Optional[float] = Field(default=None, ge=0)
    previous_reading: Optional[float] = Field(default=None, ge=0)
    current_reading: Optional[float] = Field(default=None, ge=0)


class BillStatusUpdate(BaseModel):
    status: Optional[BillStatus] = None
    paid_at: Optional[datetime] = None
    due_date: Optional[date] = None


class BillRead(BaseModel):
    id: int
    household_id: int
    month: int
    year: int
    previous_reading: Optional[float] = None
    current_reading: Optional[float] = None
    total_units: float
    energy_charge: float
    fixed_charge: float
    sub_total: float
    sscl: float
    total_cost: float
    breakdown: List[BreakdownLine]
    status: BillStatus
    due_date: date
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------- Month-over-month comparison --------
class PeriodTotals(BaseModel):
    month: int
    year: int
    total_units: float
    total_cost: float


class BillDifference(BaseModel):
    units: float
    cost: float
    units_change_percent: Optional[float] = None
    cost_change_percent: Optional[float] = None
    trend: Literal["increased", "decreased", "unchanged"]


class BillComparison(BaseModel):
    """
    Built with only the fields that apply, so ``model_dump(exclude_unset=True)``
    drops ``difference`` when there is no previous bill and everything but
    ``message`` when there is no current bill.
    """
    message: Optional[str] = None
    current: Optional[PeriodTotals] = None
    previous: Optional[PeriodTotals] = None
    difference: Optional[BillDifference] = None
