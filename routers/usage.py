# routers/usage.py
from fastapi import APIRouter, Depends, HTTPException, Query
from tortoise.queryset import QuerySet

from models import UsageEntry, User
from schemas import MonthlyCostSummary, MonthlyUnits, UsageCreate, UsageRead, UsageUpdate
from api_utils import RAListParams, parse_sort, apply_filter_map, paginate_and_respond, respond_item, raise_http
from deps import get_current_active_user, get_tariff_provider
from services.errors import BillingError
from services.households import get_owned_household
from services.tariffs import TariffProvider
from services.usage import (
    create_usage_entry,
    get_monthly_cost_summary,
    get_monthly_total_units,
    update_usage_entry,
)

router = APIRouter(prefix="/usage", tags=["usage"])
ALLOWED_SORTS = {"id", "date", "units_used", "entry_type", "created_at"}

def to_usage_read(u: UsageEntry) -> UsageRead:
    return UsageRead.model_validate(u)

async def _owned_usage(usage_id: int, user: User) -> UsageEntry:
    obj = await UsageEntry.get_or_none(id=usage_id)
    if not obj:
        raise HTTPException(404, "Usage not found")
    try:
        await get_owned_household(obj.household_id, user)
    except BillingError as e:
        raise_http(e)
    return obj


@router.post("", response_model=UsageRead, status_code=201)
async def create_usage(payload: UsageCreate, user: User = Depends(get_current_active_user)):
    try:
        household = await get_owned_household(payload.household_id, user)
        obj = await create_usage_entry(household, payload)
    except BillingError as e:
        raise_http(e)
    return respond_item(obj, to_usage_read, status_code=201)

@router.get("/households/{household_id}", response_model=list[UsageRead])
async def list_usage(
    household_id: int,
    params: RAListParams = Depends(),
    user: User = Depends(get_current_active_user),
):
    try:
        await get_owned_household(household_id, user)
    except BillingError as e:
        raise_http(e)

    qs: QuerySet[UsageEntry] = UsageEntry.filter(household_id=household_id)
    fmap = {
        "entry_type": lambda q, v: q.filter(entry_type=str(v)),
        "date_from":  lambda q, v: q.filter(date__gte=str(v)),
        "date_to":    lambda q, v: q.filter(date__lte=str(v)),
    }
    qs = apply_filter_map(qs, params.filters, fmap)
    order = parse_sort(params.sort, ALLOWED_SORTS, default=("-date",))
    return await paginate_and_respond(qs, params.skip, params.limit, order, to_usage_read)

@router.get("/households/{household_id}/monthly-total", response_model=MonthlyUnits)
async def monthly_total(
    household_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: User = Depends(get_current_active_user),
):
    try:
        await get_owned_household(household_id, user)
        totals = await get_monthly_total_units(household_id, month, year)
    except BillingError as e:
        raise_http(e)
    return respond_item(totals, lambda t: t)

@router.get("/households/{household_id}/monthly-summary", response_model=MonthlyCostSummary)
async def monthly_summary(
    household_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: User = Depends(get_current_active_user),
    tariffs: TariffProvider = Depends(get_tariff_provider),
):
    """Units recorded for the month plus what they would cost today. Nothing is billed."""
    try:
        await get_owned_household(household_id, user)
        summary = await get_monthly_cost_summary(household_id, month, year, tariffs)
    except BillingError as e:
        raise_http(e)
    return respond_item(summary, lambda s: s)

@router.get("/{usage_id}", response_model=UsageRead)
async def get_usage(usage_id: int, user: User = Depends(get_current_active_user)):
    obj = await _owned_usage(usage_id, user)
    return respond_item(obj, to_usage_read)

@router.patch("/{usage_id}", response_model=UsageRead)
async def update_usage(
    usage_id: int,
    payload: UsageUpdate,
    user: User = Depends(get_current_active_user),
):
    obj = await _owned_usage(usage_id, user)
    try:
        obj = await update_usage_entry(obj, payload.model_dump(exclude_unset=True))
    except BillingError as e:
        raise_http(e)
    return respond_item(obj, to_usage_read)

@router.delete("/{usage_id}", response_model=UsageRead)
async def delete_usage(usage_id: int, user: User = Depends(get_current_active_user)):
    obj = await _owned_usage(usage_id, user)
    await obj.delete()
    return respond_item(obj, to_usage_read)
