# routers/bills.py
from fastapi import APIRouter, Depends, Query
from tortoise.queryset import QuerySet

from models import Bill, User
from schemas import BillComparison, BillCreate, BillRead, BillStatusUpdate
from api_utils import RAListParams, parse_sort, apply_filter_map, paginate_and_respond, respond_item, raise_http
from deps import get_bill_service, get_current_active_user, get_current_admin_user
from services.billing import BillService
from services.errors import BillingError
from services.households import get_owned_household

router = APIRouter(prefix="/bills", tags=["bills"])
ALLOWED_SORTS = {"id", "month", "year", "total_units", "total_cost", "status", "due_date", "created_at"}

def to_bill_read(b: Bill) -> BillRead:
    return BillRead.model_validate(b)

def _as_int(v):
    try:
        return int(v)
    except (TypeError, ValueError):
        return None

async def _owned_bill(service: BillService, bill_id: int, user: User) -> Bill:
    bill = await service.get_bill(bill_id)
    await get_owned_household(bill.household_id, user)
    return bill


# -------- create --------
@router.post("", response_model=BillRead, status_code=201)
async def create_bill(
    payload: BillCreate,
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    """User-entered bill: either total_units or a previous/current reading pair."""
    try:
        await get_owned_household(payload.household_id, user)
        bill = await service.create_user_bill(**payload.model_dump())
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read, status_code=201)

@router.post("/households/{household_id}/generate", response_model=BillRead, status_code=201)
async def generate_bill(
    household_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        await get_owned_household(household_id, user)
        bill = await service.generate_bill(household_id, month, year)
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read, status_code=201)


# -------- read --------
@router.get("/households/{household_id}", response_model=list[BillRead])
async def list_bills(
    household_id: int,
    params: RAListParams = Depends(),
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        await get_owned_household(household_id, user)
    except BillingError as e:
        raise_http(e)

    qs: QuerySet[Bill] = service.list_bills(household_id)
    fmap = {
        "status": lambda q, v: q.filter(status=str(v)),
        "year":   lambda q, v: q.filter(year=_as_int(v)) if _as_int(v) is not None else q,
        "month":  lambda q, v: q.filter(month=_as_int(v)) if _as_int(v) is not None else q,
    }
    qs = apply_filter_map(qs, params.filters, fmap)
    order = parse_sort(params.sort, ALLOWED_SORTS, default=("-year", "-month"))
    return await paginate_and_respond(qs, params.skip, params.limit, order, to_bill_read)

@router.get("/households/{household_id}/compare", response_model=BillComparison, response_model_exclude_unset=True)
async def compare_bills(
    household_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        await get_owned_household(household_id, user)
        result = await service.compare_bills(household_id, month, year)
    except BillingError as e:
        raise_http(e)
    # keep `previous: null`, drop `difference` when it was never set
    return respond_item(result, lambda r: r, exclude_unset=True)

@router.get("/{bill_id}", response_model=BillRead)
async def get_bill(
    bill_id: int,
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = await _owned_bill(service, bill_id, user)
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read)


# -------- update --------
@router.patch("/{bill_id}", response_model=BillRead)
async def update_bill(
    bill_id: int,
    payload: BillStatusUpdate,
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    """Payment status / due date only. Charges change through regeneration."""
    try:
        bill = await _owned_bill(service, bill_id, user)
        bill = await service.update_bill_status(bill, **payload.model_dump(exclude_unset=True))
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read)

@router.put("/{bill_id}/regenerate", response_model=BillRead)
async def regenerate_bill(
    bill_id: int,
    user: User = Depends(get_current_active_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        await _owned_bill(service, bill_id, user)
        bill = await service.regenerate_bill(bill_id)
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read)


# -------- delete --------
@router.delete("/{bill_id}", response_model=BillRead)
async def delete_bill(
    bill_id: int,
    admin: User = Depends(get_current_admin_user),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = await service.delete_bill(bill_id)
    except BillingError as e:
        raise_http(e)
    return respond_item(bill, to_bill_read)
