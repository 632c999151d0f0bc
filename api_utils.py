# api_utils.py
import json
from typing import Any, Callable, Iterable, NoReturn
from fastapi import HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from tortoise.queryset import QuerySet

from services.errors import BillingError, DuplicateError, NotFoundError, StorageError, ValidationError

# ---------- React-Admin param parsing ----------
def parse_range(range_param: str) -> tuple[int, int]:
    try:
        start, end = json.loads(range_param)
        skip = max(int(start), 0)
        limit = max(int(end) - skip + 1, 1)
    except (ValueError, TypeError):
        skip, limit = 0, 10
    return skip, limit

def parse_sort(sort_param: str, allowed_fields: Iterable[str], default: tuple[str, ...] = ("id",)) -> tuple[str, ...]:
    """["field","DESC"] -> ("-field",); anything unusable falls back to ``default``."""
    allowed = set(allowed_fields) | {"id"}
    try:
        field, order = json.loads(sort_param)
    except (ValueError, TypeError):
        return default
    if field not in allowed:
        return default
    prefix = "-" if str(order).upper() == "DESC" else ""
    return (f"{prefix}{field}",)

def parse_filter(filter_param: str | None) -> dict:
    try:
        parsed = json.loads(filter_param or "{}")
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}

# ---------- Query helpers ----------
def apply_filter_map(qs: QuerySet, filters: dict, fmap: dict[str, Callable[[QuerySet, Any], QuerySet]]) -> QuerySet:
    for key, fn in fmap.items():
        if key in filters and filters[key] is not None:
            qs = fn(qs, filters[key])
    return qs

async def paginate_and_respond(
    qs: QuerySet,
    skip: int,
    limit: int,
    order: tuple[str, ...],
    to_pydantic: Callable[[Any], BaseModel],
) -> JSONResponse:
    total = await qs.count()
    items = await qs.order_by(*order).offset(skip).limit(limit)
    end_real = skip + max(len(items) - 1, 0)
    content_range = f"items {skip}-{end_real}/{total}"

    # Use Pydantic v2 encoders for date/datetime safety
    content = [to_pydantic(it).model_dump(mode="json") for it in items]

    return JSONResponse(
        status_code=206,
        content=content,
        headers={"Content-Range": content_range},
    )

def respond_item(
    model_obj: Any,
    to_pydantic: Callable[[Any], BaseModel],
    status_code: int = 200,
    exclude_unset: bool = False,
) -> JSONResponse:
    """Single item response that uses the same Pydantic-safe encoding."""
    payload = to_pydantic(model_obj).model_dump(mode="json", exclude_unset=exclude_unset)
    return JSONResponse(status_code=status_code, content=payload)

# ---------- Billing errors -> HTTP ----------
def raise_http(exc: BillingError) -> NoReturn:
    if isinstance(exc, DuplicateError):
        raise HTTPException(409, str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(400, str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(404, str(exc)) from exc
    if isinstance(exc, StorageError):
        raise HTTPException(503, str(exc)) from exc
    raise HTTPException(500, str(exc)) from exc

# ---------- RA params container ----------
class RAListParams:
    def __init__(
        self,
        range: str = Query("[0,9]"),
        sort: str = Query(""),
        filter: str = Query("{}"),
    ):
        self.skip, self.limit = parse_range(range)
        self.filters = parse_filter(filter)
        self.sort = sort
