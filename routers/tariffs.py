# routers/tariffs.py
from fastapi import APIRouter, Depends, HTTPException
from models import Tariff, User
from schemas import TariffRead, TariffUpdate
from api_utils import respond_item
from deps import get_current_admin_user, get_tariff_provider
from services.tariffs import TariffProvider

router = APIRouter(prefix="/tariff", tags=["tariff"])

def to_tariff_read(t: Tariff) -> TariffRead:
    return TariffRead.model_validate(t)

@router.get("", response_model=TariffRead)
async def view_tariff(tariffs: TariffProvider = Depends(get_tariff_provider)):
    # anyone can view; seeds the defaults on first read
    obj = await tariffs.get_record()
    return respond_item(obj, to_tariff_read)

@router.put("", response_model=TariffRead)
async def edit_tariff(
    payload: TariffUpdate,
    tariffs: TariffProvider = Depends(get_tariff_provider),
    admin: User = Depends(get_current_admin_user),
):
    # drop top-level nulls only; slabs keep up_to: null for the open-ended bracket
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not data:
        raise HTTPException(400, "No valid fields to update")
    obj = await tariffs.update(data)
    return respond_item(obj, to_tariff_read)
