# services/tariffs.py - live tariff provider (auto-seeding, partial updates)
from __future__ import annotations
import copy
import logging
from typing import Any, Dict

from models import Tariff
from schemas import Slab, TariffData
from services import config

log = logging.getLogger(__name__)

# Published domestic tariff, used only to seed an empty database.
DEFAULT_TARIFF: Dict[str, Any] = {
    "tariff_low": [
        {"up_to": 30, "rate": 4.50, "fixed_charge": 80.00},
        {"up_to": 60, "rate": 8.00, "fixed_charge": 210.00},
    ],
    "tariff_high": [
        {"up_to": 60, "rate": 12.75, "fixed_charge": 0.00},
        {"up_to": 90, "rate": 18.50, "fixed_charge": 400.00},
        {"up_to": 120, "rate": 24.00, "fixed_charge": 1000.00},
        {"up_to": 180, "rate": 41.00, "fixed_charge": 1500.00},
        {"up_to": None, "rate": 61.00, "fixed_charge": 2100.00},
    ],
    "sscl_rate": 0.025,
}

UPDATABLE_FIELDS = ("tariff_low", "tariff_high", "sscl_rate")


class TariffProvider:
    """
    Hands out the single live tariff. Create one per app and pass it to the
    bill service / routers; tests build their own with fixture data.
    """

    def __init__(self, name: str | None = None, defaults: Dict[str, Any] | None = None):
        self.name = name or config.TARIFF_NAME
        self.defaults = copy.deepcopy(defaults if defaults is not None else DEFAULT_TARIFF)

    async def _get_or_seed(self) -> Tariff:
        obj = await Tariff.get_or_none(name=self.name)
        if obj:
            return obj
        obj, created = await Tariff.get_or_create(name=self.name, defaults=copy.deepcopy(self.defaults))
        if created:
            log.info("[tariff] seeded '%s' with default slabs", self.name)
        return obj

    async def get_record(self) -> Tariff:
        return await self._get_or_seed()

    async def get(self) -> TariffData:
        return TariffData.model_validate(await self._get_or_seed())

    async def update(self, fields: Dict[str, Any]) -> Tariff:
        """
        Merge the given keys into the live tariff (seeding it first if absent).
        Unknown keys are ignored; slab lists are replaced wholesale.
        """
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
        obj = await self._get_or_seed()
        for k, v in changes.items():
            if k in ("tariff_low", "tariff_high"):
                # stored shape always carries every slab key, up_to: null included
                v = [Slab.model_validate(s).model_dump() for s in v]
            setattr(obj, k, v)
        if changes:
            await obj.save()
        return obj
