import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from models import Tariff
from schemas import TariffUpdate
from services.tariffs import DEFAULT_TARIFF, TariffProvider


def test_first_read_seeds_defaults_once(db, caplog):
    async def scenario():
        provider = TariffProvider()
        first = await provider.get()
        second = await provider.get()
        return first, second, await Tariff.all().count()

    with caplog.at_level(logging.INFO, logger="services.tariffs"):
        first, second, count = db(scenario)

    assert count == 1
    assert first == second
    assert first.name == "domestic"
    assert first.sscl_rate == 0.025
    assert first.tariff_high[-1].open_ended
    assert [s.up_to for s in first.tariff_low] == [30, 60]
    assert sum("seeded" in r.getMessage() for r in caplog.records) == 1


def test_partial_update_keeps_other_fields(db):
    async def scenario():
        provider = TariffProvider()
        await provider.get()
        await provider.update({"sscl_rate": 0.03})
        return await provider.get()

    t = db(scenario)
    assert t.sscl_rate == 0.03
    assert len(t.tariff_high) == len(DEFAULT_TARIFF["tariff_high"])


def test_update_replaces_slab_list(db):
    async def scenario():
        provider = TariffProvider()
        payload = TariffUpdate(tariff_low=[{"up_to": 60, "rate": 5, "fixed_charge": 100}])
        await provider.update(payload.model_dump(exclude_unset=True))
        return await provider.get()

    t = db(scenario)
    assert len(t.tariff_low) == 1
    assert t.tariff_low[0].rate == 5


def test_update_on_empty_store_seeds_then_merges(db):
    async def scenario():
        provider = TariffProvider(name="commercial")
        await provider.update({"sscl_rate": 0.1, "unknown": 1})
        return await provider.get()

    t = db(scenario)
    assert t.name == "commercial"
    assert t.sscl_rate == 0.1
    assert len(t.tariff_low) == 2


@pytest.mark.parametrize("payload", [
    {"tariff_low": []},
    {"tariff_low": [{"up_to": 60, "rate": 1}, {"up_to": 30, "rate": 2}]},
    {"tariff_high": [{"up_to": None, "rate": 1}, {"up_to": 90, "rate": 2}]},
    {"tariff_high": [{"up_to": 60, "rate": -1}]},
    {"sscl_rate": 1.5},
])
def test_update_payload_validation(payload):
    with pytest.raises(PydanticValidationError):
        TariffUpdate(**payload)


def test_update_stores_every_slab_key(db):
    async def scenario():
        provider = TariffProvider()
        payload = TariffUpdate(tariff_high=[{"up_to": 60, "rate": 1}, {"up_to": None, "rate": 2, "fixed_charge": 5}])
        await provider.update(payload.model_dump(exclude_unset=True))
        return (await Tariff.get(name="domestic")).tariff_high

    stored = db(scenario)
    assert stored == [
        {"up_to": 60.0, "rate": 1.0, "fixed_charge": 0.0},
        {"up_to": None, "rate": 2.0, "fixed_charge": 5.0},
    ]
