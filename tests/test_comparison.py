import pytest

from services.billing import BillService
from services.errors import ValidationError
from services.tariffs import TariffProvider
from conftest import make_household


async def two_months(prev_units, cur_units, month=6, year=2024, prev_month=5, prev_year=2024):
    h = await make_household()
    svc = BillService(TariffProvider())
    await svc.create_user_bill(h.id, prev_month, prev_year, total_units=prev_units)
    await svc.create_user_bill(h.id, month, year, total_units=cur_units)
    return await svc.compare_bills(h.id, month, year)


def test_usage_increase(db):
    result = db(lambda: two_months(150, 180))
    assert result.current is not None
    assert result.difference.units == 30
    assert result.difference.trend == "increased"
    assert result.difference.units_change_percent == 20.0
    assert result.difference.cost == pytest.approx(result.current.total_cost - result.previous.total_cost, abs=0.01)
    assert result.previous.month == 5


def test_usage_decrease(db):
    result = db(lambda: two_months(180, 150))
    assert result.difference.units == -30
    assert result.difference.trend == "decreased"
    assert result.difference.cost < 0


def test_usage_unchanged(db):
    result = db(lambda: two_months(90, 90))
    assert result.difference.trend == "unchanged"
    assert result.difference.cost == 0
    assert result.difference.units_change_percent == 0.0


def test_zero_baseline_has_no_percentages(db):
    result = db(lambda: two_months(0, 40))
    assert result.difference.units == 40
    assert result.difference.units_change_percent is None
    assert result.difference.cost_change_percent is None


def test_january_compares_with_previous_december(db):
    result = db(lambda: two_months(100, 120, month=1, year=2024, prev_month=12, prev_year=2023))
    assert (result.previous.month, result.previous.year) == (12, 2023)
    assert result.difference.trend == "increased"


def test_without_previous_bill_difference_is_absent(db):
    async def scenario():
        h = await make_household()
        svc = BillService(TariffProvider())
        await svc.create_user_bill(h.id, 6, 2024, total_units=75)
        return await svc.compare_bills(h.id, 6, 2024)

    result = db(scenario)
    assert result.previous is None
    dumped = result.model_dump(exclude_unset=True)
    assert dumped["previous"] is None
    assert "difference" not in dumped
    assert dumped["current"]["total_units"] == 75


def test_without_current_bill_reports_not_found(db):
    async def scenario():
        h = await make_household()
        svc = BillService(TariffProvider())
        await svc.create_user_bill(h.id, 5, 2024, total_units=75)
        return await svc.compare_bills(h.id, 6, 2024)

    result = db(scenario)
    assert result.current is None
    assert result.model_dump(exclude_unset=True) == {"message": "No bill found for the requested month"}


def test_compare_bad_month(db):
    async def scenario():
        h = await make_household()
        await BillService(TariffProvider()).compare_bills(h.id, 0, 2024)

    with pytest.raises(ValidationError):
        db(scenario)
