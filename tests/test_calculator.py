import pytest

from schemas import Slab, TariffData
from services.calculator import calculate_cost, round2, select_tier
from services.errors import ValidationError


def make_tariff(low, high, sscl=0.025):
    return TariffData(
        tariff_low=[Slab(**s) for s in low],
        tariff_high=[Slab(**s) for s in high],
        sscl_rate=sscl,
    )


def test_low_tier_worked_example(tariff):
    res = calculate_cost(45, tariff)
    # 30 * 4.5 + 15 * 8 = 135 + 120
    assert res.energy_charge == 255.0
    assert res.fixed_charge == 210.0
    assert res.sub_total == 465.0
    assert res.sscl == 11.63  # 11.625 rounds half-up
    assert res.total_cost == 476.63
    assert [(b.range, b.units, b.cost) for b in res.breakdown] == [
        ("1–30 kWh", 30, 135.0),
        ("31–45 kWh", 15, 120.0),
    ]


def test_tier_boundary_is_by_total_units(tariff):
    at_60 = calculate_cost(60, tariff)
    at_61 = calculate_cost(61, tariff)

    assert select_tier(60, tariff) is tariff.tariff_low
    assert select_tier(61, tariff) is tariff.tariff_high

    # low tier: 30*4.5 + 30*8
    assert at_60.energy_charge == 375.0
    assert at_60.fixed_charge == 210.0
    # high tier: 60*12.75 + 1*18.5
    assert at_61.energy_charge == 783.5
    assert at_61.fixed_charge == 400.0
    assert at_61.total_cost > at_60.total_cost * 2


def test_fixed_charge_is_highest_slab_reached_not_sum():
    t = make_tariff(
        low=[{"up_to": 60, "rate": 1, "fixed_charge": 0}],
        high=[
            {"up_to": 60, "rate": 12.75, "fixed_charge": 0},
            {"up_to": 90, "rate": 18.5, "fixed_charge": 400},
        ],
    )
    res = calculate_cost(75, t)
    assert res.fixed_charge == 400
    assert res.energy_charge == round2(60 * 12.75 + 15 * 18.5)


def test_open_ended_slab_takes_everything_left(tariff):
    res = calculate_cost(250, tariff)
    assert sum(b.units for b in res.breakdown) == 250
    assert res.breakdown[-1].range == "181–250 kWh"
    assert res.breakdown[-1].units == 70
    assert res.fixed_charge == 2100.0
    assert res.total_cost == round2(res.energy_charge + res.fixed_charge + res.sscl)


@pytest.mark.parametrize("units", [0, 1, 29.5, 60, 61, 90, 119, 180, 181, 500])
def test_breakdown_units_sum_to_total(tariff, units):
    res = calculate_cost(units, tariff)
    assert round(sum(b.units for b in res.breakdown), 6) == units
    assert res.total_cost == round2(res.sub_total + res.sscl)
    assert min(res.energy_charge, res.fixed_charge, res.sub_total, res.sscl, res.total_cost) >= 0


def test_zero_units_has_no_breakdown(tariff):
    res = calculate_cost(0, tariff)
    assert res.breakdown == []
    assert res.total_cost == 0


def test_empty_slab_list_bills_nothing():
    t = make_tariff(low=[], high=[], sscl=0.1)
    res = calculate_cost(40, t)
    assert res.energy_charge == 0
    assert res.fixed_charge == 0
    assert res.breakdown == []


def test_slabs_that_stop_short_leave_remainder_unbilled():
    t = make_tariff(
        low=[{"up_to": 10, "rate": 2, "fixed_charge": 5}],
        high=[{"up_to": 100, "rate": 3, "fixed_charge": 50}],
        sscl=0,
    )
    res = calculate_cost(40, t)
    assert sum(b.units for b in res.breakdown) == 10
    assert res.energy_charge == 20
    assert res.total_cost == 25


def test_negative_units_rejected(tariff):
    with pytest.raises(ValidationError):
        calculate_cost(-1, tariff)


def test_round2_is_half_up():
    assert round2(11.625) == 11.63
    assert round2(1.005) == 1.01
    assert round2(2.675) == 2.68
