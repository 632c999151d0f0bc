# services/calculator.py - slab tariff cost engine (pure, no I/O)
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from schemas import BreakdownLine, CostResult, Slab, TariffData
from services import config
from services.errors import ValidationError

_CENT = Decimal("0.01")


def round2(value: float) -> float:
    """Half-up rounding to 2 decimals (11.625 -> 11.63)."""
    # go through str() so binary noise like 1.00499999 doesn't decide the cent
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _fmt_units(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else f"{round(n, 2)}"


def select_tier(total_units: float, tariff: TariffData) -> List[Slab]:
    # Tier is chosen by TOTAL consumption, so 60 -> 61 units jumps to the high tier's
    # prices for every unit. That discontinuity is how the tariff is published.
    return tariff.tariff_low if total_units <= config.LOW_TIER_LIMIT else tariff.tariff_high


def calculate_cost(total_units: float, tariff: TariffData) -> CostResult:
    """
    Price ``total_units`` against the tariff.

    Slabs are walked in order; each takes ``min(remaining, up_to - prev_limit)``
    units (all remaining units for the open-ended slab). The fixed charge is the
    one of the highest slab reached, never a sum. If the slabs end before the
    units do, the remainder is left unbilled.
    """
    if total_units < 0:
        raise ValidationError("total_units must be >= 0")

    slabs = select_tier(total_units, tariff)

    remaining = float(total_units)
    prev_limit = 0.0
    energy_charge = 0.0
    fixed_charge = 0.0
    breakdown: List[BreakdownLine] = []

    for slab in slabs:
        if remaining <= 0:
            break

        width = remaining if slab.open_ended else slab.up_to - prev_limit
        units = min(remaining, width)
        cost = round2(units * slab.rate)

        breakdown.append(BreakdownLine(
            range=f"{_fmt_units(prev_limit + 1)}–{_fmt_units(prev_limit + units)} kWh",
            units=units,
            rate=slab.rate,
            cost=cost,
        ))

        energy_charge += cost
        fixed_charge = max(fixed_charge, slab.fixed_charge)

        remaining -= units
        prev_limit = prev_limit + units if slab.open_ended else slab.up_to

    sub_total = round2(energy_charge + fixed_charge)
    sscl = round2(sub_total * tariff.sscl_rate)
    total_cost = round2(sub_total + sscl)

    return CostResult(
        total_units=total_units,
        energy_charge=round2(energy_charge),
        fixed_charge=fixed_charge,
        sub_total=sub_total,
        sscl=sscl,
        total_cost=total_cost,
        breakdown=breakdown,
    )
