"""
Booking price calculation.

total_daily_rate = vehicle daily rate + coverage cost + selected add-ons
total_cost       = total_daily_rate * rental days
"""

from dataclasses import dataclass
from typing import Mapping

from app.models.enums import CoverageType

ADD_ON_DAILY_RATES: dict[str, float] = {
    "additional_driver": 4.75,
    "wifi_hotspot": 4.60,
    "roadside_assistance": 1.20,
    "tire_protection": 1.99,
    "personal_accident": 2.39,
    "theft_protection": 5.99,
    "extended_theft": 10.95,
    "interior_protection": 2.10,
}


@dataclass(frozen=True)
class PriceBreakdown:
    base_daily_rate: float
    cdw_cost: float
    add_ons_cost: float
    total_daily_rate: float
    total_cost: float


def coverage_daily_cost(coverage: CoverageType, full_coverage_cost: float) -> float:
    coverage = CoverageType(coverage)
    if coverage == CoverageType.FULL:
        return full_coverage_cost
    if coverage == CoverageType.BASIC:
        return 0.0
    raise ValueError(f"Unhandled coverage type: {coverage}")


def add_ons_daily_cost(add_ons: Mapping[str, bool]) -> float:
    return sum(ADD_ON_DAILY_RATES[name] for name, selected in add_ons.items() if selected and name in ADD_ON_DAILY_RATES)


def calculate_price(
    daily_rate: float,
    rental_days: int,
    coverage: CoverageType,
    add_ons: Mapping[str, bool],
    full_coverage_cost: float,
) -> PriceBreakdown:
    cdw_cost = coverage_daily_cost(coverage, full_coverage_cost)
    add_ons_cost = round(add_ons_daily_cost(add_ons), 2)
    total_daily_rate = round(daily_rate + cdw_cost + add_ons_cost, 2)
    return PriceBreakdown(
        base_daily_rate=daily_rate,
        cdw_cost=cdw_cost,
        add_ons_cost=add_ons_cost,
        total_daily_rate=total_daily_rate,
        total_cost=round(total_daily_rate * rental_days, 2),
    )
