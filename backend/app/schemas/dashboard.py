"""
Pydantic schemas for the admin dashboard.
"""

from typing import Optional

from app.schemas.common import APIModel


class IdleVehicle(APIModel):
    id: int
    make: str
    model: str


class DashboardStats(APIModel):
    active_rentals: int
    total_bookings: int
    upcoming_bookings: int
    total_earned: float
    revenue_this_month: float
    revenue_last_month: float
    revenue_change_percent: Optional[float]
    fleet_size: int
    fleet_utilization: float
    idle_vehicles: list[IdleVehicle]
