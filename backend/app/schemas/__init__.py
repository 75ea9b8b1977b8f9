from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse, AvailabilityResponse,
)
from app.schemas.booking import BookingCreate, BookingResponse, BookingUpdate, BulkStatusUpdate
from app.schemas.dashboard import DashboardStats

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "VehicleCreate", "VehicleUpdate", "VehicleResponse", "VehicleListResponse", "AvailabilityResponse",
    "BookingCreate", "BookingResponse", "BookingUpdate", "BulkStatusUpdate",
    "DashboardStats",
]
