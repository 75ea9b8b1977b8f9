from app.models.user import User
from app.models.vehicle import Vehicle
from app.models.booking import Booking

__all__ = ["User", "Vehicle", "Booking"]
