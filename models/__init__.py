
from .user import User, UserRole
from .booking import Booking, BookingOwner, BookingStatus

__all__ = [
    "User",
    "UserRole",
    "Booking",
    "BookingOwner",
    "BookingStatus",
]
