"""Database models module."""

from .base import Base
from .house_association import HouseAssociation, Membership
from .user import User

__all__ = [
    "Base",
    "HouseAssociation",
    "Membership",
    "User",
]
