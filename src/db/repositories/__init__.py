"""Database repositories module."""

from .house_association import HouseAssociationRepository
from .user import UserRepository

__all__ = [
    "HouseAssociationRepository",
    "UserRepository",
]
