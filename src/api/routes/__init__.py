"""API routes module."""

from .auth import AuthController
from .health import HealthController
from .house_association import HouseAssociationController
from .user import UserController

__all__ = [
    "AuthController",
    "HealthController",
    "HouseAssociationController",
    "UserController",
]
