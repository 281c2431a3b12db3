"""API services module."""

from .access import ResourceAccessValidator
from .auth import AccessToken, AuthService, TokenPair
from .common import Pagination, store_errors
from .house_association import HouseAssociationService
from .user import UserService

__all__ = [
    "AccessToken",
    "AuthService",
    "HouseAssociationService",
    "Pagination",
    "ResourceAccessValidator",
    "TokenPair",
    "UserService",
    "store_errors",
]
