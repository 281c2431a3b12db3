"""Database module.

Provides async SQLAlchemy session management, models and repositories.
"""

from .exceptions import DuplicateRecordError, RepositoryError
from .models import Base, HouseAssociation, Membership, User
from .session import DatabaseManager

__all__ = [
    # Models
    "Base",
    "HouseAssociation",
    "Membership",
    "User",
    # Errors
    "DuplicateRecordError",
    "RepositoryError",
    # Session management
    "DatabaseManager",
]
