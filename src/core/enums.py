from enum import Enum


class UserRole(str, Enum):
    """Global role held by a registered user.

    Exactly one role per user. Managers own house associations,
    members belong to them.
    """

    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class TokenKind(str, Enum):
    """Signed token classes. Never interchangeable."""

    ACCESS = "access"
    REFRESH = "refresh"


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"
