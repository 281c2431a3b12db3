"""Security module for authentication and authorization."""

from .guards import (
    AuthContext,
    Authenticator,
    auth_guard,
    check_role,
    check_self_access,
    extract_token_from_header,
    has_any_role,
    has_role,
    optional_auth_guard,
    path_param,
    require_manager,
    require_member_or_manager,
    require_role,
    require_self,
)
from .jwt import (
    JWTConfig,
    JWTService,
    TokenClaims,
)
from .password import PasswordService
from .validation import (
    check_password_strength,
    is_valid_email,
    is_valid_national_id,
    is_valid_person_name,
    normalize_email,
    normalize_national_id,
)

__all__ = [
    # Guards
    "AuthContext",
    "Authenticator",
    "auth_guard",
    "check_role",
    "check_self_access",
    "extract_token_from_header",
    "has_any_role",
    "has_role",
    "optional_auth_guard",
    "path_param",
    "require_manager",
    "require_member_or_manager",
    "require_role",
    "require_self",
    # JWT
    "JWTConfig",
    "JWTService",
    "TokenClaims",
    # Password
    "PasswordService",
    # Validation
    "check_password_strength",
    "is_valid_email",
    "is_valid_national_id",
    "is_valid_person_name",
    "normalize_email",
    "normalize_national_id",
]
