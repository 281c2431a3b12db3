"""API schemas module."""

from .auth import (
    AccessTokenResponse,
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    TokenValidationResponse,
)
from .common import ApiResponse, ErrorResponse, HealthResponse, PaginationInfo, error_body, ok
from .house_association import (
    AddMemberRequest,
    CreateHouseAssociationRequest,
    HouseAssociationResponse,
    MemberResponse,
    UpdateHouseAssociationRequest,
)
from .user import (
    ChangePasswordRequest,
    UpdateProfileRequest,
    UserMembershipResponse,
    UserResponse,
    UserStatisticsResponse,
)

__all__ = [
    "AccessTokenResponse",
    "AddMemberRequest",
    "ApiResponse",
    "AuthResponse",
    "ChangePasswordRequest",
    "CreateHouseAssociationRequest",
    "ErrorResponse",
    "HealthResponse",
    "HouseAssociationResponse",
    "LoginRequest",
    "MemberResponse",
    "PaginationInfo",
    "RefreshTokenRequest",
    "RegisterRequest",
    "TokenResponse",
    "TokenValidationResponse",
    "UpdateHouseAssociationRequest",
    "UpdateProfileRequest",
    "UserMembershipResponse",
    "UserResponse",
    "UserStatisticsResponse",
    "error_body",
    "ok",
]
