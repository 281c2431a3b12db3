"""User account database model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, Index, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.enums import UserRole
from src.db.models.base import Base, utcnow

if TYPE_CHECKING:
    from src.db.models.house_association import HouseAssociation, Membership


class User(Base):
    """Registered user (the authenticated principal).

    Email and national id are globally unique. A user who manages any
    house association cannot be deleted.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.MEMBER.value,
        index=True,
    )
    # Stored as 10 digits, separators stripped
    national_id: Mapped[str | None] = mapped_column(
        String(10),
        unique=True,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=utcnow,
    )

    # Relationships
    managed_associations: Mapped[list[HouseAssociation]] = relationship(
        "HouseAssociation",
        back_populates="manager",
        passive_deletes=True,
    )
    memberships: Mapped[list[Membership]] = relationship(
        "Membership",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_users_role_created", "role", "created_at"),)

    def __repr__(self) -> str:
        return f"<User {self.id} email={self.email} role={self.role}>"
