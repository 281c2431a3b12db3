"""House association and membership database models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.models.base import Base, utcnow

if TYPE_CHECKING:
    from src.db.models.user import User


class HouseAssociation(Base):
    """A house association: one manager, many members.

    Deleting an association deletes its membership roster.
    """

    __tablename__ = "house_associations"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    registration_num: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
    )
    manager_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
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
    manager: Mapped[User] = relationship(
        "User",
        back_populates="managed_associations",
        lazy="joined",
    )
    members: Mapped[list[Membership]] = relationship(
        "Membership",
        back_populates="house_association",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<HouseAssociation {self.id} reg={self.registration_num} manager={self.manager_id}>"


class Membership(Base):
    """Links one user to one house association.

    The (user, association) pair is unique; the database constraint is the
    final arbiter for concurrent additions.
    """

    __tablename__ = "memberships"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    house_association_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("house_associations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Relationships
    user: Mapped[User] = relationship(
        "User",
        back_populates="memberships",
        lazy="joined",
    )
    house_association: Mapped[HouseAssociation] = relationship(
        "HouseAssociation",
        back_populates="members",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "house_association_id", name="uq_memberships_user_association"),
        Index("ix_memberships_association_created", "house_association_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Membership user={self.user_id} association={self.house_association_id}>"
