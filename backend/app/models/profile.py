"""
models/profile.py — Profile table definition.

One row per identity (UNIQUE user_id). Created by the provisioning service
in the same unit of work as the identity; clients only insert profiles
through the admin-only user creation endpoint.

No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.enums import Role, string_enum


class Profile(db.Model):
    __tablename__ = "profiles"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(full_name)) > 0",
            name="ck_profiles_full_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE: the profile lives exactly as long as its identity.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[Role] = mapped_column(
        string_enum(Role, "ck_profiles_role"),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="profile",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Profile id={self.id} user_id={self.user_id} role={self.role}>"
