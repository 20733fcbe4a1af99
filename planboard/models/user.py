from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from planboard.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # super_admin/admin/human_resource/project_manager/team_member/client/viewer/qa_engineer/tester
    role: Mapped[str] = mapped_column(String(30), default="team_member")
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    custom_role_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("custom_roles.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    custom_role = relationship("CustomRole", foreign_keys=[custom_role_id], lazy="selectin")
