from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from planboard.models.base import Base, TimestampMixin, UUIDMixin

project_team_members = Table(
    "project_team_members",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True, index=True
    )
    archived: Mapped[bool] = mapped_column(Boolean, default=False)

    team_members = relationship("User", secondary=project_team_members, lazy="selectin")
    role_assignments = relationship(
        "ProjectRoleAssignment",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
        foreign_keys="ProjectRoleAssignment.project_id",
    )


class ProjectRoleAssignment(Base, UUIDMixin):
    """Explicit per-user project role; overrides the role derived from membership."""

    __tablename__ = "project_role_assignments"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_role_user"),)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # project_manager/project_member/project_viewer/project_client/project_qa_lead/project_tester
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    project = relationship(
        "Project", back_populates="role_assignments", foreign_keys=[project_id]
    )
