import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quadro.db.base import Base

MEMBER_ROLES = ("owner", "contributor")


class ProjectMember(Base):
    """
    Vínculo (projeto, usuário) com papel.

    ``joined_at`` nulo indica vínculo ainda não ativo; só conta como membro
    quem tem ``joined_at`` preenchido.
    """
    __tablename__ = "project_member"
    __table_args__ = (
        CheckConstraint(
            "role IN ('owner','contributor')",
            name="ck_project_member_role_valid",
        ),
        UniqueConstraint("project_id", "user_id", name="uq_project_member_project_user"),
        Index("ix_project_member_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    role: Mapped[str] = mapped_column(
        String(length=20),
        nullable=False,
        default="contributor"
    )

    # Nulo quando a conta de quem convidou foi removida; o vínculo continua
    invited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True
    )

    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    joined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="members",
    )

    user: Mapped["AppUser"] = relationship(
        "AppUser",
        foreign_keys=[user_id],
    )

    invited_by: Mapped["AppUser"] = relationship(
        "AppUser",
        foreign_keys=[invited_by_user_id],
    )
