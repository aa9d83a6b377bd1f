import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quadro.db.base import Base


class ProjectInvitation(Base):
    """
    Convite por email para participar de um projeto.

    O token é a única credencial do convite e só pode ser consumido uma vez
    (``accepted_at`` preenchido). Um convite com ``expires_at`` no passado
    é tratado como inexistente em todas as consultas.
    """
    __tablename__ = "project_invitation"
    __table_args__ = (
        CheckConstraint(
            "role IN ('owner','contributor')",
            name="ck_project_invitation_role_valid",
        ),
        # No máximo um convite pendente por (projeto, email)
        Index(
            "uq_project_invitation_pending_email",
            "project_id",
            "email",
            unique=True,
            postgresql_where=text("accepted_at IS NULL"),
            sqlite_where=text("accepted_at IS NULL"),
        ),
        Index("ix_project_invitation_token", "token", unique=True),
        Index("ix_project_invitation_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    # Sempre em minúsculas
    email: Mapped[str] = mapped_column(String(length=320), nullable=False)

    role: Mapped[str] = mapped_column(
        String(length=20),
        nullable=False,
        default="contributor"
    )

    invited_by_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    token: Mapped[str] = mapped_column(String(length=64), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )

    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="invitations",
    )

    invited_by: Mapped["AppUser"] = relationship(
        "AppUser",
        foreign_keys=[invited_by_user_id],
    )
