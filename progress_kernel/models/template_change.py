"""
Module: progress_kernel.models.template_change
Responsibility: ORM persistence for the append-only template change log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE through the ORM
      (ImmutabilityViolationError from db/immutability.py).
    - Exactly one record per successful template edit, written in the same
      transaction as the re-weighted rows.
    - Project deletion cascades; actor deletion sets changed_by_id to NULL
      so the historical record survives.

Audit relevance:
    This IS the template audit trail: who changed which weights, from what,
    to what, whether existing components were recalculated and how many.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from progress_kernel.db.base import Base, UUIDString


class TemplateChangeRecord(Base):
    """
    Immutable record of one template weight modification.

    Guarantees:
        - old_weights / new_weights are ordered lists of
          {"milestone_name": str, "weight": int} in milestone order,
          whatever order the editor submitted them in.
        - changed_at equals the last_updated written to the edited rows.
        - affected_component_count is 0 unless applied_to_existing.
    """

    __tablename__ = "template_change_records"

    __table_args__ = (
        Index(
            "idx_template_change_pair",
            "project_id",
            "component_type",
            "changed_at",
        ),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    component_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # NULL once the acting user has been removed
    changed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("actors.id", ondelete="SET NULL"),
        nullable=True,
    )

    old_weights: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
    )

    new_weights: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
    )

    applied_to_existing: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )

    affected_component_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<TemplateChangeRecord {self.component_type} in {self.project_id} "
            f"at {self.changed_at}>"
        )
