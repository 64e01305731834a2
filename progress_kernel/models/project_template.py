"""
Module: progress_kernel.models.project_template
Responsibility: ORM persistence for per-project milestone weights that
    override the system defaults.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (project_id, component_type, milestone_name) is unique.
    - Per (project_id, component_type), weights sum to exactly 100.
      Enforced by TemplateEditingService before mutation and by the
      flush-time guard in db/immutability.py.
    - Rows are removed only by project deletion (ON DELETE CASCADE).

Failure modes:
    - TemplateInvariantError from the flush-time guard if a write would
      leave a weight set != 100.
    - IntegrityError on a duplicate milestone row.

Audit relevance:
    last_updated drives optimistic concurrency: an edit is rejected when any
    row of the set changed after the caller's observed timestamp.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from progress_kernel.db.base import Base, UUIDString


class ProjectMilestoneTemplate(Base):
    """
    One milestone weight of one component type in one project.

    Contract:
        The full row set for a (project_id, component_type) is created
        atomically by cloning and afterwards only re-weighted as a whole.
    """

    __tablename__ = "project_milestone_templates"

    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "component_type",
            "milestone_name",
            name="uq_project_milestone_template",
        ),
        Index("idx_project_template_pair", "project_id", "component_type"),
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

    milestone_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    weight: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    milestone_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    is_partial: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    requires_welder: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Set from the injected clock on clone and on every re-weight
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectMilestoneTemplate {self.project_id} "
            f"{self.component_type}.{self.milestone_name} w={self.weight}>"
        )
