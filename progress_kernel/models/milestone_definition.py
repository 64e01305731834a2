"""
Module: progress_kernel.models.milestone_definition
Responsibility: ORM persistence for the system-wide default milestone set
    of every component type.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (component_type, milestone_name) is unique.
    - Per component_type, weights sum to 100.  Rows are written only by
      TemplateStoreService.seed_milestone_definitions(), which receives a
      set already validated by progress_config.

Audit relevance:
    These rows are the fallback template for any project that has not
    cloned its own set, and the source copied verbatim by cloning.  Changes
    never retroactively alter a project's cloned rows.
"""

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from progress_kernel.db.base import Base


class MilestoneDefinition(Base):
    """
    One default milestone of one component type.

    Contract:
        Read-only at runtime from the engine's perspective; seeded once by
        the platform from progress_config.
    """

    __tablename__ = "milestone_definitions"

    __table_args__ = (
        UniqueConstraint(
            "component_type", "milestone_name", name="uq_milestone_definition"
        ),
        Index("idx_milestone_definition_type", "component_type"),
    )

    component_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    milestone_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Percentage contribution, 0..100
    weight: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    milestone_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Partial milestones accept 0..100; discrete ones only 0 or 100
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

    def __repr__(self) -> str:
        return (
            f"<MilestoneDefinition {self.component_type}.{self.milestone_name} "
            f"w={self.weight}>"
        )
