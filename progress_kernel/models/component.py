"""
Module: progress_kernel.models.component
Responsibility: ORM projection of the component table owned by the
    component-tracking subsystem.  The engine reads current_milestones and
    writes percent_complete.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - percent_complete equals the Earned-Value Calculator's output for
      current_milestones under the template in effect (maintained by
      ComponentProgressService on every milestone write and by
      RecalculationService after template edits).
    - current_milestones values lie in 0..100; discrete milestones hold
      only 0 or 100.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from progress_kernel.db.base import Base, UUIDString


class Component(Base):
    """A trackable physical item (valve, spool, field weld, ...)."""

    __tablename__ = "components"

    __table_args__ = (
        Index("idx_component_pair", "project_id", "component_type"),
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

    # milestone_name -> completion value on the 0..100 scale
    current_milestones: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )

    percent_complete: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0.00"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Component {self.id} {self.component_type} {self.percent_complete}%>"
