"""
Module: progress_kernel.models.project
Responsibility: Minimal ORM projections of the two external entities whose
    lifecycle the template tables depend on: projects (cascade owner of every
    project-scoped row) and actors (referenced by the change log).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Deleting a project removes its template rows, change records and
      components (ON DELETE CASCADE on the child foreign keys).
    - Deleting an actor keeps historical change records; their changed_by
      becomes NULL (ON DELETE SET NULL on template_change_records).

Non-goals:
    - Project and user management belong to other subsystems.  Only the
      columns the engine needs are mapped here.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from progress_kernel.db.base import Base


class Project(Base):
    """A construction project: the scope of a template set."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class Actor(Base):
    """A user who can act on templates."""

    __tablename__ = "actors"

    display_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Actor {self.display_name}>"
