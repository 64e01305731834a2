"""
Template DTOs -- Pure data structures for milestone templates.

Responsibility:
    Defines the immutable values that cross the kernel boundary: the
    effective template handed to the calculator, the weight set a caller
    submits for an edit, the result of that edit, change-log entries and
    the per-project template summary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  Selectors and services convert ORM rows to
    these DTOs at the boundary.

Invariants enforced:
    - EffectiveTemplate.milestones is a tuple ordered by milestone_order.
    - Weight entries serialize to ``{"milestone_name", "weight"}`` dicts in
      the same shape the change log stores.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class TemplateSource(str, Enum):
    """Where an effective template came from."""

    PROJECT = "project"
    SYSTEM = "system"


@dataclass(frozen=True)
class MilestoneWeight:
    """One (milestone_name, weight) pair of a submitted or recorded weight set."""

    milestone_name: str
    weight: int

    def to_dict(self) -> dict[str, Any]:
        return {"milestone_name": self.milestone_name, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MilestoneWeight:
        return cls(milestone_name=data["milestone_name"], weight=data["weight"])


@dataclass(frozen=True)
class TemplateMilestone:
    """
    One milestone of an effective template.

    Guarantees:
        - ``weight`` is an int in 0..100.
        - ``is_partial`` False means only 0 and 100 are valid values.
    """

    milestone_name: str
    weight: int
    milestone_order: int
    is_partial: bool = False
    requires_welder: bool = False


@dataclass(frozen=True)
class EffectiveTemplate:
    """
    The ordered milestone list in force for a (project, component type).

    Contract:
        Produced by TemplateSelector.get_effective_template(); consumed by
        the Earned-Value Calculator.  ``last_updated`` is the newest row
        timestamp for PROJECT sources and None for SYSTEM sources; callers
        echo it back as ``expected_last_updated`` when editing.
    """

    component_type: str
    source: TemplateSource
    milestones: tuple[TemplateMilestone, ...]
    last_updated: datetime | None = None

    @property
    def milestone_names(self) -> tuple[str, ...]:
        return tuple(m.milestone_name for m in self.milestones)

    @property
    def total_weight(self) -> int:
        return sum(m.weight for m in self.milestones)

    def get(self, milestone_name: str) -> TemplateMilestone | None:
        for milestone in self.milestones:
            if milestone.milestone_name == milestone_name:
                return milestone
        return None

    def weights(self) -> tuple[MilestoneWeight, ...]:
        return tuple(
            MilestoneWeight(m.milestone_name, m.weight) for m in self.milestones
        )


@dataclass(frozen=True)
class UpdateTemplateResult:
    """Outcome of a successful template edit."""

    affected_count: int
    audit_id: UUID


@dataclass(frozen=True)
class TemplateChangeInfo:
    """Read-side view of one TemplateChangeRecord."""

    id: UUID
    project_id: UUID
    component_type: str
    changed_by: UUID | None
    old_weights: tuple[MilestoneWeight, ...]
    new_weights: tuple[MilestoneWeight, ...]
    applied_to_existing: bool
    affected_component_count: int
    changed_at: datetime


@dataclass(frozen=True)
class TemplateSummaryRow:
    """Per component type line of a project template summary."""

    component_type: str
    milestone_count: int
    total_weight: int
    last_updated: datetime


@dataclass(frozen=True)
class TemplateSummary:
    """Whether a project has its own templates, and their shape per type."""

    project_id: UUID
    has_templates: bool
    rows: tuple[TemplateSummaryRow, ...] = ()
