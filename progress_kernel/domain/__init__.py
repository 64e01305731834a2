"""Pure domain layer: DTOs, clock, validation. Zero I/O."""

from progress_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
    to_utc,
)
from progress_kernel.domain.milestone_values import (
    coerce_milestone_value,
    normalize_legacy_milestones,
)
from progress_kernel.domain.templates import (
    EffectiveTemplate,
    MilestoneWeight,
    TemplateChangeInfo,
    TemplateMilestone,
    TemplateSource,
    TemplateSummary,
    TemplateSummaryRow,
    UpdateTemplateResult,
)
from progress_kernel.domain.weight_validation import (
    coerce_weight_set,
    validate_weight_set,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "to_utc",
    "coerce_milestone_value",
    "normalize_legacy_milestones",
    "EffectiveTemplate",
    "MilestoneWeight",
    "TemplateChangeInfo",
    "TemplateMilestone",
    "TemplateSource",
    "TemplateSummary",
    "TemplateSummaryRow",
    "UpdateTemplateResult",
    "coerce_weight_set",
    "validate_weight_set",
]
