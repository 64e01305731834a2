"""
Weight validation -- pure checks on a caller-submitted weight set.

Responsibility:
    Validates a proposed set of milestone weights against the milestone
    names of the current template, in a fixed order so the caller always
    sees the first rule its input breaks:

        1. every submitted name belongs to the template   InvalidMilestoneError
        2. every template name appears exactly once       IncompleteWeightSetError
        3. each weight is an int in 0..100                InvalidWeightError
           and the weights sum to 100                     WeightSumInvalidError

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    TemplateEditingService before any row is read for update.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from progress_kernel.domain.templates import MilestoneWeight
from progress_kernel.exceptions import (
    IncompleteWeightSetError,
    InvalidMilestoneError,
    InvalidWeightError,
    WeightSumInvalidError,
)

REQUIRED_WEIGHT_SUM = 100


def coerce_weight_set(
    new_weights: Iterable[MilestoneWeight | Mapping[str, Any]],
) -> tuple[MilestoneWeight, ...]:
    """Accept MilestoneWeight values or ``{"milestone_name", "weight"}`` dicts."""
    coerced = []
    for entry in new_weights:
        if isinstance(entry, MilestoneWeight):
            coerced.append(entry)
        else:
            coerced.append(MilestoneWeight.from_dict(entry))
    return tuple(coerced)


def _is_valid_weight(weight: object) -> bool:
    # bool is an int subclass; True is not a weight
    if isinstance(weight, bool) or not isinstance(weight, int):
        return False
    return 0 <= weight <= 100


def validate_weight_set(
    component_type: str,
    template_names: Sequence[str],
    new_weights: Sequence[MilestoneWeight],
) -> None:
    """
    Raise the first applicable validation error, or return None.

    Args:
        component_type: Used only for error context.
        template_names: Milestone names of the template being edited.
        new_weights: The submitted weight set.
    """
    known = set(template_names)

    for entry in new_weights:
        if entry.milestone_name not in known:
            raise InvalidMilestoneError(
                milestone_name=entry.milestone_name,
                component_type=component_type,
            )

    counts = Counter(entry.milestone_name for entry in new_weights)
    missing = [name for name in template_names if name not in counts]
    duplicates = sorted(name for name, n in counts.items() if n > 1)
    if missing or duplicates:
        raise IncompleteWeightSetError(
            component_type=component_type,
            missing=missing,
            duplicates=duplicates,
        )

    for entry in new_weights:
        if not _is_valid_weight(entry.weight):
            raise InvalidWeightError(
                milestone_name=entry.milestone_name,
                weight=entry.weight,
            )

    computed_sum = sum(entry.weight for entry in new_weights)
    if computed_sum != REQUIRED_WEIGHT_SUM:
        raise WeightSumInvalidError(
            component_type=component_type,
            computed_sum=computed_sum,
        )
