"""
Milestone definition validator (``progress_config.validator``).

Responsibility
--------------
Checks a parsed ``MilestoneDefinitionSet`` before it may seed the
database:

* component type names are unique;
* every type has at least one milestone;
* milestone names and orders are unique within a type;
* each weight is an integer in 0..100;
* weights of each type sum to exactly 100.

Failure modes
-------------
* ``ConfigValidationResult.errors`` non-empty  -> the set MUST NOT be used.
  ``get_milestone_definitions()`` turns that into ``ConfigValidationError``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from progress_config.schema import ComponentTypeDef, MilestoneDefinitionSet

REQUIRED_WEIGHT_SUM = 100


class ConfigValidationError(ValueError):
    """A milestone definition set failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Milestone configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _duplicates(values) -> list:
    return sorted(v for v, n in Counter(values).items() if n > 1)


def _validate_component_type(definition: ComponentTypeDef, errors: list[str]) -> None:
    ctype = definition.component_type
    if not definition.milestones:
        errors.append(f"{ctype}: no milestones defined")
        return

    for name in _duplicates(m.name for m in definition.milestones):
        errors.append(f"{ctype}: duplicate milestone name '{name}'")
    for order in _duplicates(m.order for m in definition.milestones):
        errors.append(f"{ctype}: duplicate milestone order {order}")

    for milestone in definition.milestones:
        weight = milestone.weight
        if isinstance(weight, bool) or not isinstance(weight, int):
            errors.append(
                f"{ctype}.{milestone.name}: weight must be an integer, got {weight!r}"
            )
        elif not 0 <= weight <= 100:
            errors.append(
                f"{ctype}.{milestone.name}: weight {weight} outside 0..100"
            )

    if all(
        isinstance(m.weight, int) and not isinstance(m.weight, bool)
        for m in definition.milestones
    ):
        total = definition.total_weight
        if total != REQUIRED_WEIGHT_SUM:
            errors.append(f"{ctype}: weights sum to {total}, expected 100")


def validate_definition_set(
    definition_set: MilestoneDefinitionSet,
) -> ConfigValidationResult:
    result = ConfigValidationResult()

    for ctype in _duplicates(definition_set.component_type_names):
        result.errors.append(f"duplicate component type '{ctype}'")

    for definition in definition_set.component_types:
        _validate_component_type(definition, result.errors)

    return result
