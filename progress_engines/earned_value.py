"""
progress_engines.earned_value -- Weighted percent-complete of a component.

Responsibility:
    Compute a component's percent complete from its milestone values and
    the template in effect for its (project, component type):

        weighted_sum = sum(weight * value / 100)   over template milestones
        weight_total = sum(weight)
        percent      = weighted_sum / weight_total * 100

    A milestone the component has no value for counts as 0.  Values for
    names outside the template are ignored.  The result is rounded to two
    decimals, half up.  A template whose weights total 0 yields 0.00.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import progress_kernel/domain.
    Consumed by RecalculationService and ComponentProgressService.

Invariants enforced:
    - Determinism: identical inputs produce identical outputs; no state,
      no clock access.  Safe to call from any number of threads.
    - Decimal-only arithmetic; floats are converted through str() on entry.
    - Output lies in 0.00..100.00 for valid inputs.

Failure modes:
    - InvalidMilestoneValueError when a template milestone holds a
      non-numeric value, a value outside [0, 100], or a discrete value
      other than 0/100.  Legacy booleans read as 0/100.

Usage:
    from progress_engines.earned_value import compute_percent_complete

    pct = compute_percent_complete(
        milestones={"Receive": 100, "Install": 40, "Test": 0},
        template=effective_template,
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union

from progress_engines.tracer import traced_engine
from progress_kernel.domain.milestone_values import coerce_milestone_value
from progress_kernel.domain.templates import EffectiveTemplate, TemplateMilestone

PERCENT_QUANTUM = Decimal("0.01")
ZERO_PERCENT = Decimal("0.00")
_HUNDRED = Decimal("100")

TemplateInput = Union[EffectiveTemplate, Iterable[TemplateMilestone], Mapping[str, int]]


def _template_entries(template: TemplateInput) -> tuple[TemplateMilestone, ...]:
    if isinstance(template, EffectiveTemplate):
        return template.milestones
    if isinstance(template, Mapping):
        # A bare name -> weight map carries no discrete flags; read as partial.
        return tuple(
            TemplateMilestone(
                milestone_name=name,
                weight=weight,
                milestone_order=order,
                is_partial=True,
            )
            for order, (name, weight) in enumerate(template.items(), start=1)
        )
    return tuple(template)


class EarnedValueCalculator:
    """
    Pure earned-value calculator.

    Contract:
        No I/O, no database access, fully deterministic.  The template is
        passed in; the calculator never looks one up.
    """

    def compute(
        self,
        milestones: Mapping[str, Any] | None,
        template: TemplateInput,
    ) -> Decimal:
        """Return percent complete quantized to 0.01 (ROUND_HALF_UP)."""
        values = milestones or {}
        weighted_sum = Decimal("0")
        weight_total = Decimal("0")

        for entry in _template_entries(template):
            weight = Decimal(entry.weight)
            value = coerce_milestone_value(
                entry.milestone_name,
                values.get(entry.milestone_name),
                entry.is_partial,
            )
            weighted_sum += weight * value / _HUNDRED
            weight_total += weight

        if weight_total == 0:
            return ZERO_PERCENT

        percent = weighted_sum / weight_total * _HUNDRED
        return percent.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


_CALCULATOR = EarnedValueCalculator()


@traced_engine("earned_value", "1.0", fingerprint_fields=("milestones", "template"))
def compute_percent_complete(
    milestones: Mapping[str, Any] | None,
    template: TemplateInput,
) -> Decimal:
    """Traced entry point; see EarnedValueCalculator.compute."""
    return _CALCULATOR.compute(milestones, template)
