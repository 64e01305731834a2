"""
Milestone values -- the 0..100 completion scale.

Responsibility:
    Reads a raw stored milestone value as a Decimal on the 0..100 scale and
    rejects values the scale does not allow.  Also converts legacy stored
    forms (booleans, 0/1 for discrete milestones) to the current scale.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Shared by the
    Earned-Value Calculator and ComponentProgressService.

Invariants enforced:
    - Every value lies in [0, 100].
    - Discrete (non-partial) milestones hold only 0 or 100.
    - A legacy boolean reads as 0 or 100 and is never an error.

Failure modes:
    - InvalidMilestoneValueError for non-numeric, non-finite, out-of-range
      or non-endpoint discrete values.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from progress_kernel.exceptions import InvalidMilestoneValueError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def coerce_milestone_value(
    milestone_name: str,
    raw: Any,
    is_partial: bool,
) -> Decimal:
    """
    Convert a stored milestone value to a Decimal in 0..100.

    None reads as 0 (not started).  Booleans are the legacy discrete form
    and read as 0 or 100.
    """
    if raw is None:
        return ZERO
    # bool before int: bool is an int subclass
    if isinstance(raw, bool):
        return HUNDRED if raw else ZERO

    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, float):
        try:
            value = Decimal(str(raw))
        except InvalidOperation as exc:
            raise InvalidMilestoneValueError(
                milestone_name, raw, "not a number"
            ) from exc
    else:
        raise InvalidMilestoneValueError(milestone_name, raw, "not a number")

    if not value.is_finite():
        raise InvalidMilestoneValueError(milestone_name, raw, "not a finite number")
    if value < ZERO or value > HUNDRED:
        raise InvalidMilestoneValueError(
            milestone_name, raw, "must be between 0 and 100"
        )
    if not is_partial and value not in (ZERO, HUNDRED):
        raise InvalidMilestoneValueError(
            milestone_name, raw, "discrete milestones accept only 0 or 100"
        )
    return value


def normalize_legacy_milestones(
    milestones: Mapping[str, Any],
    partial_names: frozenset[str] | set[str],
) -> dict[str, Any]:
    """
    Return a copy of ``milestones`` with legacy discrete values on the 0..100 scale.

    - ``True``/``False`` become 100/0 for every milestone.
    - ``1`` becomes 100 for discrete milestones (names not in ``partial_names``).

    Every other value passes through untouched, including values the
    calculator would reject.  Idempotent.
    """
    normalized: dict[str, Any] = {}
    for name, value in milestones.items():
        if isinstance(value, bool):
            normalized[name] = 100 if value else 0
        elif name not in partial_names and isinstance(value, int) and value == 1:
            normalized[name] = 100
        else:
            normalized[name] = value
    return normalized
