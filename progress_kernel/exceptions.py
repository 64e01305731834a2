"""
Typed Exception Hierarchy for the Progress Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Template edits are driven by people through a settings screen.  Every
rejection has to be rendered as a precise, actionable message ("weights sum
to 99, not 100"), so callers must never parse message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        editing_service.update_template(...)
    except WeightSumInvalidError as e:
        api_response(code=e.code, computed_sum=e.computed_sum)
    except ConcurrentModificationError:
        reload_and_ask_user_to_resubmit()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProgressKernelError (base)
    |
    +-- TemplateError
    |   +-- TemplateNotFoundError
    |   +-- TemplatesAlreadyExistError
    |   +-- TemplateInvariantError
    |
    +-- WeightValidationError
    |   +-- InvalidMilestoneError
    |   +-- IncompleteWeightSetError
    |   +-- WeightSumInvalidError
    |   +-- InvalidWeightError
    |
    +-- ComponentError
    |   +-- ComponentNotFoundError
    |   +-- InvalidMilestoneValueError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |
    +-- RecalculationError
    |   +-- PartialFailureError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised                       | Recovery
--------------|---------------------------|-----------------------------------|-------------------------
Template      | TEMPLATE_NOT_FOUND        | Type defined nowhere              | Fix configuration
              | TEMPLATES_ALREADY_EXIST   | Clone on a project with rows      | Skip the clone
              | TEMPLATE_INVARIANT        | Flush would break sum == 100      | Programming error
--------------|---------------------------|-----------------------------------|-------------------------
Weights       | INVALID_MILESTONE         | Unknown milestone name            | Correct and resubmit
              | INCOMPLETE_WEIGHT_SET     | Omitted or duplicated milestone   | Correct and resubmit
              | WEIGHT_SUM_INVALID        | Weights do not sum to 100         | Correct and resubmit
              | INVALID_WEIGHT            | Weight not an int in 0..100       | Correct and resubmit
--------------|---------------------------|-----------------------------------|-------------------------
Component     | COMPONENT_NOT_FOUND       | Component ID doesn't exist        | Caller defect
              | INVALID_MILESTONE_VALUE   | Value outside 0..100 / not 0|100  | Correct and resubmit
--------------|---------------------------|-----------------------------------|-------------------------
Concurrency   | CONCURRENT_MODIFICATION   | Stale expected_last_updated       | Re-fetch and retry
Authorization | PERMISSION_DENIED         | Actor may not edit templates      | Terminal
Recalculation | PARTIAL_FAILURE           | Batch aborted partway             | Caller decides re-run
Immutability  | IMMUTABILITY_VIOLATION    | UPDATE/DELETE of change record    | Programming error

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Input errors (WeightValidationError) are never retried automatically.
   They are detected before any row is touched.

2. ConcurrentModificationError is never auto-merged.  The caller re-reads
   the template (and its last_updated) and resubmits.

3. PartialFailureError carries written_count so the caller can report how
   far the batch got before deciding to re-run it.
===============================================================================
"""


class ProgressKernelError(Exception):
    """
    Base exception for all progress kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROGRESS_KERNEL_ERROR"


# Template-related exceptions


class TemplateError(ProgressKernelError):
    """Base exception for template store errors."""

    code: str = "TEMPLATE_ERROR"


class TemplateNotFoundError(TemplateError):
    """
    No milestone definition exists for the component type.

    A configuration defect, not a runtime condition to recover from.
    """

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, component_type: str, project_id: str | None = None):
        self.component_type = component_type
        self.project_id = project_id
        super().__init__(
            f"No milestone template defined for component type '{component_type}'"
        )


class TemplatesAlreadyExistError(TemplateError):
    """Project already has template rows; cloning is all-or-nothing."""

    code: str = "TEMPLATES_ALREADY_EXIST"

    def __init__(self, project_id: str, existing_count: int):
        self.project_id = project_id
        self.existing_count = existing_count
        super().__init__(
            f"Templates already exist for project {project_id} "
            f"({existing_count} rows)"
        )


class TemplateInvariantError(TemplateError):
    """
    A flush would leave a (project, component type) weight set != 100.

    Raised by the flush-time guard in db/immutability.py.  Reaching it means
    a code path bypassed the editing service's validation.
    """

    code: str = "TEMPLATE_INVARIANT"

    def __init__(self, project_id: str, component_type: str, weight_sum: int):
        self.project_id = project_id
        self.component_type = component_type
        self.weight_sum = weight_sum
        super().__init__(
            f"Milestone weights for {component_type} in project {project_id} "
            f"would sum to {weight_sum}, not 100"
        )


# Weight validation exceptions


class WeightValidationError(ProgressKernelError):
    """Base exception for caller-supplied weight set errors."""

    code: str = "WEIGHT_VALIDATION_ERROR"


class InvalidMilestoneError(WeightValidationError):
    """A milestone name is not part of the current template."""

    code: str = "INVALID_MILESTONE"

    def __init__(self, milestone_name: str, component_type: str):
        self.milestone_name = milestone_name
        self.component_type = component_type
        super().__init__(
            f"Invalid milestone name '{milestone_name}' for component type "
            f"'{component_type}'"
        )


class IncompleteWeightSetError(WeightValidationError):
    """The weight set omits or duplicates milestones of the template."""

    code: str = "INCOMPLETE_WEIGHT_SET"

    def __init__(
        self,
        component_type: str,
        missing: list[str],
        duplicates: list[str],
    ):
        self.component_type = component_type
        self.missing = missing
        self.duplicates = duplicates
        parts = []
        if missing:
            parts.append(f"missing {', '.join(missing)}")
        if duplicates:
            parts.append(f"duplicated {', '.join(duplicates)}")
        super().__init__(
            f"Weight set for '{component_type}' must name every milestone "
            f"exactly once: {'; '.join(parts)}"
        )


class WeightSumInvalidError(WeightValidationError):
    """Weights do not sum to exactly 100."""

    code: str = "WEIGHT_SUM_INVALID"

    def __init__(self, component_type: str, computed_sum: int):
        self.component_type = component_type
        self.computed_sum = computed_sum
        super().__init__(
            f"Weights must sum to 100% (current: {computed_sum}%)"
        )


class InvalidWeightError(WeightValidationError):
    """A single weight is not an integer in 0..100."""

    code: str = "INVALID_WEIGHT"

    def __init__(self, milestone_name: str, weight: object):
        self.milestone_name = milestone_name
        self.weight = weight
        super().__init__(
            f"Weight for '{milestone_name}' must be an integer between 0 and "
            f"100, got {weight!r}"
        )


# Component-related exceptions


class ComponentError(ProgressKernelError):
    """Base exception for component progress errors."""

    code: str = "COMPONENT_ERROR"


class ComponentNotFoundError(ComponentError):
    """Component with given ID was not found."""

    code: str = "COMPONENT_NOT_FOUND"

    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(f"Component not found: {component_id}")


class InvalidMilestoneValueError(ComponentError):
    """
    A milestone completion value is outside the 0..100 scale.

    Discrete (non-partial) milestones only accept the endpoints 0 and 100.
    """

    code: str = "INVALID_MILESTONE_VALUE"

    def __init__(self, milestone_name: str, value: object, reason: str):
        self.milestone_name = milestone_name
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid value {value!r} for milestone '{milestone_name}': {reason}"
        )


# Concurrency exceptions


class ConcurrencyError(ProgressKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """
    Template rows were modified after the caller's observed timestamp.

    The caller must re-read and resubmit; no merge is attempted.
    """

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        project_id: str,
        component_type: str,
        expected_last_updated: str,
        actual_last_updated: str,
    ):
        self.project_id = project_id
        self.component_type = component_type
        self.expected_last_updated = expected_last_updated
        self.actual_last_updated = actual_last_updated
        super().__init__(
            f"Templates for '{component_type}' were modified by another user "
            f"at {actual_last_updated} (you loaded {expected_last_updated}). "
            f"Refresh and try again."
        )


# Authorization exceptions


class AuthorizationError(ProgressKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Actor is not allowed to edit templates for the project."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, actor_id: str, project_id: str, operation: str):
        self.actor_id = actor_id
        self.project_id = project_id
        self.operation = operation
        super().__init__(
            f"Permission denied: actor {actor_id} cannot {operation} "
            f"for project {project_id}"
        )


# Recalculation exceptions


class RecalculationError(ProgressKernelError):
    """Base exception for batch recalculation errors."""

    code: str = "RECALCULATION_ERROR"


class PartialFailureError(RecalculationError):
    """A component write failed; the batch was aborted partway."""

    code: str = "PARTIAL_FAILURE"

    def __init__(
        self,
        project_id: str,
        component_type: str,
        written_count: int,
        failed_component_id: str | None,
        reason: str,
    ):
        self.project_id = project_id
        self.component_type = component_type
        self.written_count = written_count
        self.failed_component_id = failed_component_id
        self.reason = reason
        super().__init__(
            f"Recalculation of '{component_type}' in project {project_id} "
            f"aborted after {written_count} write(s): {reason}"
        )


# Immutability exceptions


class ImmutabilityError(ProgressKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )
