"""
ORM-level integrity enforcement for template tables.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Entity                      | Rule                               | Error
----------------------------|------------------------------------|-----------------------------
TemplateChangeRecord        | ALWAYS immutable (from creation)   | ImmutabilityViolationError
ProjectMilestoneTemplate    | Weights per (project, type) = 100  | TemplateInvariantError
                            | at every flush                     |

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_flush]  --> _check_template_weight_sums() --> TemplateInvariantError
         |
         v
    [before_update] --> _check_template_change_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_template_change_delete() ---------^
         |
         v
    SQL sent to database (only if checks pass)

The weight-sum check runs at session level, before the flush plan is built,
so a set that would read != 100 never reaches the database.  It covers
every write the ORM unit of work performs: inserts from cloning, in-place
re-weighting and row deletion.  Bulk ``update()`` statements bypass the
unit of work; no code in this package issues them against template rows.

===============================================================================
USAGE
===============================================================================

    from progress_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to write an invalid state on purpose:

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event, select
from sqlalchemy.orm import Session

from progress_kernel.exceptions import (
    ImmutabilityViolationError,
    TemplateInvariantError,
)
from progress_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

REQUIRED_WEIGHT_SUM = 100


def _check_template_weight_sums(session, flush_context, instances):
    """
    Refuse a flush that would leave any project template set off 100.

    Collects every (project_id, component_type) touched by pending inserts,
    updates or deletes, then sums the weights the set will hold after the
    flush: persisted rows (with their in-memory pending values), plus new
    rows, minus deleted rows.
    """
    from progress_kernel.models.project_template import ProjectMilestoneTemplate

    touched: set[tuple] = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        if isinstance(obj, ProjectMilestoneTemplate):
            touched.add((obj.project_id, obj.component_type))

    if not touched:
        return

    pending_new = [
        obj for obj in session.new if isinstance(obj, ProjectMilestoneTemplate)
    ]

    for project_id, component_type in touched:
        with session.no_autoflush:
            persisted = session.scalars(
                select(ProjectMilestoneTemplate).where(
                    ProjectMilestoneTemplate.project_id == project_id,
                    ProjectMilestoneTemplate.component_type == component_type,
                )
            ).all()

        members = [obj for obj in persisted if obj not in session.deleted]
        members.extend(
            obj
            for obj in pending_new
            if obj.project_id == project_id and obj.component_type == component_type
        )
        if not members:
            # Whole set removed together; nothing left to violate.
            continue

        weight_sum = sum(obj.weight for obj in members)
        if weight_sum != REQUIRED_WEIGHT_SUM:
            logger.error(
                "template_invariant_blocked",
                extra={
                    "project_id": str(project_id),
                    "component_type": component_type,
                    "weight_sum": weight_sum,
                },
            )
            raise TemplateInvariantError(
                project_id=str(project_id),
                component_type=component_type,
                weight_sum=weight_sum,
            )


def _check_template_change_immutability(mapper, connection, target):
    """Prevent any update to a TemplateChangeRecord."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "TemplateChangeRecord",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="TemplateChangeRecord",
        entity_id=str(target.id),
        reason="Template change records are immutable and cannot be modified",
    )


def _check_template_change_delete(mapper, connection, target):
    """Prevent deletion of a TemplateChangeRecord."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "TemplateChangeRecord",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="TemplateChangeRecord",
        entity_id=str(target.id),
        reason="Template change records cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the integrity listeners.

    Call after the models are importable and before any session flushes.
    Registering twice is a no-op.
    """
    from progress_kernel.models.template_change import TemplateChangeRecord

    if not event.contains(Session, "before_flush", _check_template_weight_sums):
        event.listen(Session, "before_flush", _check_template_weight_sums)

    if not event.contains(
        TemplateChangeRecord, "before_update", _check_template_change_immutability
    ):
        event.listen(
            TemplateChangeRecord, "before_update", _check_template_change_immutability
        )
    if not event.contains(
        TemplateChangeRecord, "before_delete", _check_template_change_delete
    ):
        event.listen(
            TemplateChangeRecord, "before_delete", _check_template_change_delete
        )


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the integrity listeners.

    WARNING: tests only, for writing states the listeners would refuse.
    """
    from progress_kernel.models.template_change import TemplateChangeRecord

    _safe_remove_listener(Session, "before_flush", _check_template_weight_sums)
    _safe_remove_listener(
        TemplateChangeRecord, "before_update", _check_template_change_immutability
    )
    _safe_remove_listener(
        TemplateChangeRecord, "before_delete", _check_template_change_delete
    )
