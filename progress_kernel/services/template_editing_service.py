"""
TemplateEditingService -- the orchestrating entry point for template edits.

Responsibility:
    Validates a full replacement weight set for one component type in one
    project, re-weights the project's template rows, appends the change
    record and, on request, recalculates existing components.  Also
    exposes the authorized clone of system defaults into a project.

Architecture position:
    Kernel > Services -- imperative shell.  Composes TemplateSelector,
    TemplateStoreService, RecalculationService and ChangeLogService within
    the caller's transaction.

Order of checks (the first failing check decides the error):
    0. authorization                         PermissionDeniedError
    1. unknown milestone name                InvalidMilestoneError
    2. omitted / duplicated milestone        IncompleteWeightSetError
    3. weight off 0..100 / sum != 100        InvalidWeightError / WeightSumInvalidError
    4. rows newer than expected_last_updated ConcurrentModificationError

    Checks 0-3 run before any row is read for update or written.  Check 4
    runs against rows held with SELECT ... FOR UPDATE, so two concurrent
    edits of the same pair serialize and the later one sees the earlier
    one's timestamp.

Invariants enforced:
    - Weights of the pair sum to 100 after every successful call (also
      guarded at flush time by db/immutability.py).
    - Exactly one TemplateChangeRecord per successful call, whose
      old_weights is the set before the call and new_weights the input,
      both in milestone order, stamped with the rows' new last_updated.
    - Re-weighting, change record and optional recalculation share the
      caller's transaction: all commit or none do.
    - A project still on the system defaults is materialized by cloning
      on its first edit.

Failure modes:
    - The errors above, plus TemplateNotFoundError for an undefined type
      and PartialFailureError propagated from recalculation.  On any error
      the caller must roll back; nothing this service wrote is meant to
      survive a failed call.

Audit relevance:
    ``template_updated`` / ``template_update_rejected`` log lines carry the
    actor, project, component type and outcome.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from progress_kernel.domain.clock import Clock, SystemClock, to_utc
from progress_kernel.domain.templates import (
    MilestoneWeight,
    TemplateSource,
    UpdateTemplateResult,
)
from progress_kernel.domain.weight_validation import (
    coerce_weight_set,
    validate_weight_set,
)
from progress_kernel.exceptions import (
    ConcurrentModificationError,
    PermissionDeniedError,
    TemplatesAlreadyExistError,
    WeightValidationError,
)
from progress_kernel.logging_config import LogContext, get_logger
from progress_kernel.models.project_template import ProjectMilestoneTemplate
from progress_kernel.selectors.template_selector import TemplateSelector
from progress_kernel.services.authorization import TemplateEditAuthority
from progress_kernel.services.base import BaseService
from progress_kernel.services.change_log_service import ChangeLogService
from progress_kernel.services.recalculation_service import RecalculationService
from progress_kernel.services.template_store_service import TemplateStoreService

logger = get_logger("services.template_editing")

# Smallest step the stored timestamps can represent.
_TIMESTAMP_RESOLUTION = timedelta(microseconds=1)


class TemplateEditingService(BaseService):
    """
    Validated, audited, optimistic-concurrency template edits.

    Args:
        session: Caller-owned session; this service only flushes.
        authority: Decides whether an actor may edit a project's templates.
        clock: Source of last_updated and changed_at timestamps.
        recalculation: Override for the batch runner (chunk size, calculator).
    """

    def __init__(
        self,
        session: Session,
        authority: TemplateEditAuthority,
        clock: Clock | None = None,
        recalculation: RecalculationService | None = None,
    ):
        super().__init__(session)
        self._authority = authority
        self._clock = clock or SystemClock()
        self._selector = TemplateSelector(session)
        self._store = TemplateStoreService(session, self._clock)
        self._change_log = ChangeLogService(session, self._clock)
        self._recalculation = recalculation or RecalculationService(session)

    def clone_defaults_for_project(self, actor_id: UUID, project_id: UUID) -> int:
        """Authorized clone of every system definition into the project."""
        with LogContext.bind(actor_id=str(actor_id), project_id=str(project_id)):
            self._require_permission(actor_id, project_id, "clone templates")
            return self._store.clone_defaults_for_project(project_id)

    def update_template(
        self,
        actor_id: UUID,
        project_id: UUID,
        component_type: str,
        new_weights: Iterable[MilestoneWeight | Mapping[str, Any]],
        apply_to_existing: bool = False,
        expected_last_updated: datetime | None = None,
    ) -> UpdateTemplateResult:
        """
        Replace the weights of one component type in one project.

        Args:
            new_weights: Every milestone of the template exactly once, as
                MilestoneWeight values or ``{"milestone_name", "weight"}``
                dicts.
            apply_to_existing: Recalculate existing components afterwards.
            expected_last_updated: The ``last_updated`` of the template the
                caller edited (EffectiveTemplate.last_updated).  None means
                the caller edited the system defaults.

        Returns:
            UpdateTemplateResult with the recalculated component count (0
            unless apply_to_existing) and the new change record's id.
        """
        with LogContext.bind(
            actor_id=str(actor_id),
            project_id=str(project_id),
            component_type=component_type,
        ):
            self._require_permission(actor_id, project_id, "edit templates")

            weights = coerce_weight_set(new_weights)
            template = self._selector.get_effective_template(project_id, component_type)
            try:
                validate_weight_set(component_type, template.milestone_names, weights)
            except WeightValidationError as exc:
                logger.warning(
                    "template_update_rejected",
                    extra={"reason": exc.code, "detail": str(exc)},
                )
                raise

            cloned = False
            if template.source is TemplateSource.SYSTEM:
                cloned = self._materialize_project_templates(
                    project_id, component_type, expected_last_updated
                )

            rows = self._lock_rows(project_id, component_type)
            newest = max(to_utc(row.last_updated) for row in rows)
            if not cloned:
                self._check_not_stale(
                    project_id, component_type, expected_last_updated, newest
                )

            old_weights = [MilestoneWeight(r.milestone_name, r.weight) for r in rows]
            by_name = {w.milestone_name: w.weight for w in weights}
            new_weights = [
                MilestoneWeight(r.milestone_name, by_name[r.milestone_name]) for r in rows
            ]
            # Strictly after every earlier stamp, even with a coarse clock.
            stamp = max(self._clock.now_utc(), newest + _TIMESTAMP_RESOLUTION)
            for row in rows:
                row.weight = by_name[row.milestone_name]
                row.last_updated = stamp
            self.session.flush()

            affected_count = 0
            if apply_to_existing:
                affected_count = self._recalculation.recalculate(
                    project_id, component_type
                )

            audit_id = self._change_log.record_change(
                project_id=project_id,
                component_type=component_type,
                changed_by=actor_id,
                old_weights=old_weights,
                new_weights=new_weights,
                changed_at=stamp,
                applied_to_existing=apply_to_existing,
                affected_component_count=affected_count,
            )

            logger.info(
                "template_updated",
                extra={
                    "audit_id": str(audit_id),
                    "applied_to_existing": apply_to_existing,
                    "affected_count": affected_count,
                    "materialized": cloned,
                },
            )
            return UpdateTemplateResult(
                affected_count=affected_count,
                audit_id=audit_id,
            )

    def _require_permission(
        self, actor_id: UUID, project_id: UUID, operation: str
    ) -> None:
        if not self._authority.can_edit_templates(actor_id, project_id):
            logger.warning(
                "template_update_rejected",
                extra={"reason": PermissionDeniedError.code, "operation": operation},
            )
            raise PermissionDeniedError(
                actor_id=str(actor_id),
                project_id=str(project_id),
                operation=operation,
            )

    def _materialize_project_templates(
        self,
        project_id: UUID,
        component_type: str,
        expected_last_updated: datetime | None,
    ) -> bool:
        """
        First customization of a pair still on the system defaults.

        A project with no rows gets every component type cloned; a project
        that already has rows (the type was seeded after its clone) gets
        only this type.  Losing either race to another editor means the
        caller's view of the template is stale.
        """
        try:
            if self._selector.has_project_templates(project_id):
                self._store.materialize_component_type(project_id, component_type)
            else:
                self._store.clone_defaults_for_project(project_id)
        except TemplatesAlreadyExistError as exc:
            actual = self._selector.get_effective_template(project_id, component_type)
            logger.warning(
                "template_update_rejected",
                extra={"reason": ConcurrentModificationError.code},
            )
            raise ConcurrentModificationError(
                project_id=str(project_id),
                component_type=component_type,
                expected_last_updated=str(expected_last_updated),
                actual_last_updated=str(actual.last_updated),
            ) from exc
        return True

    def _lock_rows(
        self, project_id: UUID, component_type: str
    ) -> list[ProjectMilestoneTemplate]:
        return list(
            self.session.scalars(
                select(ProjectMilestoneTemplate)
                .where(
                    ProjectMilestoneTemplate.project_id == project_id,
                    ProjectMilestoneTemplate.component_type == component_type,
                )
                .order_by(ProjectMilestoneTemplate.milestone_order)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        )

    def _check_not_stale(
        self,
        project_id: UUID,
        component_type: str,
        expected_last_updated: datetime | None,
        newest: datetime,
    ) -> None:
        if expected_last_updated is not None and newest <= to_utc(
            expected_last_updated
        ):
            return

        logger.warning(
            "template_update_rejected",
            extra={
                "reason": ConcurrentModificationError.code,
                "expected_last_updated": str(expected_last_updated),
                "actual_last_updated": newest.isoformat(),
            },
        )
        raise ConcurrentModificationError(
            project_id=str(project_id),
            component_type=component_type,
            expected_last_updated=str(expected_last_updated),
            actual_last_updated=newest.isoformat(),
        )
