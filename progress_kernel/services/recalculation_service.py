"""
RecalculationService -- batch re-derivation of percent_complete.

Responsibility:
    For every component of a (project, component type), recompute
    percent_complete from current_milestones under the effective template
    and write back the values that changed.

Architecture position:
    Kernel > Services -- imperative shell around the pure
    EarnedValueCalculator.  Invoked by TemplateEditingService when an edit
    is applied to existing components, and by operators via the CLI.

Invariants enforced:
    - The effective template is read once per run.
    - Only values that differ from the stored one are written.
    - Writes are grouped in chunks; each chunk runs in its own SAVEPOINT so
      a failure leaves earlier chunks in place and undoes only the failing
      one.

Failure modes:
    - PartialFailureError(written_count): a component's value could not be
      computed or a chunk write failed.  The run stops; earlier chunks stay
      written inside the caller's transaction and the caller decides
      whether to commit, roll back or re-run.
    - TemplateNotFoundError: no template for the component type.

Performance:
    Components are loaded as plain column tuples (no ORM identity
    tracking) and written with ORM bulk UPDATE by primary key.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from progress_engines.earned_value import EarnedValueCalculator
from progress_kernel.exceptions import PartialFailureError, ProgressKernelError
from progress_kernel.logging_config import get_logger
from progress_kernel.models.component import Component
from progress_kernel.selectors.template_selector import TemplateSelector
from progress_kernel.services.base import BaseService

logger = get_logger("services.recalculation")

DEFAULT_CHUNK_SIZE = 200
READ_BATCH_SIZE = 1000


class RecalculationService(BaseService):
    """Recomputes stored percent_complete for a (project, component type)."""

    def __init__(
        self,
        session: Session,
        calculator: EarnedValueCalculator | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        super().__init__(session)
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._calculator = calculator or EarnedValueCalculator()
        self._chunk_size = chunk_size
        self._selector = TemplateSelector(session)

    def recalculate(self, project_id: UUID, component_type: str) -> int:
        """
        Recompute every matching component.

        Returns:
            Number of components whose stored percent_complete changed.

        Raises:
            PartialFailureError: carrying the count written before the failure.
        """
        template = self._selector.get_effective_template(project_id, component_type)

        # Pending ORM changes to components must be visible to the read.
        self.session.flush()

        result = self.session.execute(
            select(
                Component.id,
                Component.current_milestones,
                Component.percent_complete,
            )
            .where(
                Component.project_id == project_id,
                Component.component_type == component_type,
            )
            .order_by(Component.id)
            .execution_options(yield_per=READ_BATCH_SIZE)
        )
        components = [tuple(row) for row in result]

        written = 0
        examined = 0
        for start in range(0, len(components), self._chunk_size):
            chunk = components[start : start + self._chunk_size]
            changes: list[dict] = []
            failed_id: UUID | None = None
            try:
                for component_id, milestones, stored in chunk:
                    failed_id = component_id
                    value = self._calculator.compute(milestones, template)
                    if stored is None or Decimal(stored) != value:
                        changes.append({"id": component_id, "percent_complete": value})
                failed_id = None

                if changes:
                    with self.session.begin_nested():
                        self.session.execute(update(Component), changes)
            except (ProgressKernelError, SQLAlchemyError) as exc:
                logger.error(
                    "recalculation_failed",
                    extra={
                        "project_id": str(project_id),
                        "component_type": component_type,
                        "written_count": written,
                        "failed_component_id": str(failed_id) if failed_id else None,
                        "error": str(exc),
                    },
                )
                self._expire_components(project_id, component_type)
                raise PartialFailureError(
                    project_id=str(project_id),
                    component_type=component_type,
                    written_count=written,
                    failed_component_id=str(failed_id) if failed_id else None,
                    reason=str(exc),
                ) from exc

            written += len(changes)
            examined += len(chunk)

        self._expire_components(project_id, component_type)

        logger.info(
            "recalculation_completed",
            extra={
                "project_id": str(project_id),
                "component_type": component_type,
                "template_source": template.source.value,
                "examined_count": examined,
                "written_count": written,
            },
        )
        return written

    def _expire_components(self, project_id: UUID, component_type: str) -> None:
        # Bulk UPDATE by primary key bypasses loaded objects.
        for obj in list(self.session.identity_map.values()):
            if (
                isinstance(obj, Component)
                and obj.project_id == project_id
                and obj.component_type == component_type
            ):
                self.session.expire(obj, ["percent_complete"])
