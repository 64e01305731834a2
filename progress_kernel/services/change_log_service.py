"""
ChangeLogService -- append-only writer for TemplateChangeRecord.

Responsibility:
    The only code path that creates template change records.  Called by
    TemplateEditingService inside the same transaction as the re-weighted
    template rows, so the record and the change commit or roll back
    together.

Architecture position:
    Kernel > Services -- imperative shell.  Reads go through
    ChangeLogSelector.

Invariants enforced:
    - Append-only: this service only INSERTs.  Updates and deletes are
      refused by the listeners in db/immutability.py.
    - Flush-only: a failed insert surfaces inside the caller's transaction.
"""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from progress_kernel.domain.clock import Clock, SystemClock
from progress_kernel.domain.templates import MilestoneWeight
from progress_kernel.logging_config import get_logger
from progress_kernel.models.template_change import TemplateChangeRecord
from progress_kernel.services.base import BaseService

logger = get_logger("services.change_log")


class ChangeLogService(BaseService):
    """Appends TemplateChangeRecord rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record_change(
        self,
        project_id: UUID,
        component_type: str,
        changed_by: UUID | None,
        old_weights: Sequence[MilestoneWeight],
        new_weights: Sequence[MilestoneWeight],
        applied_to_existing: bool,
        affected_component_count: int,
        changed_at: datetime | None = None,
    ) -> UUID:
        """
        Insert one change record and return its id.

        ``changed_at`` defaults to the clock; the editing service passes the
        stamp it wrote to the template rows so records of one pair are
        strictly ordered.
        """
        record = TemplateChangeRecord(
            project_id=project_id,
            component_type=component_type,
            changed_by_id=changed_by,
            old_weights=[w.to_dict() for w in old_weights],
            new_weights=[w.to_dict() for w in new_weights],
            applied_to_existing=applied_to_existing,
            affected_component_count=affected_component_count,
            changed_at=changed_at or self._clock.now_utc(),
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "template_change_recorded",
            extra={
                "change_id": str(record.id),
                "project_id": str(project_id),
                "component_type": component_type,
                "applied_to_existing": applied_to_existing,
                "affected_component_count": affected_component_count,
            },
        )
        return record.id
