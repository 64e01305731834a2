"""
Module: progress_kernel.selectors.change_log_selector
Responsibility: Read access to the template change log, newest first.
Architecture position: Kernel > Selectors.  Read-only.  Writes to the log
    go only through ChangeLogService.
"""

from uuid import UUID

from sqlalchemy import func, select

from progress_kernel.domain.clock import to_utc
from progress_kernel.domain.templates import MilestoneWeight, TemplateChangeInfo
from progress_kernel.models.template_change import TemplateChangeRecord
from progress_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50


class ChangeLogSelector(BaseSelector):
    """Paged, newest-first view of TemplateChangeRecord rows."""

    def list_changes(
        self,
        project_id: UUID,
        component_type: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[TemplateChangeInfo]:
        """
        Changes for a project, optionally narrowed to one component type.

        Raises:
            ValueError: If limit is not positive or offset is negative.
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")

        stmt = select(TemplateChangeRecord).where(
            TemplateChangeRecord.project_id == project_id
        )
        if component_type is not None:
            stmt = stmt.where(TemplateChangeRecord.component_type == component_type)
        stmt = (
            stmt.order_by(
                TemplateChangeRecord.changed_at.desc(),
                TemplateChangeRecord.id.desc(),
            )
            .limit(limit)
            .offset(offset)
        )

        return [self._to_info(record) for record in self.session.scalars(stmt)]

    def count_changes(
        self,
        project_id: UUID,
        component_type: str | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(TemplateChangeRecord)
            .where(TemplateChangeRecord.project_id == project_id)
        )
        if component_type is not None:
            stmt = stmt.where(TemplateChangeRecord.component_type == component_type)
        return self.session.scalar(stmt) or 0

    def get_change(self, change_id: UUID) -> TemplateChangeInfo | None:
        record = self.session.get(TemplateChangeRecord, change_id)
        if record is None:
            return None
        return self._to_info(record)

    @staticmethod
    def _to_info(record: TemplateChangeRecord) -> TemplateChangeInfo:
        return TemplateChangeInfo(
            id=record.id,
            project_id=record.project_id,
            component_type=record.component_type,
            changed_by=record.changed_by_id,
            old_weights=tuple(MilestoneWeight.from_dict(w) for w in record.old_weights),
            new_weights=tuple(MilestoneWeight.from_dict(w) for w in record.new_weights),
            applied_to_existing=record.applied_to_existing,
            affected_component_count=record.affected_component_count,
            changed_at=to_utc(record.changed_at),
        )
