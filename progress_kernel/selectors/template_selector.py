"""
Module: progress_kernel.selectors.template_selector
Responsibility: Resolves the template in effect for a (project, component
    type) and summarizes a project's template set.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Resolution is an explicit fallback: a project's own rows win; when it
      has none for the type, the system definitions apply.  The fallback is
      total: every type with system definitions resolves for every project.
    - Milestones are always returned in milestone_order.

Failure modes:
    - TemplateNotFoundError when neither the project nor the system defines
      the component type (a configuration defect).
"""

from uuid import UUID

from sqlalchemy import func, select

from progress_kernel.domain.clock import to_utc
from progress_kernel.domain.templates import (
    EffectiveTemplate,
    TemplateMilestone,
    TemplateSource,
    TemplateSummary,
    TemplateSummaryRow,
)
from progress_kernel.exceptions import TemplateNotFoundError
from progress_kernel.logging_config import get_logger
from progress_kernel.models.milestone_definition import MilestoneDefinition
from progress_kernel.models.project_template import ProjectMilestoneTemplate
from progress_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.template")


class TemplateSelector(BaseSelector):
    """Read access to project templates and system milestone definitions."""

    def get_effective_template(
        self,
        project_id: UUID,
        component_type: str,
    ) -> EffectiveTemplate:
        """
        The ordered milestone list in force for the pair.

        ``last_updated`` is the newest row timestamp for a PROJECT source,
        None for a SYSTEM source.
        """
        project_rows = self.session.scalars(
            select(ProjectMilestoneTemplate)
            .where(
                ProjectMilestoneTemplate.project_id == project_id,
                ProjectMilestoneTemplate.component_type == component_type,
            )
            .order_by(ProjectMilestoneTemplate.milestone_order)
        ).all()

        if project_rows:
            return EffectiveTemplate(
                component_type=component_type,
                source=TemplateSource.PROJECT,
                milestones=tuple(
                    TemplateMilestone(
                        milestone_name=row.milestone_name,
                        weight=row.weight,
                        milestone_order=row.milestone_order,
                        is_partial=row.is_partial,
                        requires_welder=row.requires_welder,
                    )
                    for row in project_rows
                ),
                last_updated=max(to_utc(row.last_updated) for row in project_rows),
            )

        return self.get_system_template(component_type, project_id=project_id)

    def get_system_template(
        self,
        component_type: str,
        project_id: UUID | None = None,
    ) -> EffectiveTemplate:
        definitions = self.session.scalars(
            select(MilestoneDefinition)
            .where(MilestoneDefinition.component_type == component_type)
            .order_by(MilestoneDefinition.milestone_order)
        ).all()

        if not definitions:
            logger.warning(
                "template_not_found",
                extra={
                    "component_type": component_type,
                    "project_id": str(project_id) if project_id else None,
                },
            )
            raise TemplateNotFoundError(
                component_type=component_type,
                project_id=str(project_id) if project_id else None,
            )

        return EffectiveTemplate(
            component_type=component_type,
            source=TemplateSource.SYSTEM,
            milestones=tuple(
                TemplateMilestone(
                    milestone_name=d.milestone_name,
                    weight=d.weight,
                    milestone_order=d.milestone_order,
                    is_partial=d.is_partial,
                    requires_welder=d.requires_welder,
                )
                for d in definitions
            ),
        )

    def count_project_templates(self, project_id: UUID) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(ProjectMilestoneTemplate)
            .where(ProjectMilestoneTemplate.project_id == project_id)
        ) or 0

    def has_project_templates(self, project_id: UUID) -> bool:
        return self.count_project_templates(project_id) > 0

    def list_system_component_types(self) -> list[str]:
        return list(
            self.session.scalars(
                select(MilestoneDefinition.component_type)
                .distinct()
                .order_by(MilestoneDefinition.component_type)
            ).all()
        )

    def get_template_summary(self, project_id: UUID) -> TemplateSummary:
        """
        Per component type: milestone count, total weight, last update.

        Rows are ordered by component type.  ``has_templates`` is False and
        ``rows`` empty for a project still on the system defaults.
        """
        result = self.session.execute(
            select(
                ProjectMilestoneTemplate.component_type,
                func.count(ProjectMilestoneTemplate.id),
                func.sum(ProjectMilestoneTemplate.weight),
                func.max(ProjectMilestoneTemplate.last_updated),
            )
            .where(ProjectMilestoneTemplate.project_id == project_id)
            .group_by(ProjectMilestoneTemplate.component_type)
            .order_by(ProjectMilestoneTemplate.component_type)
        ).all()

        rows = tuple(
            TemplateSummaryRow(
                component_type=component_type,
                milestone_count=int(milestone_count),
                total_weight=int(total_weight),
                last_updated=to_utc(last_updated),
            )
            for component_type, milestone_count, total_weight, last_updated in result
        )
        return TemplateSummary(
            project_id=project_id,
            has_templates=bool(rows),
            rows=rows,
        )
