"""
TemplateStoreService -- writes to the two template stores.

Responsibility:
    - Seeds the system milestone definitions from a validated definition
      set (``progress_config.get_milestone_definitions()``).
    - Clones the system definitions into a project, all component types at
      once, as the project's own editable template rows, or one component
      type at a time for a type seeded after the project was cloned.

Architecture position:
    Kernel > Services -- imperative shell.  Does NOT check authorization;
    TemplateEditingService wraps clone_defaults_for_project() with the
    permission check for user-facing calls.

Invariants enforced:
    - Clone is all-or-nothing: it runs in a SAVEPOINT and either every
      definition row is copied or none is.
    - A project with any template rows cannot be cloned into again; a
      type already present in a project cannot be materialized again.
    - Rows are copied verbatim: name, weight, order and flags.
    - Seeding refuses a component type whose weights do not sum to 100.

Failure modes:
    - TemplatesAlreadyExistError: project already has rows, including when
      a concurrent clone wins the race (unique constraint).
    - WeightSumInvalidError: a seeded component type does not sum to 100.
    - IntegrityError: the project does not exist.
"""

from collections.abc import Callable, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from progress_kernel.domain.clock import Clock, SystemClock
from progress_kernel.exceptions import (
    TemplateNotFoundError,
    TemplatesAlreadyExistError,
    WeightSumInvalidError,
)
from progress_kernel.logging_config import get_logger
from progress_kernel.models.milestone_definition import MilestoneDefinition
from progress_kernel.models.project_template import ProjectMilestoneTemplate
from progress_kernel.selectors.template_selector import TemplateSelector
from progress_kernel.services.base import BaseService

logger = get_logger("services.template_store")


class TemplateStoreService(BaseService):
    """Seeds system definitions and clones them into projects."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = TemplateSelector(session)

    def seed_milestone_definitions(self, definition_set) -> int:
        """
        Upsert system milestone definitions.

        ``definition_set`` is a ``progress_config.MilestoneDefinitionSet``
        (anything with ``component_types`` whose entries carry
        ``component_type`` and ``milestones`` of name/weight/order/
        is_partial/requires_welder).

        Running it again with the same set changes nothing and returns 0.
        Existing project templates are never touched.

        Returns:
            Number of definition rows inserted or changed.
        """
        for definition in definition_set.component_types:
            total = sum(m.weight for m in definition.milestones)
            if total != 100:
                raise WeightSumInvalidError(
                    component_type=definition.component_type,
                    computed_sum=total,
                )

        existing = {
            (row.component_type, row.milestone_name): row
            for row in self.session.scalars(select(MilestoneDefinition))
        }

        written = 0
        for definition in definition_set.component_types:
            for milestone in definition.milestones:
                key = (definition.component_type, milestone.name)
                row = existing.get(key)
                if row is None:
                    self.session.add(
                        MilestoneDefinition(
                            component_type=definition.component_type,
                            milestone_name=milestone.name,
                            weight=milestone.weight,
                            milestone_order=milestone.order,
                            is_partial=milestone.is_partial,
                            requires_welder=milestone.requires_welder,
                        )
                    )
                    written += 1
                elif (
                    row.weight != milestone.weight
                    or row.milestone_order != milestone.order
                    or row.is_partial != milestone.is_partial
                    or row.requires_welder != milestone.requires_welder
                ):
                    row.weight = milestone.weight
                    row.milestone_order = milestone.order
                    row.is_partial = milestone.is_partial
                    row.requires_welder = milestone.requires_welder
                    written += 1

        self.session.flush()
        logger.info(
            "milestone_definitions_seeded",
            extra={
                "component_type_count": len(definition_set.component_types),
                "rows_written": written,
            },
        )
        return written

    def clone_defaults_for_project(self, project_id: UUID) -> int:
        """
        Copy every system definition row into the project.

        Returns:
            Number of template rows created.

        Raises:
            TemplatesAlreadyExistError: If the project has any template rows.
        """
        existing_count = self._selector.count_project_templates(project_id)
        if existing_count > 0:
            logger.warning(
                "templates_clone_rejected",
                extra={
                    "project_id": str(project_id),
                    "existing_count": existing_count,
                },
            )
            raise TemplatesAlreadyExistError(
                project_id=str(project_id),
                existing_count=existing_count,
            )

        definitions = self.session.scalars(
            select(MilestoneDefinition).order_by(
                MilestoneDefinition.component_type,
                MilestoneDefinition.milestone_order,
            )
        ).all()

        rows = self._copy_definitions(
            project_id, definitions, self._selector.count_project_templates
        )
        logger.info(
            "templates_cloned",
            extra={
                "project_id": str(project_id),
                "row_count": len(rows),
                "component_type_count": len({r.component_type for r in rows}),
            },
        )
        return len(rows)

    def materialize_component_type(self, project_id: UUID, component_type: str) -> int:
        """
        Copy one component type's system definitions into a project that
        already has rows for other types.

        Covers types seeded after the project was cloned.

        Raises:
            TemplateNotFoundError: No definition exists for the type.
            TemplatesAlreadyExistError: The project already has rows for the
                type, including when a concurrent editor inserted them first.
        """
        existing_count = self._count_pair_rows(project_id, component_type)
        if existing_count > 0:
            raise TemplatesAlreadyExistError(
                project_id=str(project_id),
                existing_count=existing_count,
            )

        definitions = self.session.scalars(
            select(MilestoneDefinition)
            .where(MilestoneDefinition.component_type == component_type)
            .order_by(MilestoneDefinition.milestone_order)
        ).all()
        if not definitions:
            raise TemplateNotFoundError(component_type)

        rows = self._copy_definitions(
            project_id,
            definitions,
            lambda pid: self._count_pair_rows(pid, component_type),
        )
        logger.info(
            "component_type_materialized",
            extra={
                "project_id": str(project_id),
                "component_type": component_type,
                "row_count": len(rows),
            },
        )
        return len(rows)

    def _count_pair_rows(self, project_id: UUID, component_type: str) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(ProjectMilestoneTemplate)
            .where(
                ProjectMilestoneTemplate.project_id == project_id,
                ProjectMilestoneTemplate.component_type == component_type,
            )
        ) or 0

    def _copy_definitions(
        self,
        project_id: UUID,
        definitions: Sequence[MilestoneDefinition],
        count_existing: Callable[[UUID], int],
    ) -> list[ProjectMilestoneTemplate]:
        """
        Insert project rows for ``definitions`` in one SAVEPOINT.

        A unique-constraint failure is a lost race when ``count_existing``
        then finds rows; otherwise (e.g. unknown project) it propagates.
        """
        now = self._clock.now_utc()
        rows = [
            ProjectMilestoneTemplate(
                project_id=project_id,
                component_type=d.component_type,
                milestone_name=d.milestone_name,
                weight=d.weight,
                milestone_order=d.milestone_order,
                is_partial=d.is_partial,
                requires_welder=d.requires_welder,
                last_updated=now,
            )
            for d in definitions
        ]

        try:
            with self.session.begin_nested():
                self.session.add_all(rows)
                self.session.flush()
        except IntegrityError:
            raced_count = count_existing(project_id)
            if raced_count == 0:
                raise
            logger.warning(
                "templates_clone_conflict",
                extra={
                    "project_id": str(project_id),
                    "existing_count": raced_count,
                },
            )
            raise TemplatesAlreadyExistError(
                project_id=str(project_id),
                existing_count=raced_count,
            ) from None
        return rows
