"""
ComponentProgressService -- single-component milestone writes.

Responsibility:
    Records one milestone value on one component and, in the same flush,
    recomputes its percent_complete with the Earned-Value Calculator so the
    stored percentage never drifts from current_milestones between batch
    recalculations.

Architecture position:
    Kernel > Services -- imperative shell.  The entry point workflow code
    uses for every individual milestone update.

Invariants enforced:
    - The milestone name must belong to the component's effective template.
    - Values lie in 0..100; discrete milestones accept only 0 or 100.
      Legacy booleans are stored as 0/100.
    - percent_complete is recomputed from the whole map after every write.

Failure modes:
    - ComponentNotFoundError: no such component.
    - InvalidMilestoneError: name not in the template.
    - InvalidMilestoneValueError: value off the scale.
    - TemplateNotFoundError: no template for the component type.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from progress_engines.earned_value import compute_percent_complete
from progress_kernel.domain.milestone_values import (
    coerce_milestone_value,
    normalize_legacy_milestones,
)
from progress_kernel.exceptions import ComponentNotFoundError, InvalidMilestoneError
from progress_kernel.logging_config import get_logger
from progress_kernel.models.component import Component
from progress_kernel.selectors.template_selector import TemplateSelector
from progress_kernel.services.base import BaseService

logger = get_logger("services.component_progress")


def _to_json_number(value: Decimal) -> int | float:
    # JSON columns cannot hold Decimal; whole values stay ints.
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class ComponentProgressService(BaseService):
    """Milestone writes with synchronous percent-complete upkeep."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = TemplateSelector(session)

    def record_milestone(
        self,
        component_id: UUID,
        milestone_name: str,
        value: Any,
    ) -> Decimal:
        """
        Set one milestone value and refresh percent_complete.

        Returns:
            The component's new percent_complete.
        """
        component = self.session.get(Component, component_id)
        if component is None:
            raise ComponentNotFoundError(str(component_id))

        template = self._selector.get_effective_template(
            component.project_id, component.component_type
        )
        milestone = template.get(milestone_name)
        if milestone is None:
            raise InvalidMilestoneError(
                milestone_name=milestone_name,
                component_type=component.component_type,
            )

        checked = coerce_milestone_value(milestone_name, value, milestone.is_partial)

        milestones = dict(component.current_milestones or {})
        milestones[milestone_name] = _to_json_number(checked)
        percent = compute_percent_complete(milestones=milestones, template=template)

        # Reassign: in-place mutation of a JSON column is not tracked.
        component.current_milestones = milestones
        component.percent_complete = percent
        self.session.flush()

        logger.info(
            "milestone_recorded",
            extra={
                "component_id": str(component_id),
                "milestone_name": milestone_name,
                "value": str(checked),
                "percent_complete": str(percent),
            },
        )
        return percent

    def normalize_component(self, component_id: UUID) -> Decimal:
        """
        Rewrite a component's legacy milestone values on the 0..100 scale.

        Booleans become 0/100 and discrete 1 becomes 100; percent_complete
        is then recomputed.
        """
        component = self.session.get(Component, component_id)
        if component is None:
            raise ComponentNotFoundError(str(component_id))

        template = self._selector.get_effective_template(
            component.project_id, component.component_type
        )
        partial_names = frozenset(
            m.milestone_name for m in template.milestones if m.is_partial
        )
        milestones = normalize_legacy_milestones(
            component.current_milestones or {}, partial_names
        )
        percent = compute_percent_complete(milestones=milestones, template=template)

        component.current_milestones = milestones
        component.percent_complete = percent
        self.session.flush()

        logger.info(
            "milestones_normalized",
            extra={
                "component_id": str(component_id),
                "percent_complete": str(percent),
            },
        )
        return percent
