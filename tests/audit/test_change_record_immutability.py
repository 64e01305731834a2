"""
Audit-trail integrity for template changes.

Verifies:
- TemplateChangeRecord rows cannot be updated or deleted through the ORM
- Deleting a project removes its records (cascade)
- Deleting an actor keeps the records, with changed_by set to NULL
- The flush guard refuses any project template set not summing to 100
"""

import pytest
from sqlalchemy import delete, func, select

from progress_kernel.exceptions import (
    ImmutabilityViolationError,
    TemplateInvariantError,
)
from progress_kernel.models import (
    Actor,
    Component,
    Project,
    ProjectMilestoneTemplate,
    TemplateChangeRecord,
)

VALVE_EDIT = [
    {"milestone_name": "Receive", "weight": 20},
    {"milestone_name": "Install", "weight": 50},
    {"milestone_name": "Punch", "weight": 10},
    {"milestone_name": "Test", "weight": 15},
    {"milestone_name": "Restore", "weight": 5},
]


@pytest.fixture
def change_record(session, seeded_definitions, project, test_actor, editing_service):
    result = editing_service.update_template(test_actor.id, project.id, "valve", VALVE_EDIT)
    return session.get(TemplateChangeRecord, result.audit_id)


def _valve_rows(session, project_id) -> dict[str, ProjectMilestoneTemplate]:
    rows = session.scalars(
        select(ProjectMilestoneTemplate).where(
            ProjectMilestoneTemplate.project_id == project_id,
            ProjectMilestoneTemplate.component_type == "valve",
        )
    ).all()
    return {row.milestone_name: row for row in rows}


class TestChangeRecordImmutability:
    def test_update_blocked(self, session, change_record):
        change_record.affected_component_count = 999
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "TemplateChangeRecord"

    def test_weights_update_blocked(self, session, change_record):
        change_record.new_weights = [{"milestone_name": "Receive", "weight": 100}]
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, change_record):
        session.delete(change_record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_logged(self, session, change_record, captured_logs):
        change_record.applied_to_existing = True
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["operation"] == "UPDATE"


class TestRetention:
    def test_project_delete_cascades(self, session, change_record, project, make_component):
        make_component(project.id, "valve", {"Receive": 100})
        project_id = project.id
        session.expunge_all()

        session.execute(delete(Project).where(Project.id == project_id))

        for model in (TemplateChangeRecord, ProjectMilestoneTemplate, Component):
            remaining = session.scalar(
                select(func.count()).select_from(model).where(model.project_id == project_id)
            )
            assert remaining == 0, model.__name__

    def test_actor_delete_keeps_record(self, session, change_record, test_actor):
        record_id = change_record.id
        actor_id = test_actor.id
        session.expunge_all()

        session.execute(delete(Actor).where(Actor.id == actor_id))

        changed_by = session.scalar(
            select(TemplateChangeRecord.changed_by_id).where(
                TemplateChangeRecord.id == record_id
            )
        )
        assert changed_by is None
        assert session.get(TemplateChangeRecord, record_id) is not None


class TestWeightSumGuard:
    @pytest.fixture
    def cloned(self, session, seeded_definitions, project, test_actor, editing_service):
        editing_service.clone_defaults_for_project(test_actor.id, project.id)
        return project

    def test_single_row_change_blocked(self, session, cloned):
        rows = _valve_rows(session, cloned.id)
        rows["Receive"].weight = 11
        with pytest.raises(TemplateInvariantError) as exc_info:
            session.flush()
        assert exc_info.value.weight_sum == 101
        assert exc_info.value.component_type == "valve"

    def test_balanced_change_allowed(self, session, cloned):
        rows = _valve_rows(session, cloned.id)
        rows["Receive"].weight = 15
        rows["Install"].weight = 55
        session.flush()

    def test_row_delete_blocked(self, session, cloned):
        rows = _valve_rows(session, cloned.id)
        session.delete(rows["Restore"])
        with pytest.raises(TemplateInvariantError) as exc_info:
            session.flush()
        assert exc_info.value.weight_sum == 95

    def test_whole_set_delete_allowed(self, session, cloned):
        for row in _valve_rows(session, cloned.id).values():
            session.delete(row)
        session.flush()
        assert _valve_rows(session, cloned.id) == {}

    def test_unbalanced_insert_blocked(self, session, cloned, deterministic_clock):
        session.add(
            ProjectMilestoneTemplate(
                project_id=cloned.id,
                component_type="valve",
                milestone_name="Paint",
                weight=5,
                milestone_order=6,
                last_updated=deterministic_clock.now_utc(),
            )
        )
        with pytest.raises(TemplateInvariantError):
            session.flush()
