"""
Tests for ChangeLogSelector: newest-first paging over the change log.
"""

import pytest

from progress_kernel.domain.templates import MilestoneWeight
from progress_kernel.selectors import ChangeLogSelector
from progress_kernel.services import ChangeLogService


@pytest.fixture
def record_changes(session, project, test_actor, deterministic_clock):
    """Write ``count`` change records one minute apart; return their ids in order."""

    def _record(count: int, component_type: str = "valve") -> list:
        service = ChangeLogService(session, deterministic_clock)
        ids = []
        for i in range(count):
            deterministic_clock.advance(60)
            ids.append(
                service.record_change(
                    project_id=project.id,
                    component_type=component_type,
                    changed_by=test_actor.id,
                    old_weights=[MilestoneWeight("A", 50), MilestoneWeight("B", 50)],
                    new_weights=[MilestoneWeight("A", 50 + i), MilestoneWeight("B", 50 - i)],
                    applied_to_existing=bool(i % 2),
                    affected_component_count=i if i % 2 else 0,
                )
            )
        return ids

    return _record


class TestListChanges:
    def test_newest_first(self, session, project, record_changes):
        ids = record_changes(3)
        changes = ChangeLogSelector(session).list_changes(project.id)
        assert [c.id for c in changes] == list(reversed(ids))

    def test_paging(self, session, project, record_changes):
        ids = record_changes(5)
        selector = ChangeLogSelector(session)
        first_page = selector.list_changes(project.id, limit=2)
        second_page = selector.list_changes(project.id, limit=2, offset=2)
        assert [c.id for c in first_page] == [ids[4], ids[3]]
        assert [c.id for c in second_page] == [ids[2], ids[1]]

    def test_filter_by_component_type(self, session, project, record_changes):
        record_changes(2, "valve")
        record_changes(1, "spool")
        selector = ChangeLogSelector(session)
        assert len(selector.list_changes(project.id, "spool")) == 1
        assert selector.count_changes(project.id) == 3
        assert selector.count_changes(project.id, "valve") == 2

    def test_info_fields(self, session, project, test_actor, record_changes):
        ids = record_changes(2)
        info = ChangeLogSelector(session).get_change(ids[1])
        assert info.project_id == project.id
        assert info.changed_by == test_actor.id
        assert info.new_weights == (MilestoneWeight("A", 51), MilestoneWeight("B", 49))
        assert info.applied_to_existing is True
        assert info.affected_component_count == 1
        assert info.changed_at.tzinfo is not None

    def test_empty(self, session, project):
        assert ChangeLogSelector(session).list_changes(project.id) == []

    @pytest.mark.parametrize("limit, offset", [(0, 0), (-1, 0), (10, -1)])
    def test_bad_paging(self, session, project, limit, offset):
        with pytest.raises(ValueError):
            ChangeLogSelector(session).list_changes(project.id, limit=limit, offset=offset)


def test_get_missing_change(session):
    from uuid import uuid4

    assert ChangeLogSelector(session).get_change(uuid4()) is None
