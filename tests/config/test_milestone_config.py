"""
Tests for the milestone definition configuration (progress_config).

Covers:
- The shipped default set loads and validates
- Every component type sums to 100
- Deterministic checksum
- Validation failures surface as ConfigValidationError
"""

from pathlib import Path

import pytest

from progress_config import (
    ConfigValidationError,
    MilestoneDefinitionSet,
    get_milestone_definitions,
)
from progress_config.loader import compute_checksum, load_definition_set
from progress_config.validator import validate_definition_set

EXPECTED_TYPES = {
    "spool",
    "field_weld",
    "support",
    "valve",
    "fitting",
    "flange",
    "instrument",
    "tubing",
    "hose",
    "misc_component",
    "threaded_pipe",
}


def _write_set(config_dir: Path, body: str, name: str = "custom") -> Path:
    set_dir = config_dir / name
    set_dir.mkdir(parents=True)
    (set_dir / "milestones.yaml").write_text(body)
    return config_dir


VALID_BODY = """\
config_id: custom
version: 3
component_types:
  - component_type: valve
    milestones:
      - {name: Receive, weight: 20, order: 1}
      - {name: Install, weight: 50, order: 2}
      - {name: Test, weight: 30, order: 3}
"""


class TestDefaultSet:
    def test_loads(self):
        definitions = get_milestone_definitions()
        assert isinstance(definitions, MilestoneDefinitionSet)
        assert definitions.config_id == "default"

    def test_all_component_types_present(self):
        definitions = get_milestone_definitions()
        assert set(definitions.component_type_names) == EXPECTED_TYPES

    def test_every_type_sums_to_100(self):
        for definition in get_milestone_definitions().component_types:
            assert definition.total_weight == 100, definition.component_type

    def test_orders_are_sequential(self):
        for definition in get_milestone_definitions().component_types:
            orders = [m.order for m in definition.milestones]
            assert orders == list(range(1, len(orders) + 1))

    def test_threaded_pipe_is_hybrid(self):
        threaded = get_milestone_definitions().get("threaded_pipe")
        assert threaded.workflow_type == "hybrid"
        partial = {m.name for m in threaded.milestones if m.is_partial}
        assert partial == {"Fabricate", "Install", "Erect", "Connect", "Support"}

    def test_weld_made_requires_welder(self):
        field_weld = get_milestone_definitions().get("field_weld")
        weld_made = next(m for m in field_weld.milestones if m.name == "Weld Made")
        assert weld_made.requires_welder is True
        assert weld_made.weight == 60

    def test_unknown_type_returns_none(self):
        assert get_milestone_definitions().get("pump") is None

    def test_checksum_is_stable(self):
        first = get_milestone_definitions()
        second = get_milestone_definitions()
        assert first.checksum == second.checksum
        assert len(first.checksum) == 64

    def test_config_trace_logged(self, captured_logs):
        get_milestone_definitions()
        traces = [r for r in captured_logs() if r["message"] == "PROGRESS_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["component_type_count"] == len(EXPECTED_TYPES)


class TestCustomSets:
    def test_custom_set_loads(self, tmp_path):
        config_dir = _write_set(tmp_path, VALID_BODY)
        definitions = get_milestone_definitions("custom", config_dir)
        assert definitions.version == 3
        valve = definitions.get("valve")
        assert [m.name for m in valve.milestones] == ["Receive", "Install", "Test"]
        assert valve.workflow_type == "discrete"
        assert all(not m.is_partial for m in valve.milestones)

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_milestone_definitions("absent", tmp_path)

    def test_bad_sum_rejected(self, tmp_path):
        body = VALID_BODY.replace("weight: 30", "weight: 29")
        config_dir = _write_set(tmp_path, body)
        with pytest.raises(ConfigValidationError) as exc_info:
            get_milestone_definitions("custom", config_dir)
        assert any("sum to 99" in e for e in exc_info.value.errors)

    def test_duplicate_milestone_rejected(self, tmp_path):
        body = VALID_BODY.replace("name: Test", "name: Install")
        config_dir = _write_set(tmp_path, body)
        with pytest.raises(ConfigValidationError) as exc_info:
            get_milestone_definitions("custom", config_dir)
        assert any("duplicate milestone name 'Install'" in e for e in exc_info.value.errors)

    def test_duplicate_component_type_rejected(self, tmp_path):
        body = VALID_BODY + VALID_BODY.split("component_types:\n", 1)[1]
        config_dir = _write_set(tmp_path, body)
        with pytest.raises(ConfigValidationError) as exc_info:
            get_milestone_definitions("custom", config_dir)
        assert any("duplicate component type 'valve'" in e for e in exc_info.value.errors)

    def test_errors_collected_not_first_only(self, tmp_path):
        body = VALID_BODY.replace("weight: 30", "weight: 29").replace(
            "order: 3", "order: 2"
        )
        definitions = load_definition_set(_write_set(tmp_path, body) / "custom" / "milestones.yaml")
        result = validate_definition_set(definitions)
        assert not result.is_valid
        assert len(result.errors) >= 2


class TestChecksum:
    def test_key_order_does_not_matter(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_content_changes_checksum(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
