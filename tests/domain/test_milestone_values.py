"""
Tests for milestone value coercion and legacy normalization.
"""

from decimal import Decimal

import pytest

from progress_kernel.domain.milestone_values import (
    coerce_milestone_value,
    normalize_legacy_milestones,
)
from progress_kernel.exceptions import InvalidMilestoneValueError


class TestCoerceMilestoneValue:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, Decimal("0")),
            (True, Decimal("100")),
            (False, Decimal("0")),
            (0, Decimal("0")),
            (100, Decimal("100")),
            (Decimal("100.00"), Decimal("100.00")),
            (100.0, Decimal("100.0")),
        ],
    )
    def test_discrete_accepts(self, raw, expected):
        assert coerce_milestone_value("Install", raw, is_partial=False) == expected

    @pytest.mark.parametrize("raw", [1, 50, Decimal("99.99"), 0.5])
    def test_discrete_rejects_midpoints(self, raw):
        with pytest.raises(InvalidMilestoneValueError) as exc_info:
            coerce_milestone_value("Install", raw, is_partial=False)
        assert "0 or 100" in exc_info.value.reason

    @pytest.mark.parametrize("raw", [1, 33, Decimal("66.67"), 12.5])
    def test_partial_accepts_range(self, raw):
        assert coerce_milestone_value("Fabricate", raw, is_partial=True) == Decimal(str(raw))

    @pytest.mark.parametrize("raw", [-1, 100.5, Decimal("-0.01"), 1000])
    def test_out_of_range(self, raw):
        with pytest.raises(InvalidMilestoneValueError) as exc_info:
            coerce_milestone_value("Fabricate", raw, is_partial=True)
        assert exc_info.value.milestone_name == "Fabricate"
        assert exc_info.value.value == raw

    @pytest.mark.parametrize("raw", ["40", b"40", [40], object()])
    def test_not_a_number(self, raw):
        with pytest.raises(InvalidMilestoneValueError) as exc_info:
            coerce_milestone_value("Fabricate", raw, is_partial=True)
        assert exc_info.value.reason == "not a number"

    @pytest.mark.parametrize("raw", [float("inf"), float("nan"), Decimal("NaN")])
    def test_non_finite(self, raw):
        with pytest.raises(InvalidMilestoneValueError):
            coerce_milestone_value("Fabricate", raw, is_partial=True)


class TestNormalizeLegacyMilestones:
    def test_booleans_become_endpoints(self):
        result = normalize_legacy_milestones(
            {"Receive": True, "Install": False, "Fabricate": True},
            partial_names={"Fabricate"},
        )
        assert result == {"Receive": 100, "Install": 0, "Fabricate": 100}

    def test_discrete_one_becomes_hundred(self):
        result = normalize_legacy_milestones({"Receive": 1}, partial_names=set())
        assert result == {"Receive": 100}

    def test_partial_one_untouched(self):
        """On a partial milestone 1 means one percent."""
        result = normalize_legacy_milestones({"Fabricate": 1}, partial_names={"Fabricate"})
        assert result == {"Fabricate": 1}

    def test_other_values_pass_through(self):
        source = {"Receive": 100, "Install": 0, "Fabricate": 45.5, "Odd": "x"}
        result = normalize_legacy_milestones(source, partial_names={"Fabricate"})
        assert result == source

    def test_idempotent(self):
        once = normalize_legacy_milestones(
            {"Receive": True, "Install": 1}, partial_names=frozenset()
        )
        assert normalize_legacy_milestones(once, partial_names=frozenset()) == once

    def test_input_not_mutated(self):
        source = {"Receive": True}
        normalize_legacy_milestones(source, partial_names=set())
        assert source == {"Receive": True}
