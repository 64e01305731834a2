"""
Milestone definition loader (``progress_config.loader``).

Responsibility
--------------
Loads a ``milestones.yaml`` file and parses it into the frozen dataclasses
of ``progress_config.schema``.  Build/test tooling: runtime callers go
through ``progress_config.get_milestone_definitions()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from progress_config.schema import (
    ComponentTypeDef,
    MilestoneDef,
    MilestoneDefinitionSet,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_milestone(data: dict[str, Any]) -> MilestoneDef:
    return MilestoneDef(
        name=data["name"],
        weight=data["weight"],
        order=data["order"],
        is_partial=bool(data.get("is_partial", False)),
        requires_welder=bool(data.get("requires_welder", False)),
    )


def parse_component_type(data: dict[str, Any]) -> ComponentTypeDef:
    return ComponentTypeDef(
        component_type=data["component_type"],
        workflow_type=data.get("workflow_type", "discrete"),
        milestones=tuple(parse_milestone(m) for m in data.get("milestones", [])),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_definition_set(path: Path) -> MilestoneDefinitionSet:
    """Parse one ``milestones.yaml`` into a MilestoneDefinitionSet (unvalidated)."""
    data = load_yaml_file(path)
    return MilestoneDefinitionSet(
        config_id=data["config_id"],
        version=data.get("version", 1),
        component_types=tuple(
            parse_component_type(entry) for entry in data.get("component_types", [])
        ),
        checksum=compute_checksum(data),
    )
