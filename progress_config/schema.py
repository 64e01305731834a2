"""
Milestone definition schema.

The human-authored source artifact for system default milestones.  YAML
files under ``sets/<set>/milestones.yaml`` are parsed into these types by
the loader, checked by the validator, and handed to
TemplateStoreService.seed_milestone_definitions().
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MilestoneDef:
    """One milestone of a component type's default set."""

    name: str
    weight: int
    order: int
    is_partial: bool = False
    requires_welder: bool = False


@dataclass(frozen=True)
class ComponentTypeDef:
    """Default milestone set for one component type."""

    component_type: str
    milestones: tuple[MilestoneDef, ...]
    workflow_type: str = "discrete"  # discrete | hybrid

    @property
    def total_weight(self) -> int:
        return sum(m.weight for m in self.milestones)


@dataclass(frozen=True)
class MilestoneDefinitionSet:
    """
    A complete, validated set of default milestone definitions.

    ``checksum`` is the SHA-256 of the canonical JSON form of the parsed
    data; identical YAML always yields the same value.
    """

    config_id: str
    version: int
    component_types: tuple[ComponentTypeDef, ...]
    checksum: str = ""

    def get(self, component_type: str) -> ComponentTypeDef | None:
        for definition in self.component_types:
            if definition.component_type == component_type:
                return definition
        return None

    @property
    def component_type_names(self) -> tuple[str, ...]:
        return tuple(d.component_type for d in self.component_types)
