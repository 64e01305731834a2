"""
progress_config -- single public entrypoint for default milestone configuration.

Responsibility:
    Provides the ONLY way to obtain the system default milestone
    definitions: ``get_milestone_definitions()``.  YAML loading and
    validation are internal.

Architecture position:
    Configuration -- YAML-driven, validated before use.  Sits beside
    ``progress_kernel``; the kernel never imports this package.  Callers
    pass the returned set to
    ``TemplateStoreService.seed_milestone_definitions()``.

Invariants enforced:
    - Every returned set has passed validation: unique names and orders,
      integer weights in 0..100, weights per type summing to 100.
    - Deterministic checksum: the same YAML always yields the same value.

Failure modes:
    - ``FileNotFoundError`` -- no ``milestones.yaml`` for the requested set.
    - ``ConfigValidationError`` -- the set failed validation.

Audit relevance:
    Every successful call emits a ``PROGRESS_CONFIG_TRACE`` log entry with
    the config id, version, checksum and component type count.
"""

from __future__ import annotations

import logging
from pathlib import Path

from progress_config.loader import load_definition_set
from progress_config.schema import (
    ComponentTypeDef,
    MilestoneDef,
    MilestoneDefinitionSet,
)
from progress_config.validator import ConfigValidationError, validate_definition_set

_logger = logging.getLogger("progress_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFINITIONS_FILE = "milestones.yaml"


def get_milestone_definitions(
    config_set: str = "default",
    config_dir: Path | None = None,
) -> MilestoneDefinitionSet:
    """The ONLY public configuration entrypoint.

    Args:
        config_set: Name of the subdirectory under the sets directory.
        config_dir: Override path to the sets directory.  Defaults to
            ``progress_config/sets/``.

    Raises:
        FileNotFoundError: If the set has no milestones.yaml.
        ConfigValidationError: If the set fails validation.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / config_set / DEFINITIONS_FILE
    if not path.is_file():
        raise FileNotFoundError(f"Milestone definitions not found: {path}")

    definition_set = load_definition_set(path)

    validation = validate_definition_set(definition_set)
    if not validation.is_valid:
        raise ConfigValidationError(validation.errors)

    _logger.info(
        "PROGRESS_CONFIG_TRACE",
        extra={
            "trace_type": "PROGRESS_CONFIG_TRACE",
            "config_set_id": definition_set.config_id,
            "config_set_version": definition_set.version,
            "checksum": definition_set.checksum,
            "component_type_count": len(definition_set.component_types),
        },
    )
    return definition_set


__all__ = [
    "ComponentTypeDef",
    "ConfigValidationError",
    "MilestoneDef",
    "MilestoneDefinitionSet",
    "get_milestone_definitions",
]
