"""
Module: progress_engines
Responsibility:
    Package entrypoint for the pure calculation layer.

Architecture position:
    Engines -- zero I/O.  May only import progress_kernel/domain (and
    sibling engine modules).  MUST NOT import services or selectors.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic for percentages.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Traced entry points emit PROGRESS_ENGINE_TRACE log records with the
    engine name, version, input fingerprint and duration.

Usage:
    from progress_engines import EarnedValueCalculator, compute_percent_complete
"""

from progress_engines.earned_value import (
    PERCENT_QUANTUM,
    EarnedValueCalculator,
    compute_percent_complete,
)
from progress_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "PERCENT_QUANTUM",
    "EarnedValueCalculator",
    "compute_percent_complete",
    "compute_input_fingerprint",
    "traced_engine",
]
