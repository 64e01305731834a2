"""
progress_engines.tracer -- PROGRESS_ENGINE_TRACE emission for pure engines.

``@traced_engine`` wraps an engine entry point and logs, after each call, one
record carrying the engine name and version, a fingerprint of selected
keyword inputs and the wall time spent.  Records go to
``progress_kernel.engines.tracer`` through plain ``logging`` so the engines
package imports nothing from the kernel.

The fingerprint is the first 16 hex characters of a SHA-256 over a JSON
rendering of the named inputs with sorted keys.  Equal inputs give equal
fingerprints regardless of dict ordering.  Inputs are never mutated.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import time
from collections.abc import Callable
from typing import Any

TRACE_MESSAGE = "PROGRESS_ENGINE_TRACE"

_logger = logging.getLogger("progress_kernel.engines.tracer")


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """Fingerprint of ``kwargs`` restricted to ``fingerprint_fields``."""
    selected = {name: kwargs.get(name) for name in fingerprint_fields}
    rendered = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(rendered.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            _logger.info(
                TRACE_MESSAGE,
                extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else ""
                    ),
                    "duration_ms": round(elapsed_ms, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
