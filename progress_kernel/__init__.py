"""
Progress Kernel - Earned-Value Template Engine

Tracks installation progress of piping components with:
- Per-project milestone weight templates with system-default fallback
- Weight-sum invariant (100) enforced on every write
- Optimistic concurrency for template edits
- Append-only template change log
- Retroactive batch recalculation of percent complete
"""

__version__ = "0.1.0"
