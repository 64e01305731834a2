"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write-side
    service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll it back.  The caller (``session_scope()``, a
    script, or the test harness) owns commit/rollback, which is what lets a
    template edit and its change record commit or fail together.  Services
    may open SAVEPOINTs (``begin_nested``) for sub-steps they need to undo.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods; those belong in selectors/.
    """

    def __init__(self, session: Session):
        self.session = session
