"""
BaseService -- abstract base for stock engine services.

Responsibility:
    Common constructor and session-handling contract.  Services receive a
    SQLAlchemy ``Session`` and persist with ``session.flush()``, never
    ``session.commit()``.

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back themselves.  The operator surface, the scheduler or the test
    harness owns commit/rollback.  Nested SAVEPOINTs opened with
    ``session.begin_nested()`` are the one exception: a service may scope
    per-item work in a savepoint it opens and closes itself.
"""

from abc import ABC

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for stock engine services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and an optional ``Clock`` from the
        caller.  Every timestamp a service writes comes from ``self.clock``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
