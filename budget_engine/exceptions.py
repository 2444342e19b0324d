"""
Domain errors raised by the engine services.

Every failure a caller can receive is a subclass of :class:`EngineError`.
Services raise them, the unit of work rolls back, and the HTTP boundary maps
each ``code`` to a status and a typed JSON body (see ``main.py``).  The engine
never retries; ``retryable`` only tells the caller whether a retry is safe.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine failures."""

    code: str = "ENGINE_ERROR"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EngineError):
    """Missing or invalid required field."""

    code = "VALIDATION_ERROR"


class NotFoundError(EngineError):
    """Referenced aggregate does not exist."""

    code = "NOT_FOUND"


class DuplicateCodeError(EngineError):
    """An aggregate with the same natural key already exists."""

    code = "DUPLICATE_CODE"


class InsufficientCreditError(EngineError):
    """Requested amount exceeds the available credit."""

    code = "INSUFFICIENT_CREDIT"


class PhaseOrderError(EngineError):
    """Out-of-sequence phase transition."""

    code = "PHASE_ORDER"


class UnbalancedEntriesError(EngineError):
    """Debit and credit totals differ by 0.01 or more."""

    code = "UNBALANCED_ENTRIES"


class ClosingPreconditionError(EngineError):
    """A closing-step guard is unmet."""

    code = "CLOSING_PRECONDITION"


class PeriodClosedError(EngineError):
    """Mutation attempted on a closed accounting period."""

    code = "PERIOD_CLOSED"


class ClosingInProgressError(EngineError):
    """The period already has an active closing, or is being closed."""

    code = "CLOSING_IN_PROGRESS"


class RevisionViolatesCommitmentsError(EngineError):
    """A decrease would leave the revised budget below what is engaged."""

    code = "REVISION_VIOLATES_COMMITMENTS"


class LockTimeoutError(EngineError):
    """An aggregate lock could not be acquired in time. Nothing was changed."""

    code = "LOCK_TIMEOUT"
    retryable = True
