#!/usr/bin/env python3
"""
Exception taxonomy for the decision core.

Missing attributes and insufficient samples are never errors; they degrade
to zero credit or a non-significant result. Persistence and invariant
failures propagate to the caller.
"""


class DecisionCoreException(Exception):
    """Base exception for decision core errors."""
    pass


class MatchNotFoundError(DecisionCoreException):
    """Raised when a match record is not found."""
    pass


class ExperimentNotFoundError(DecisionCoreException):
    """Raised when an experiment definition is not found."""
    pass


class InvariantViolationError(DecisionCoreException):
    """Raised when an operation would silently overwrite protected state."""
    pass


class OutcomeConflictError(InvariantViolationError):
    """Raised on a second terminal outcome without the correction flag."""

    def __init__(self, match_id, current_outcome, requested_outcome):
        self.match_id = match_id
        self.current_outcome = current_outcome
        self.requested_outcome = requested_outcome
        super().__init__(
            f"Match {match_id} already has terminal outcome {current_outcome!r}; "
            f"refusing {requested_outcome!r} without correction=True"
        )


class ExperimentConflictError(InvariantViolationError):
    """Raised when re-declaring the winner of a completed experiment."""
    pass


class InvalidTransitionError(InvariantViolationError):
    """Raised for lifecycle transitions the state machine does not allow."""
    pass


class PersistenceUnavailableError(DecisionCoreException):
    """Raised when a write path cannot reach the store."""
    pass
