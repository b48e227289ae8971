"""
Workflow error taxonomy.

Every outcome the report workflow can refuse with is a WorkflowError subclass
carrying the HTTP status it maps to, so routes never translate errors by hand.
"""

from fastapi import status


class WorkflowError(Exception):
    """Base class for all report workflow failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    """Required input missing or malformed; no transition was attempted."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(WorkflowError):
    """Referenced report (or user) does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(WorkflowError):
    """Caller lacks the role or ownership for the requested action."""

    status_code = status.HTTP_403_FORBIDDEN


class StateConflictError(WorkflowError):
    """Current report status does not satisfy the transition's precondition."""

    status_code = status.HTTP_409_CONFLICT


class PersistenceError(WorkflowError):
    """The document store failed to read or commit."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotifierError(WorkflowError):
    """
    Outbound delivery failed.

    Raised by notification providers only. The dispatcher catches it and it is
    never surfaced as a transition failure.
    """

    status_code = status.HTTP_502_BAD_GATEWAY
