"""
Policy error taxonomy.

Every rule violation raised by the domain carries an ``ErrorKind`` so the
API boundary can translate it into a client-correctable response with a
single exception handler.
"""

from __future__ import annotations

from .enums import ErrorKind


class PolicyViolation(Exception):
    """Base class for all client-correctable policy errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(PolicyViolation):
    kind = ErrorKind.VALIDATION


class NotPermitted(PolicyViolation):
    kind = ErrorKind.AUTHORIZATION


class InvalidState(PolicyViolation):
    kind = ErrorKind.STATE


class InvalidStateTransition(InvalidState):
    """Raised when a pool status change violates the state machine."""


class NotFound(PolicyViolation):
    kind = ErrorKind.NOT_FOUND
