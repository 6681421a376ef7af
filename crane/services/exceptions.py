"""
Service Layer Exceptions

Custom exceptions for the repositories, compiler and orchestration logic.
The execution engine itself never raises these to its callers: tile failures
and configuration problems are reported as failed results instead.
"""

from typing import Optional


class CraneError(Exception):
    """Base class. `code` is a stable, machine-readable identifier."""

    code = "CRANE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class NotFoundError(CraneError):
    """Raised when a blueprint or execution record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, id: str):
        super().__init__(f"{resource} not found: {id}")
        self.resource = resource
        self.id = id


class ValidationError(CraneError):
    """Raised when input data is malformed (e.g. invalid tile parameters)."""

    code = "VALIDATION_ERROR"


class ConfigurationError(CraneError):
    """Raised when the execution mode or its collaborators are not configured."""

    code = "CONFIGURATION_ERROR"


class AuthorizationError(CraneError):
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NonRetriableError(CraneError):
    """Tells a durable workflow engine not to retry the failed run."""

    code = "NON_RETRIABLE"
