"""Typed failures raised by the scheduling core.

The four domain kinds keep their type all the way to the request layer.
``OperationFailedError`` is the opaque wrapper for anything unexpected.
"""


class SchedulingError(Exception):
    code = 'SCHEDULING_ERROR'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or semantically invalid input."""
    code = 'VALIDATION_ERROR'

    def __init__(self, message: str, details: dict[str, str] | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(SchedulingError):
    """Referenced entity does not exist or is soft-deleted."""
    code = 'NOT_FOUND'


class ConflictError(SchedulingError):
    """A concurrent writer got there first."""
    code = 'CONFLICT'


class BusinessRuleError(SchedulingError):
    """Well-formed request that breaks a domain rule."""
    code = 'BUSINESS_RULE_VIOLATION'


class OperationFailedError(SchedulingError):
    code = 'OPERATION_FAILED'
