"""Audit error taxonomy.

Every error here is recoverable: the operator retries the single action that
failed. The HTTP layer renders them through one exception handler.
"""


class AuditError(Exception):
    status_code = 400
    code = "audit_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AuditError):
    """Input rejected before any store call."""

    code = "validation_error"


class NotFoundError(AuditError):
    status_code = 404
    code = "not_found"


class DuplicateError(AuditError):
    """Device already counted in this audit."""

    status_code = 409
    code = "duplicate"


class AuditStateError(AuditError):
    """Operation needs an in-progress audit and there is none."""

    status_code = 409
    code = "no_active_audit"


class BusyError(AuditError):
    """Another mutating call on the same engine has not finished yet."""

    status_code = 409
    code = "busy"


class PersistenceError(AuditError):
    status_code = 503
    code = "persistence_error"
