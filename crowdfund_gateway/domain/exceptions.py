"""Domain-specific exceptions"""

from typing import List, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    kind = "not_found"
    status_code = 404


class InvalidStateError(DomainException):
    """Operation attempted outside its legal source state"""

    kind = "invalid_state"
    status_code = 400


class ConflictError(DomainException):
    """Duplicate active investment, performance period or transaction id"""

    kind = "conflict"
    status_code = 409


class ValidationError(DomainException):
    """Amount, enum or range violation with the list of offending fields"""

    kind = "validation_error"
    status_code = 422

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class ForbiddenError(DomainException):
    """Caller lacks the required role or ownership relation"""

    kind = "forbidden"
    status_code = 403


class InternalError(DomainException):
    """Storage or unexpected failure"""

    pass
