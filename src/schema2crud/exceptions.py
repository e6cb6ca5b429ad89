"""
Application-wide exception definitions.
Organized by concern: database operations, record/schema validation, HTTP/application flow.
"""

from typing import List, Optional

from fastapi import HTTPException

from schema2crud.services.notify import HTTP


# ==================== Database Layer Exceptions ====================

class DatabaseError(Exception):
    """Raised for any database-specific errors (operation failures etc.)."""

    def __init__(self, e=None, message=None):
        if message:
            super().__init__(message)
        elif e:
            super().__init__(str(e))
        else:
            super().__init__("Database error")
        self.error = e
        self.message = message


class UnavailableError(DatabaseError):
    """Raised when the external store cannot be reached.

    Never surfaced to a client: the storage factory switches to the
    in-memory store when it sees this.
    """


class DuplicateConstraintError(Exception):
    """Raised when a unique constraint violation occurs - database agnostic"""

    def __init__(self, message: str, entity: Optional[str] = None, field: Optional[str] = None):
        self.message = message
        self.entity = entity
        self.field = field
        super().__init__(message)


# ==================== Application Flow Exceptions ====================

class StopWorkError(HTTPException):
    """Single base class for all stop-work scenarios.

    Caught by the exception handlers in main.py and converted to the
    ``{success: false, error: ...}`` response envelope.
    """

    def __init__(self, message: str, status_code: int, error_type: str,
                 entity: Optional[str] = None, field: Optional[str] = None,
                 details: Optional[List[str]] = None):
        self.message = message
        self.error_type = error_type  # For logging context
        self.entity = entity
        self.field = field
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class RecordValidationError(StopWorkError):
    """A payload violated one or more field constraints; ``details`` lists all of them."""

    def __init__(self, details: List[str], entity: Optional[str] = None, message: str = "Validation error"):
        super().__init__(message, HTTP.BAD_REQUEST, "validation", entity=entity, details=list(details))


class ConflictError(StopWorkError):
    """A unique field collided with an existing record."""

    def __init__(self, field: Optional[str], entity: Optional[str] = None):
        message = f"Duplicate entry for field: {field}" if field else "Duplicate entry"
        super().__init__(message, HTTP.CONFLICT, "conflict", entity=entity, field=field)


class NotFoundError(StopWorkError):
    """Id resolution exhausted every candidate without a match."""

    def __init__(self, entity: str, record_id: str):
        self.record_id = record_id
        super().__init__(f"{entity} not found with id: {record_id}", HTTP.NOT_FOUND, "not_found", entity=entity)


class MalformedSchemaError(StopWorkError):
    """A schema replacement was rejected because the top-level ``record`` object is missing."""

    def __init__(self, message: str = 'Schema must contain a "record" object', details: Optional[List[str]] = None):
        super().__init__(message, HTTP.BAD_REQUEST, "malformed_schema", details=details)
