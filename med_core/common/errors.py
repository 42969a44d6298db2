# med_core/common/errors.py
from __future__ import annotations

from typing import Any


class MedicationError(Exception):
    """
    Base class for domain errors raised by services/selectors/rules.

    Views never catch these: api_exception_handler translates them into the
    canonical error envelope with a stable `code`.
    """
    code = "error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(MedicationError):
    """Malformed or missing input (client-caused)."""
    code = "validation_error"
    default_message = "Invalid input."


class AuthorizationError(MedicationError):
    """Caller-supplied patient does not own the record."""
    code = "permission_denied"
    default_message = "You do not have permission to modify this medication."


class NotFoundError(MedicationError):
    code = "not_found"
    default_message = "Medication not found."


class StorageError(MedicationError):
    """The record store failed during the primary mutation."""
    code = "storage_error"
    default_message = "Storage operation failed."


class AuditError(MedicationError):
    """
    Audit write failure. Raised and caught inside AuditService only;
    never reaches a caller.
    """
    code = "audit_error"
    default_message = "Audit write failed."
