# Overview: Error taxonomy shared by the ledger services and the HTTP layer.

"""
Ledger errors.

Every service raises one of these (never a bare ValueError) so the caller can
tell a business-rule rejection from a transient store failure without parsing
messages. `code` is stable and is what the HTTP layer returns to clients;
`http_status` is the suggested mapping used by the blueprint error handler.

RETRY SEMANTICS:
- DuplicateKey and TransactionConflict are transient: the whole operation can
  be retried from a fresh read.
- Everything else is final for the given input.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger-protocol errors."""

    code = "ledger_error"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFound(LedgerError):
    """Entity missing, or present but owned by another tenant."""

    code = "not_found"
    http_status = 404


class ValidationFailed(LedgerError):
    code = "validation_failed"
    http_status = 400


class InvalidQuantity(ValidationFailed):
    code = "invalid_quantity"


class InsufficientStock(LedgerError):
    """A decrement would take quantity below zero; nothing was applied."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, available: int, requested: int, details: dict | None = None):
        merged = {"available": available, "requested": requested}
        merged.update(details or {})
        super().__init__(
            f"Insufficient stock: available {available}, requested {requested}",
            merged,
        )
        self.available = available
        self.requested = requested


class InvalidState(LedgerError):
    code = "invalid_state"
    http_status = 409


class DuplicateKey(LedgerError):
    code = "duplicate_key"
    http_status = 409
    retryable = True


class TransactionConflict(LedgerError):
    code = "transaction_conflict"
    http_status = 503
    retryable = True


class IntegrityViolation(LedgerError):
    """A foreign key, CHECK or NOT NULL constraint rejected the write."""

    code = "integrity_violation"
    http_status = 409
