# Overview: Closed error taxonomy shared by services and routes.

"""
Every failure a core operation can report is one of the ErrorKind values
below. Routes render them with `to_dict()` and `status_code`; anything else
that escapes a service is an internal error and is never shown to callers.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    NEGATIVE_STOCK = "NEGATIVE_STOCK"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    PRODUCTS_NOT_FOUND = "PRODUCTS_NOT_FOUND"
    TRANSACTION_ABORTED = "TRANSACTION_ABORTED"
    UNAUTHORIZED = "UNAUTHORIZED"


class LedgerError(Exception):
    """Base class for domain errors raised by the ledger services."""

    kind: ErrorKind = ErrorKind.VALIDATION_FAILED
    status_code: int = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind.value}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(LedgerError):
    """Input failed field-level checks. `details` maps field -> message."""

    kind = ErrorKind.VALIDATION_FAILED
    status_code = 400

    @property
    def errors(self) -> dict:
        return self.details


class NotFound(LedgerError):
    """Missing id or an id owned by someone else; both look the same."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class DuplicateName(LedgerError):
    kind = ErrorKind.DUPLICATE_NAME
    status_code = 409


class InsufficientStock(LedgerError):
    kind = ErrorKind.INSUFFICIENT_STOCK
    status_code = 400


class NegativeStock(LedgerError):
    kind = ErrorKind.NEGATIVE_STOCK
    status_code = 400


class InvalidQuantity(LedgerError):
    kind = ErrorKind.INVALID_QUANTITY
    status_code = 400


class ProductsNotFound(LedgerError):
    kind = ErrorKind.PRODUCTS_NOT_FOUND
    status_code = 400


class TransactionAborted(LedgerError):
    """The storage layer rejected the transaction; nothing was written."""

    kind = ErrorKind.TRANSACTION_ABORTED
    status_code = 409


class Unauthorized(LedgerError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401
