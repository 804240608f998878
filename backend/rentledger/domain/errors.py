# backend/rentledger/domain/errors.py
from __future__ import annotations


class LedgerError(Exception):
    """
    Base for every rejection the payment engine or its service layer raises.

    Raised before any state is mutated; routers turn it into a JSON error
    response via the handlers registered in main.py.
    """

    kind = "ledger_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "kind": self.kind}


class LedgerValidationError(LedgerError, ValueError):
    kind = "validation_error"
    status_code = 422


class LedgerNotFoundError(LedgerError, LookupError):
    kind = "not_found"
    status_code = 404


class LedgerConcurrencyError(LedgerError):
    """The monthly record changed between read and write; re-fetch and retry."""

    kind = "concurrency_error"
    status_code = 409
