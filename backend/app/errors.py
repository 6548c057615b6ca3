"""
errors.py — AppError base class and error code registry.

Every error returned by the FinLedger API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Error families:
  - Authorization denials. Invisible rows are reported as *_NOT_FOUND (404)
    so a caller can never tell "does not exist" from "not yours". Visible
    rows the caller may not change, and denied inserts, are FORBIDDEN (403).
  - Constraint violations. Schema errors (400), duplicates (409), broken
    references and values a column cannot hold (422). Nothing is written
    when one is raised.
  - Lock conflicts. CONCURRENT_UPDATE (409): the database aborted the unit
    of work on a deadlock or serialization failure; the client may retry.
  - Consistency violations. BALANCE_INCONSISTENT (500): a savings goal's
    stored balance no longer equals the fold over its transactions.
  - Provisioning failures. PROVISIONING_FAILED (409): signup cannot create
    the identity's profile, so the signup itself fails.

Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response; renaming one is a
# breaking change for clients.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    AMOUNT_OUT_OF_RANGE        = "AMOUNT_OUT_OF_RANGE"
    INVALID_QUARTER            = "INVALID_QUARTER"
    INVALID_CURRENCY           = "INVALID_CURRENCY"
    INVALID_GOAL_TYPE          = "INVALID_GOAL_TYPE"
    INVALID_TRANSACTION_TYPE   = "INVALID_TRANSACTION_TYPE"
    INVALID_ROLE               = "INVALID_ROLE"
    FIELD_NOT_WRITABLE         = "FIELD_NOT_WRITABLE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_CATEGORY         = "DUPLICATE_CATEGORY"
    DUPLICATE_RATE             = "DUPLICATE_RATE"
    CATEGORY_IN_USE            = "CATEGORY_IN_USE"
    CONSTRAINT_VIOLATION       = "CONSTRAINT_VIOLATION"
    PROVISIONING_FAILED        = "PROVISIONING_FAILED"
    CONCURRENT_UPDATE          = "CONCURRENT_UPDATE"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    # Also returned for rows that exist but are not visible to the caller.
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    PROFILE_NOT_FOUND          = "PROFILE_NOT_FOUND"
    INCOME_NOT_FOUND           = "INCOME_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    CATEGORY_NOT_FOUND         = "CATEGORY_NOT_FOUND"
    GOAL_NOT_FOUND             = "GOAL_NOT_FOUND"
    TRANSACTION_NOT_FOUND      = "TRANSACTION_NOT_FOUND"
    RATE_NOT_FOUND             = "RATE_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    UNKNOWN_CATEGORY           = "UNKNOWN_CATEGORY"
    BALANCE_OUT_OF_RANGE       = "BALANCE_OUT_OF_RANGE"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Routing (unknown URL, method not allowed) ─────────────────────────
    HTTP_ERROR                 = "HTTP_ERROR"

    # ── System Errors (500) ────────────────────────────────────────────────
    BALANCE_INCONSISTENT       = "BALANCE_INCONSISTENT"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
