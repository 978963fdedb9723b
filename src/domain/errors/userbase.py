"""Userbase domain errors.

Taxonomy shared by every service in the subsystem:
- ValidationError: malformed, missing or out-of-range input (400)
- UnauthorizedError / SessionExpiredError: caller must re-authenticate (401)
- NotFoundError: resource or Ledger account does not exist (404)
- ForbiddenError: caller is signed in but lacks a prerequisite link (403)
- IdentityConflictError: identity already owned by another user (409)
- UpstreamError: Ledger read failed for a reason other than not-found (502)
- ConfigError: a required environment value or collaborator is missing (500)
- PersistenceError: the Identity Store rejected or failed an operation (500)

Services raise these; routes never build status codes by hand.
"""

from __future__ import annotations

from typing import Optional

from src.domain.exceptions import UserbaseError


class ValidationError(UserbaseError):
    """Raised when request input is malformed, missing or out of range.

    HTTP Status: 400 Bad Request. Never retried by the server.
    """

    HTTP_STATUS = 400
    ERROR_CODE = "VALIDATION_ERROR"


class UnauthorizedError(UserbaseError):
    """Raised when no valid session or internal token was presented.

    HTTP Status: 401 Unauthorized.
    """

    HTTP_STATUS = 401
    ERROR_CODE = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class SessionExpiredError(UnauthorizedError):
    """Raised when a session row exists but its expiry has passed.

    Distinct from UnauthorizedError so clients can trigger re-auth instead
    of generic 401 handling.
    """

    ERROR_CODE = "SESSION_EXPIRED"

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class NotFoundError(UserbaseError):
    """Raised when a resource, or a claimed identity on the Ledger, is absent.

    HTTP Status: 404 Not Found. Terminal for the request.
    """

    HTTP_STATUS = 404
    ERROR_CODE = "NOT_FOUND"


class ForbiddenError(UserbaseError):
    """Raised when the caller is authenticated but may not take the action.

    HTTP Status: 403 Forbidden.
    """

    HTTP_STATUS = 403
    ERROR_CODE = "FORBIDDEN"


class IdentityConflictError(UserbaseError):
    """Raised when an identity is already linked to another user.

    HTTP Status: 409 Conflict.

    Attributes:
        identity_type: Kind of the conflicting identity.
        identifier: Normalized identifier that is already owned.
    """

    HTTP_STATUS = 409
    ERROR_CODE = "IDENTITY_CONFLICT"

    def __init__(
        self,
        identity_type: str,
        identifier: str,
        message: str = "Identity already linked",
    ) -> None:
        self.identity_type = identity_type
        self.identifier = identifier
        super().__init__(message)


class UpstreamError(UserbaseError):
    """Raised when the Ledger read fails for a transient or unknown reason.

    HTTP Status: 502 Bad Gateway. Callers may retry.

    Attributes:
        details: Underlying failure text (only surfaced outside production).
    """

    HTTP_STATUS = 502
    ERROR_CODE = "UPSTREAM_ERROR"

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        self.details = details
        super().__init__(message)


class ConfigError(UserbaseError):
    """Raised when a required environment value or collaborator is missing.

    HTTP Status: 500. Operator-fixable, never actionable for end users.
    """

    HTTP_STATUS = 500
    ERROR_CODE = "CONFIG_ERROR"


class PersistenceError(UserbaseError):
    """Raised when the Identity Store fails an operation.

    HTTP Status: 500. The caller must not assume the write happened.

    Attributes:
        details: Underlying store error text.
        code: Store error code when one was reported (e.g. ``23505``).
    """

    HTTP_STATUS = 500
    ERROR_CODE = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        self.details = details
        self.code = code
        super().__init__(message)

    @property
    def is_unique_violation(self) -> bool:
        """Check whether the store rejected the write on a unique constraint."""
        return self.code == "23505"


class LedgerError(Exception):
    """Raised by Ledger adapters on any read or broadcast failure.

    Attributes:
        status: HTTP-like status reported by the node, if any.
        code: Error code reported by the node or adapter, if any.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        self.status = status
        self.code = code
        super().__init__(message)


class LedgerAccountNotFoundError(LedgerError):
    """Raised by Ledger adapters when the requested account does not exist."""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__("Account not found", status=404, code="NOT_FOUND")


def is_ledger_not_found(error: Exception) -> bool:
    """Classify a Ledger read failure as "account does not exist".

    Matches the explicit not-found error, any message containing "not
    found", and a 404 status or code.
    """
    if isinstance(error, LedgerAccountNotFoundError):
        return True
    if "not found" in str(error).lower():
        return True
    if isinstance(error, LedgerError):
        if error.status == 404:
            return True
        if error.code is not None and str(error.code).upper() in ("404", "NOT_FOUND"):
            return True
    return False
