"""Domain errors for Userbase.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from UserbaseError, except Ledger adapter errors
which are classified by the services that call the Ledger.
"""

from src.domain.errors.userbase import (
    ConfigError,
    IdentityConflictError,
    LedgerAccountNotFoundError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    SessionExpiredError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)

__all__: list[str] = [
    "ConfigError",
    "IdentityConflictError",
    "LedgerAccountNotFoundError",
    "LedgerError",
    "NotFoundError",
    "PersistenceError",
    "SessionExpiredError",
    "UnauthorizedError",
    "UpstreamError",
    "ValidationError",
]
