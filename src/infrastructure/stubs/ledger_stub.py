"""Ledger stubs for development and testing.

LedgerReaderStub serves accounts from memory; LedgerBroadcasterStub records
vote operations instead of signing them. Both accept injected failures.
"""

from __future__ import annotations

from typing import Any

from src.application.ports.ledger import VoteOperation
from src.domain.errors.userbase import LedgerAccountNotFoundError, LedgerError


class LedgerReaderStub:
    """In-memory LedgerReaderProtocol implementation.

    Usage:
        ledger = LedgerReaderStub()
        ledger.add_account("xvlad")
        ledger.set_error(LedgerError("node down", status=503))
    """

    def __init__(self) -> None:
        self._accounts: dict[str, dict[str, Any]] = {}
        self._error: Exception | None = None
        self.lookups: list[str] = []

    async def get_account(self, name: str) -> dict[str, Any]:
        self.lookups.append(name)
        if self._error is not None:
            raise self._error
        account = self._accounts.get(name)
        if account is None:
            raise LedgerAccountNotFoundError(name)
        return account

    # ========================================
    # Test helper methods
    # ========================================

    def add_account(self, name: str, posting_keys: list[str] | None = None) -> None:
        self._accounts[name] = {
            "name": name,
            "posting": {
                "weight_threshold": 1,
                "key_auths": [[key, 1] for key in posting_keys or []],
            },
        }

    def set_error(self, error: Exception | None) -> None:
        """Raise ``error`` from every lookup until cleared with None."""
        self._error = error

    def reset(self) -> None:
        self._accounts.clear()
        self._error = None
        self.lookups.clear()


class LedgerBroadcasterStub:
    """In-memory LedgerBroadcasterProtocol implementation.

    Failures can be injected per (author, permlink) to exercise row
    isolation in the reconciliation worker.
    """

    def __init__(self, account: str = "skatehive") -> None:
        self._account = account
        self._failures: dict[tuple[str, str], Exception] = {}
        self.broadcasts: list[VoteOperation] = []

    @property
    def account(self) -> str:
        return self._account

    async def broadcast_vote(self, operation: VoteOperation) -> str | None:
        error = self._failures.get((operation.author, operation.permlink))
        if error is not None:
            raise error
        self.broadcasts.append(operation)
        return f"tx-{len(self.broadcasts)}"

    # ========================================
    # Test helper methods
    # ========================================

    def fail_for(self, author: str, permlink: str, error: Exception | None = None) -> None:
        self._failures[(author, permlink)] = error or LedgerError("Broadcast failed")

    def reset(self) -> None:
        self._failures.clear()
        self.broadcasts.clear()
