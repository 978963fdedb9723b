"""Ledger ports (Hive blockchain read and broadcast).

The Ledger is an external collaborator. This service only needs two things
from it: confirm an account exists, and submit a vote signed by the system
broadcaster identity. How the chain signs or orders operations is outside
this service.

Error contract:
- LedgerAccountNotFoundError when the account does not exist
- LedgerError for transport failures, timeouts and malformed responses
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class VoteOperation:
    """A Hive ``vote`` operation.

    Attributes:
        voter: Account casting the vote (the system broadcaster).
        author: Target post author.
        permlink: Target post permlink.
        weight: Vote weight in basis points, -10000..10000.
    """

    voter: str
    author: str
    permlink: str
    weight: int

    def to_operation(self) -> list[Any]:
        """Render as the ``[name, payload]`` pair used on the wire."""
        return [
            "vote",
            {
                "voter": self.voter,
                "author": self.author,
                "permlink": self.permlink,
                "weight": self.weight,
            },
        ]


class LedgerReaderProtocol(Protocol):
    """Read access to Ledger accounts."""

    async def get_account(self, name: str) -> dict[str, Any]:
        """Fetch an account by name.

        Raises:
            LedgerAccountNotFoundError: If the account does not exist.
            LedgerError: On any other failure.
        """
        ...


class LedgerBroadcasterProtocol(Protocol):
    """Broadcast access bound to the system broadcaster identity."""

    @property
    def account(self) -> str:
        """Account name the broadcaster signs as."""
        ...

    async def broadcast_vote(self, operation: VoteOperation) -> str | None:
        """Sign and broadcast a vote.

        Returns:
            Transaction id when the node reports one.

        Raises:
            LedgerError: If signing or broadcasting fails.
        """
        ...
