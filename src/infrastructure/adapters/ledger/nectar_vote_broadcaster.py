"""Hive vote broadcaster using hive-nectar.

hive-nectar ships in the optional ``hive`` extra and is imported on first
broadcast. Its client is synchronous, so signing and broadcasting run in a
worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from structlog import get_logger

from src.application.ports.ledger import VoteOperation
from src.domain.errors.userbase import ConfigError, LedgerError

logger = get_logger(__name__)


class NectarVoteBroadcaster:
    """LedgerBroadcasterProtocol implementation signing with a posting key."""

    def __init__(self, account: str, posting_key: str, nodes: Sequence[str]) -> None:
        self._account = account
        self._posting_key = posting_key
        self._nodes = list(nodes)

    @property
    def account(self) -> str:
        return self._account

    def __repr__(self) -> str:
        return f"NectarVoteBroadcaster(account={self._account!r})"

    async def broadcast_vote(self, operation: VoteOperation) -> str | None:
        return await asyncio.to_thread(self._broadcast, operation)

    def _broadcast(self, operation: VoteOperation) -> str | None:
        try:
            from nectar.hive import Hive
            from nectar.transactionbuilder import TransactionBuilder
            from nectarbase import operations
        except ImportError as exc:
            raise ConfigError(
                "hive-nectar is not installed; install the 'hive' extra to broadcast"
            ) from exc

        _, payload = operation.to_operation()
        try:
            hive = Hive(node=self._nodes, keys=[self._posting_key])
            builder = TransactionBuilder(blockchain_instance=hive)
            builder.appendOps(operations.Vote(**payload))
            builder.appendSigner(self._account, "posting")
            builder.sign()
            result: Any = builder.broadcast()
        except Exception as exc:
            raise LedgerError(str(exc) or "Broadcast failed") from exc

        tx_id = None
        if isinstance(result, dict):
            tx_id = result.get("trx_id") or result.get("id")
        logger.debug(
            "hive_vote_broadcast",
            voter=operation.voter,
            author=operation.author,
            permlink=operation.permlink,
            tx_id=tx_id,
        )
        return tx_id
