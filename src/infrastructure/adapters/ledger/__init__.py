"""Hive Ledger adapters."""

from src.infrastructure.adapters.ledger.hive_account_reader import HiveAccountReader
from src.infrastructure.adapters.ledger.hive_signature_verifier import (
    HiveSignatureVerifier,
)
from src.infrastructure.adapters.ledger.nectar_vote_broadcaster import (
    NectarVoteBroadcaster,
)

__all__: list[str] = [
    "HiveAccountReader",
    "HiveSignatureVerifier",
    "NectarVoteBroadcaster",
]
