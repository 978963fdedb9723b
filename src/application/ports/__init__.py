"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- IdentityStoreProtocol: identities, sessions, challenges, soft votes and posts
- LedgerReaderProtocol / LedgerBroadcasterProtocol: Hive account read and vote broadcast
- AlertDeliveryProtocol: fire-and-forget operational alerts
- SignatureVerifierProtocol: challenge signature verification
- TimeAuthorityProtocol: injectable clock
"""

from src.application.ports.alert_delivery import AlertDeliveryProtocol
from src.application.ports.identity_store import IdentityStoreProtocol, UserRowTable
from src.application.ports.ledger import (
    LedgerBroadcasterProtocol,
    LedgerReaderProtocol,
    VoteOperation,
)
from src.application.ports.signature_verifier import SignatureVerifierProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol

__all__: list[str] = [
    "AlertDeliveryProtocol",
    "IdentityStoreProtocol",
    "LedgerBroadcasterProtocol",
    "LedgerReaderProtocol",
    "SignatureVerifierProtocol",
    "TimeAuthorityProtocol",
    "UserRowTable",
    "VoteOperation",
]
