"""Infrastructure stubs for development and testing.

This module provides stub implementations of infrastructure ports
for use in development and testing environments.

Available stubs:
- IdentityStoreStub: In-memory Identity Store with uniqueness, CAS claims
  and per-operation failure injection
- LedgerReaderStub: In-memory Hive accounts with injectable errors
- LedgerBroadcasterStub: Records vote operations, per-post failure injection
- AlertDeliveryStub: Records alert payloads
- SignatureVerifierStub: Accepts registered (identifier, signature) pairs

WARNING: These stubs are NOT for production use.
Production implementations are in src/infrastructure/adapters/.
"""

from src.infrastructure.stubs.alert_delivery_stub import AlertDeliveryStub
from src.infrastructure.stubs.identity_store_stub import IdentityStoreStub
from src.infrastructure.stubs.ledger_stub import LedgerBroadcasterStub, LedgerReaderStub
from src.infrastructure.stubs.signature_verifier_stub import SignatureVerifierStub

__all__: list[str] = [
    "AlertDeliveryStub",
    "IdentityStoreStub",
    "LedgerBroadcasterStub",
    "LedgerReaderStub",
    "SignatureVerifierStub",
]
