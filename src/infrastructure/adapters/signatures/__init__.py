"""Challenge signature verifiers that need no Ledger access."""

from src.infrastructure.adapters.signatures.evm_signature_verifier import (
    EvmSignatureVerifier,
)
from src.infrastructure.adapters.signatures.kind_signature_verifier import (
    KindSignatureVerifier,
)

__all__: list[str] = ["EvmSignatureVerifier", "KindSignatureVerifier"]
