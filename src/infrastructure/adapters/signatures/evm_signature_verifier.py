"""EVM wallet signature verifier.

Wallets sign the challenge with EIP-191 ``personal_sign``. Verification
recovers the signing address from the signature and accepts it only if it
equals the claimed address. Recovery is pure computation; no node is
queried.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from structlog import get_logger

from src.domain.models.identity import EVM, IdentityKind

logger = get_logger(__name__)


def recover_signer(message: str, signature: str) -> str:
    """Return the lowercase address that produced ``signature`` over ``message``."""
    signer = Account.recover_message(encode_defunct(text=message), signature=signature)
    return signer.lower()


class EvmSignatureVerifier:
    """SignatureVerifierProtocol implementation for EVM identities."""

    async def verify(
        self,
        kind: IdentityKind,
        identifier: str,
        message: str,
        signature: str,
    ) -> bool:
        if kind.name != EVM.name:
            return False

        try:
            signer = recover_signer(message, signature)
        except Exception as exc:
            logger.info("evm_signature_recovery_failed", address=identifier, error=str(exc))
            return False

        if signer != identifier.lower():
            logger.info("evm_signature_address_mismatch", address=identifier, signer=signer)
            return False
        return True
