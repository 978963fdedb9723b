"""Signature verifier that routes each identity kind to its own verifier."""

from __future__ import annotations

from typing import Mapping

from src.application.ports.signature_verifier import SignatureVerifierProtocol
from src.domain.errors.userbase import ConfigError
from src.domain.models.identity import IdentityKind


class KindSignatureVerifier:
    """SignatureVerifierProtocol that dispatches on ``kind.name``.

    Usage:
        verifier = KindSignatureVerifier({"evm": EvmSignatureVerifier()})
        await verifier.verify(EVM, address, message, signature)
    """

    def __init__(self, verifiers: Mapping[str, SignatureVerifierProtocol]) -> None:
        self._verifiers = dict(verifiers)

    @property
    def kinds(self) -> frozenset[str]:
        return frozenset(self._verifiers)

    async def verify(
        self,
        kind: IdentityKind,
        identifier: str,
        message: str,
        signature: str,
    ) -> bool:
        verifier = self._verifiers.get(kind.name)
        if verifier is None:
            raise ConfigError(f"No signature verifier configured for {kind.name} identities")
        return await verifier.verify(kind, identifier, message, signature)
