"""Signature verifier stub for development and testing.

Accepts exactly the (identifier, signature) pairs registered with
``accept()``, and records every verification request.
"""

from __future__ import annotations

from src.domain.models.identity import IdentityKind


class SignatureVerifierStub:
    """In-memory SignatureVerifierProtocol implementation."""

    def __init__(self) -> None:
        self._accepted: set[tuple[str, str, str]] = set()
        self.requests: list[tuple[str, str, str, str]] = []

    async def verify(
        self,
        kind: IdentityKind,
        identifier: str,
        message: str,
        signature: str,
    ) -> bool:
        self.requests.append((kind.name, identifier, message, signature))
        return (kind.name, identifier, signature) in self._accepted

    def accept(self, kind: IdentityKind, identifier: str, signature: str) -> None:
        self._accepted.add((kind.name, identifier, signature))

    def reset(self) -> None:
        self._accepted.clear()
        self.requests.clear()
