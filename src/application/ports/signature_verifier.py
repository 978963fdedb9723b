"""Signature verifier port for identity challenges.

The signing scheme for each identity kind (which key role, which curve,
which encoding) belongs to the external identity provider. This service
only asks whether a signature over the exact challenge text is valid for
the claimed identifier.
"""

from __future__ import annotations

from typing import Protocol

from src.domain.models.identity import IdentityKind


class SignatureVerifierProtocol(Protocol):
    """Protocol for challenge signature verification."""

    async def verify(
        self,
        kind: IdentityKind,
        identifier: str,
        message: str,
        signature: str,
    ) -> bool:
        """Check a signature over ``message`` for ``identifier``.

        Returns:
            True only if the signature proves control of the identity.
        """
        ...
