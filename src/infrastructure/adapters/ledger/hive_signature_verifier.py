"""Hive posting-key signature verifier.

A Hive challenge is signed with the account's posting key over the SHA-256
digest of the exact challenge text, producing a 65-byte compact signature
(hex). Verification recovers the public key from the signature and accepts
it only if that key is listed in the account's posting ``key_auths`` on the
Ledger.

Key recovery uses nectargraphenebase from the optional ``hive`` extra.
"""

from __future__ import annotations

import asyncio
from binascii import Error as BinasciiError
from binascii import hexlify, unhexlify

from structlog import get_logger

from src.application.ports.ledger import LedgerReaderProtocol
from src.domain.errors.userbase import (
    ConfigError,
    LedgerError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    is_ledger_not_found,
)
from src.domain.models.identity import HIVE, IdentityKind

logger = get_logger(__name__)

HIVE_KEY_PREFIX = "STM"
COMPACT_SIGNATURE_BYTES = 65


def _recover_public_key(message: str, signature: bytes) -> str:
    try:
        from nectargraphenebase.account import PublicKey
        from nectargraphenebase.ecdsasig import verify_message
    except ImportError as exc:
        raise ConfigError(
            "hive-nectar is not installed; install the 'hive' extra to verify signatures"
        ) from exc

    raw = verify_message(message.encode("utf-8"), signature)
    return str(PublicKey(hexlify(raw).decode("ascii"), prefix=HIVE_KEY_PREFIX))


class HiveSignatureVerifier:
    """SignatureVerifierProtocol implementation for Hive identities."""

    def __init__(self, ledger: LedgerReaderProtocol) -> None:
        self._ledger = ledger

    async def verify(
        self,
        kind: IdentityKind,
        identifier: str,
        message: str,
        signature: str,
    ) -> bool:
        if kind.name != HIVE.name:
            return False

        try:
            raw_signature = unhexlify(signature.removeprefix("0x"))
        except (BinasciiError, ValueError) as exc:
            raise ValidationError("Invalid signature format") from exc
        if len(raw_signature) != COMPACT_SIGNATURE_BYTES:
            raise ValidationError("Invalid signature format")

        try:
            public_key = await asyncio.to_thread(
                _recover_public_key, message, raw_signature
            )
        except ConfigError:
            raise
        except Exception as exc:
            logger.info("hive_signature_recovery_failed", handle=identifier, error=str(exc))
            return False

        try:
            account = await self._ledger.get_account(identifier)
        except LedgerError as exc:
            if is_ledger_not_found(exc):
                raise NotFoundError("Hive account not found") from exc
            raise UpstreamError("Failed to verify Hive account", details=str(exc)) from exc

        key_auths = (account.get("posting") or {}).get("key_auths") or []
        posting_keys = {entry[0] for entry in key_auths if entry}
        if public_key not in posting_keys:
            logger.info("hive_signature_key_not_authorized", handle=identifier)
            return False
        return True
