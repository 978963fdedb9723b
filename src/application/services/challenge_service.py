"""Challenge Service for signed identity linking.

Issues a signable, replay-resistant message that binds the caller's user id,
the claimed identity and a fresh nonce. Hive handles must exist on the
Ledger before a challenge is issued; EVM addresses only need to be well
formed, since any address can sign.

Ledger read failures are classified:
- account not found (explicit marker, a "not found" message, or a 404
  status/code) -> NotFoundError("Hive account not found")
- anything else -> UpstreamError("Failed to verify Hive account")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.ledger import LedgerReaderProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.userbase import (
    LedgerError,
    NotFoundError,
    PersistenceError,
    UpstreamError,
    ValidationError,
    is_ledger_not_found,
)
from src.domain.models.challenge import (
    CHALLENGE_TTL,
    build_challenge_message,
    build_wallet_challenge_message,
    generate_nonce,
)
from src.domain.models.identity import EVM, HIVE, IdentityKind
from src.domain.models.timestamps import isoformat_z

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChallengeResult:
    """What the client receives: the text to sign and its deadline."""

    message: str
    expires_at: datetime

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "expires_at": isoformat_z(self.expires_at)}


class ChallengeService:
    """Builds and persists identity link challenges."""

    def __init__(
        self,
        store: IdentityStoreProtocol,
        ledger: LedgerReaderProtocol,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._time = time_authority

    async def create_challenge(self, user_id: str, raw_handle: str | None) -> ChallengeResult:
        """Issue a challenge for linking ``raw_handle`` to ``user_id``.

        Args:
            user_id: Authenticated caller.
            raw_handle: Hive handle as typed by the user; trimmed and lowercased.

        Returns:
            ChallengeResult with the message and its expiry.

        Raises:
            ValidationError: Handle missing or blank.
            NotFoundError: Handle does not exist on the Ledger.
            UpstreamError: Ledger read failed for another reason.
            PersistenceError: Challenge could not be stored.
        """
        handle = raw_handle.strip().lower() if isinstance(raw_handle, str) else ""
        if not handle:
            raise ValidationError("Missing Hive handle")

        log = logger.bind(user_id=user_id, handle=handle)

        try:
            await self._ledger.get_account(handle)
        except LedgerError as exc:
            if is_ledger_not_found(exc):
                log.info("challenge_account_not_found")
                raise NotFoundError("Hive account not found") from exc
            log.warning("challenge_ledger_read_failed", error=str(exc))
            raise UpstreamError("Failed to verify Hive account", details=str(exc)) from exc

        issued_at = self._time.utcnow()
        nonce = generate_nonce()
        message = build_challenge_message(user_id, handle, nonce, issued_at)
        return await self._persist(user_id, HIVE, handle, nonce, message, issued_at)

    async def create_evm_challenge(
        self, user_id: str, raw_address: str | None
    ) -> ChallengeResult:
        """Issue a challenge for linking an EVM address to ``user_id``.

        Raises:
            ValidationError: Address missing or not a valid EVM address.
            PersistenceError: Challenge could not be stored.
        """
        if not isinstance(raw_address, str) or not raw_address.strip():
            raise ValidationError("Missing address")
        address = EVM.normalize(raw_address)

        issued_at = self._time.utcnow()
        nonce = generate_nonce()
        message = build_wallet_challenge_message(user_id, address, nonce, issued_at)
        return await self._persist(user_id, EVM, address, nonce, message, issued_at)

    async def _persist(
        self,
        user_id: str,
        kind: IdentityKind,
        identifier: str,
        nonce: str,
        message: str,
        issued_at: datetime,
    ) -> ChallengeResult:
        log = logger.bind(user_id=user_id, identity_type=kind.name, identifier=identifier)
        expires_at = issued_at + CHALLENGE_TTL
        try:
            challenge = await self._store.create_challenge(
                user_id=user_id,
                identity_type=kind.name,
                identifier=identifier,
                nonce=nonce,
                message=message,
                created_at=issued_at,
                expires_at=expires_at,
            )
        except PersistenceError as exc:
            log.error("challenge_persist_failed", error=exc.message, code=exc.code)
            raise PersistenceError(
                "Failed to create challenge", details=exc.details or exc.message, code=exc.code
            ) from exc

        log.info("challenge_created", challenge_id=challenge.id)
        return ChallengeResult(message=message, expires_at=expires_at)
