"""Identity Link Service.

Owns the write side of identity linking: committing identities from signed
challenges (Hive, EVM), recording Farcaster identities and the EVM addresses
Farcaster has already verified, listing a user's identities and unlinking
them.

Commit sequence for a signed link:
1. Normalize the identifier through its identity kind
2. Load the newest unconsumed challenge for (user, kind, identifier)
3. Reject expired challenges and messages whose nonce does not match
4. Ask the signature verifier whether the signature proves control
5. Consume the challenge (single use), then insert the identity

The (type, identifier) unique constraint is the final arbiter: a concurrent
link by another user surfaces as IdentityConflictError.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.signature_verifier import SignatureVerifierProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.userbase import (
    ConfigError,
    ForbiddenError,
    IdentityConflictError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    ValidationError,
)
from src.domain.models.challenge import parse_challenge_nonce
from src.domain.models.identity import EVM, FARCASTER, HIVE, Identity, IdentityKind

logger = get_logger(__name__)


def _require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


def _fid_text(value: Any) -> str | None:
    """Render a client-supplied fid (number or string) as text, None if absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


class IdentityLinkService:
    """Lists, links and unlinks identities for the calling user."""

    def __init__(
        self,
        store: IdentityStoreProtocol,
        time_authority: TimeAuthorityProtocol,
        signature_verifier: SignatureVerifierProtocol | None = None,
    ) -> None:
        """Initialize the link service.

        Args:
            store: Identity Store adapter.
            time_authority: Clock for challenge expiry and verified_at.
            signature_verifier: Verifier for signed challenges. Without one,
                listing, unlinking and Farcaster links still work but signed
                links fail with ConfigError.
        """
        self._store = store
        self._time = time_authority
        self._verifier = signature_verifier

    async def list_identities(self, user_id: str) -> list[Identity]:
        return await self._store.list_identities(user_id)

    async def unlink_identity(self, user_id: str, identity_id: str | None) -> None:
        """Delete one of the caller's identities.

        Raises:
            ValidationError: No identity id given.
            NotFoundError: No identity with that id.
            UnauthorizedError: The identity belongs to another user.
        """
        if not isinstance(identity_id, str) or not identity_id.strip():
            raise ValidationError("Missing identity id")

        identity = await self._store.get_identity(identity_id.strip())
        if identity is None:
            raise NotFoundError("Identity not found")
        if identity.user_id != user_id:
            logger.warning(
                "identity_unlink_denied", identity_id=identity.id, user_id=user_id
            )
            raise UnauthorizedError()

        await self._store.delete_identity(identity.id)
        logger.info(
            "identity_unlinked",
            identity_id=identity.id,
            user_id=user_id,
            identity_type=identity.type,
        )

    async def verify_hive_challenge(
        self,
        user_id: str,
        raw_handle: str | None,
        signature: str | None,
    ) -> Identity:
        """Commit a Hive identity link from a signed challenge.

        Args:
            user_id: Authenticated caller.
            raw_handle: Hive handle the challenge was issued for.
            signature: Signature over the exact challenge message.

        Returns:
            The linked identity (existing row if the caller already owned it).

        Raises:
            ConfigError: No signature verifier is configured.
            ValidationError: Bad input, expired challenge or nonce mismatch.
            NotFoundError: No open challenge for this handle.
            UnauthorizedError: Signature does not verify.
            IdentityConflictError: Handle is linked to another user.
        """
        verifier = self._require_verifier()
        handle = _require_text(raw_handle, "Missing Hive handle")
        signature = _require_text(signature, "Missing signature")
        return await self._commit_signed_link(
            verifier, user_id, HIVE, HIVE.normalize(handle), signature
        )

    async def verify_evm_challenge(
        self,
        user_id: str,
        raw_address: str | None,
        signature: str | None,
    ) -> Identity:
        """Commit an EVM address link from a wallet-signed challenge.

        Same contract as verify_hive_challenge, for the address the
        challenge was issued for.
        """
        verifier = self._require_verifier()
        address = _require_text(raw_address, "Missing address")
        signature = _require_text(signature, "Missing signature")
        return await self._commit_signed_link(
            verifier, user_id, EVM, EVM.normalize(address), signature
        )

    async def link_farcaster(
        self,
        user_id: str,
        identity_type: Any,
        external_id: Any,
        handle: Any = None,
        address: Any = None,
        metadata: Any = None,
        is_primary: Any = None,
    ) -> Identity:
        """Record the caller's Farcaster identity.

        The fid comes from a Farcaster sign-in the front end has already
        completed, so no challenge is involved. Re-linking an fid the caller
        already owns returns the existing row.

        Args:
            user_id: Authenticated caller.
            identity_type: Must be ``farcaster``.
            external_id: Farcaster fid, as a number or a decimal string.
            handle: Farcaster username, kept in metadata.
            address: Custody address, kept in metadata.
            metadata: Extra provider data to store.
            is_primary: Explicit primary flag; defaults to "first of its kind".

        Raises:
            ValidationError: Missing or unsupported type, missing or
                malformed fid.
            IdentityConflictError: The fid is linked to another user.
        """
        if not isinstance(identity_type, str) or not identity_type:
            raise ValidationError("Missing identity type")
        if identity_type != FARCASTER.name:
            raise ValidationError("Unsupported identity type")

        raw_fid = _fid_text(external_id)
        if raw_fid is None:
            raise ValidationError("Farcaster fid is required")
        fid = FARCASTER.normalize(raw_fid)

        details = dict(metadata) if isinstance(metadata, dict) else {}
        if isinstance(handle, str) and handle.strip():
            details["handle"] = handle.strip().lower()
        if isinstance(address, str) and address.strip():
            details["address"] = address.strip().lower()

        log = logger.bind(user_id=user_id, fid=fid)
        existing = await self._store.find_identity(FARCASTER.name, fid)
        if existing is not None:
            if existing.user_id != user_id:
                log.warning("identity_conflict", owner_user_id=existing.user_id)
                raise IdentityConflictError(FARCASTER.name, fid)
            return existing

        primary = is_primary if isinstance(is_primary, bool) else None
        return await self._insert_identity(
            user_id, FARCASTER, fid, details, is_primary=primary
        )

    async def link_evm_via_farcaster(
        self,
        user_id: str,
        raw_address: Any,
        farcaster_fid: Any,
    ) -> Identity:
        """Link an EVM address that Farcaster has verified for the caller's fid.

        No wallet signature is required, but the caller must already own the
        Farcaster identity the address was verified through.

        Raises:
            ValidationError: Missing or invalid address, or missing fid.
            ForbiddenError: The caller has not linked that Farcaster fid.
            IdentityConflictError: The address is linked to another user.
        """
        address = _require_text(raw_address, "Missing address")
        raw_fid = _fid_text(farcaster_fid)
        if raw_fid is None:
            raise ValidationError("Missing farcaster_fid")
        address = EVM.normalize(address)
        fid = raw_fid.strip()

        log = logger.bind(user_id=user_id, address=address, fid=fid)
        farcaster = await self._store.find_identity(FARCASTER.name, fid)
        if farcaster is None or farcaster.user_id != user_id:
            log.info("farcaster_link_required")
            raise ForbiddenError("You must link your Farcaster account first")

        existing = await self._store.find_identity(EVM.name, address)
        if existing is not None:
            if existing.user_id != user_id:
                log.warning("identity_conflict", owner_user_id=existing.user_id)
                raise IdentityConflictError(EVM.name, address)
            return existing

        return await self._insert_identity(
            user_id,
            EVM,
            address,
            {"verified_via": FARCASTER.name, "farcaster_fid": fid},
        )

    def _require_verifier(self) -> SignatureVerifierProtocol:
        if self._verifier is None:
            raise ConfigError("Missing signature verifier configuration")
        return self._verifier

    async def _commit_signed_link(
        self,
        verifier: SignatureVerifierProtocol,
        user_id: str,
        kind: IdentityKind,
        identifier: str,
        signature: str,
    ) -> Identity:
        log = logger.bind(user_id=user_id, identity_type=kind.name, identifier=identifier)

        challenge = await self._store.get_latest_open_challenge(user_id, kind.name, identifier)
        if challenge is None:
            raise NotFoundError("Challenge not found")

        now = self._time.utcnow()
        if challenge.is_expired(now):
            log.info("challenge_expired", challenge_id=challenge.id)
            raise ValidationError("Challenge expired")

        if parse_challenge_nonce(challenge.message) != challenge.nonce:
            log.warning("challenge_nonce_mismatch", challenge_id=challenge.id)
            raise ValidationError("Challenge nonce mismatch")

        verified = await verifier.verify(kind, identifier, challenge.message, signature)
        if not verified:
            log.info("challenge_signature_rejected", challenge_id=challenge.id)
            raise UnauthorizedError("Invalid signature")

        if not await self._store.consume_challenge(challenge.id, now):
            raise ValidationError("Challenge already used")

        existing = await self._store.find_identity(kind.name, identifier)
        if existing is not None:
            if existing.user_id != user_id:
                log.warning("identity_conflict", owner_user_id=existing.user_id)
                raise IdentityConflictError(kind.name, identifier)
            await self._store.touch_identity_verified(existing.id, now)
            log.info("identity_reverified", identity_id=existing.id)
            return dataclasses.replace(existing, verified_at=now)

        return await self._insert_identity(user_id, kind, identifier, verified_at=now)

    async def _insert_identity(
        self,
        user_id: str,
        kind: IdentityKind,
        identifier: str,
        metadata: dict[str, Any] | None = None,
        is_primary: bool | None = None,
        verified_at: datetime | None = None,
    ) -> Identity:
        """Insert a new identity; primary defaults to "first of its kind"."""
        log = logger.bind(user_id=user_id, identity_type=kind.name, identifier=identifier)
        if is_primary is None:
            is_primary = not await self._store.has_identity_of_type(user_id, kind.name)
        try:
            identity = await self._store.create_identity(
                user_id=user_id,
                identity_type=kind.name,
                identifier=identifier,
                is_primary=is_primary,
                verified_at=verified_at or self._time.utcnow(),
                metadata=metadata,
            )
        except PersistenceError as exc:
            if exc.is_unique_violation:
                log.warning("identity_conflict_on_insert")
                raise IdentityConflictError(kind.name, identifier) from exc
            raise

        log.info("identity_linked", identity_id=identity.id, is_primary=is_primary)
        return identity
