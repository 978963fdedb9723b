"""Linked identity domain model.

An Identity ties one external account to one app user. Three kinds are
supported, each carrying its own normalization and validation rules:

- hive: lowercase Hive handle
- evm: lowercase 0x-prefixed EVM address
- farcaster: numeric FID string

Invariant:
    (type, identifier) is unique across all users; at most one owner.

Normalization is idempotent: normalizing an already-normalized identifier
returns the same string, so differently-cased inputs collapse to one key.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, ClassVar, Mapping

from eth_utils import is_address

from src.domain.errors.userbase import ValidationError

HIVE_HANDLE_MIN_LENGTH = 3
HIVE_HANDLE_MAX_LENGTH = 16

_HIVE_ALLOWED = re.compile(r"^[a-z0-9.-]+$")
_FID_PATTERN = re.compile(r"^[0-9]+$")


def validate_hive_username_format(handle: str) -> str | None:
    """Check a lowercase Hive handle against the chain's account name rules.

    Args:
        handle: Candidate handle, already lowercased.

    Returns:
        None when valid, otherwise a short reason string.
    """
    if len(handle) < HIVE_HANDLE_MIN_LENGTH:
        return "too short"
    if len(handle) > HIVE_HANDLE_MAX_LENGTH:
        return "too long"
    if not _HIVE_ALLOWED.match(handle):
        return "invalid characters"
    if not ("a" <= handle[0] <= "z"):
        return "must start with a letter"
    if not handle[-1].isalnum():
        return "must end with a letter or digit"
    for pair in ("..", "--", ".-", "-."):
        if pair in handle:
            return "adjacent separators"
    for segment in handle.split("."):
        if len(segment) < HIVE_HANDLE_MIN_LENGTH:
            return "segment too short"
    return None


class IdentityKind(ABC):
    """One variant of the identity tagged union.

    Adding a new identity type means adding one subclass and registering it
    in IDENTITY_KINDS; no caller branches on the type string.

    Attributes:
        name: Wire value of the type (``hive``, ``evm``, ``farcaster``).
        store_field: Identity Store column holding the identifier.
        invalid_message: Client-facing error for a malformed identifier.
    """

    name: ClassVar[str]
    store_field: ClassVar[str]
    invalid_message: ClassVar[str]

    @abstractmethod
    def normalize(self, raw: str) -> str:
        """Normalize and validate a raw identifier.

        Args:
            raw: Identifier as supplied by the client.

        Returns:
            The canonical identifier.

        Raises:
            ValidationError: If the identifier is malformed.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HiveIdentityKind(IdentityKind):
    """Hive account handle."""

    name = "hive"
    store_field = "handle"
    invalid_message = "Invalid Hive handle"

    def normalize(self, raw: str) -> str:
        handle = raw.strip().lower()
        if validate_hive_username_format(handle) is not None:
            raise ValidationError(self.invalid_message)
        return handle


class EvmIdentityKind(IdentityKind):
    """EVM account address.

    Mixed-case input must carry a valid EIP-55 checksum; all-lowercase and
    all-uppercase hex are accepted as-is. The stored form is lowercase.
    """

    name = "evm"
    store_field = "address"
    invalid_message = "Invalid address"

    def normalize(self, raw: str) -> str:
        address = raw.strip()
        if not address.startswith("0x") or not is_address(address):
            raise ValidationError(self.invalid_message)
        return address.lower()


class FarcasterIdentityKind(IdentityKind):
    """Farcaster FID, kept as a decimal string."""

    name = "farcaster"
    store_field = "external_id"
    invalid_message = "Invalid Farcaster fid"

    def normalize(self, raw: str) -> str:
        fid = raw.strip()
        if not _FID_PATTERN.match(fid):
            raise ValidationError(self.invalid_message)
        return fid


HIVE = HiveIdentityKind()
EVM = EvmIdentityKind()
FARCASTER = FarcasterIdentityKind()

IDENTITY_KINDS: Mapping[str, IdentityKind] = MappingProxyType(
    {kind.name: kind for kind in (HIVE, EVM, FARCASTER)}
)


def get_identity_kind(name: Any) -> IdentityKind:
    """Resolve a wire type string to its identity kind.

    Raises:
        ValidationError: If the type is missing or unsupported.
    """
    if not isinstance(name, str) or name not in IDENTITY_KINDS:
        raise ValidationError("Unsupported identity type")
    return IDENTITY_KINDS[name]


@dataclass(frozen=True)
class Identity:
    """A verified external identity owned by one user.

    Attributes:
        id: Store-assigned identifier.
        user_id: Owning user.
        type: Identity kind name.
        identifier: Normalized identifier for the kind.
        is_primary: Whether this is the user's primary identity of its kind.
        verified_at: When ownership was last proven.
        metadata: Free-form provider data.
        created_at: When the row was created.
    """

    id: str
    user_id: str
    type: str
    identifier: str
    is_primary: bool = False
    verified_at: datetime | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "identifier": self.identifier,
            "is_primary": self.is_primary,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
