"""Identity ownership challenge.

A challenge binds a user, an identity and a single-use nonce into a message
the user signs with the identity's key. The message text is the signing
contract: it is built in a fixed line order and must not be reformatted
between issuance and verification. The nonce is only recoverable by parsing
the message.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.domain.models.timestamps import isoformat_z

CHALLENGE_TTL = timedelta(minutes=10)
NONCE_BYTES = 16

CHALLENGE_BANNER = "Skatehive wants to link your Hive account to your app account."
WALLET_CHALLENGE_BANNER = "Skatehive wants to link your wallet to your app account."
CHALLENGE_FOOTER = "If you did not request this, you can ignore this message."

_NONCE_LINE = re.compile(r"^Nonce: ([0-9a-f]{32})$", re.MULTILINE)


def generate_nonce() -> str:
    """Return 16 cryptographically random bytes as 32 lowercase hex chars."""
    return secrets.token_hex(NONCE_BYTES)


def build_challenge_message(
    user_id: str,
    handle: str,
    nonce: str,
    issued_at: datetime,
) -> str:
    """Build the deterministic challenge text.

    Args:
        user_id: App user requesting the link.
        handle: Normalized Hive handle (without ``@``).
        nonce: Hex nonce from generate_nonce().
        issued_at: Issue time, rendered as ISO 8601 UTC.

    Returns:
        Multi-line message to be signed.
    """
    return _render(CHALLENGE_BANNER, user_id, f"Hive: @{handle}", nonce, issued_at)


def build_wallet_challenge_message(
    user_id: str,
    address: str,
    nonce: str,
    issued_at: datetime,
) -> str:
    """Build the challenge text an EVM wallet signs (EIP-191 personal_sign)."""
    return _render(WALLET_CHALLENGE_BANNER, user_id, f"Address: {address}", nonce, issued_at)


def _render(
    banner: str, user_id: str, identity_line: str, nonce: str, issued_at: datetime
) -> str:
    return "\n".join(
        [
            banner,
            "",
            f"User ID: {user_id}",
            identity_line,
            f"Nonce: {nonce}",
            f"Issued at: {isoformat_z(issued_at)}",
            "",
            CHALLENGE_FOOTER,
        ]
    )


def parse_challenge_nonce(message: str) -> str | None:
    """Extract the nonce from a challenge message, or None if absent."""
    match = _NONCE_LINE.search(message)
    return match.group(1) if match else None


@dataclass(frozen=True)
class IdentityChallenge:
    """A persisted, single-use ownership challenge.

    Attributes:
        id: Store-assigned identifier.
        user_id: User the challenge was issued to.
        type: Identity kind name.
        identifier: Normalized identifier being claimed.
        nonce: Hex nonce embedded in the message.
        message: Exact text to be signed.
        created_at: Issue time.
        expires_at: created_at plus CHALLENGE_TTL.
        consumed_at: When the challenge was used, if ever.
    """

    id: str
    user_id: str
    type: str
    identifier: str
    nonce: str
    message: str
    created_at: datetime
    expires_at: datetime
    consumed_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
