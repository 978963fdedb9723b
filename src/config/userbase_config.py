"""Userbase service configuration.

All values come from environment variables (a ``.env`` file is loaded by the
API entry point and the scripts before this module reads them).

Environment Variables (Store):
- SUPABASE_URL or NEXT_PUBLIC_SUPABASE_URL: Supabase project URL (required)
- SUPABASE_SERVICE_ROLE_KEY: Supabase service role key (required)

Environment Variables (Ledger):
- HIVE_API_NODES: Comma-separated Hive RPC nodes (default: https://api.hive.blog)
- HIVE_API_TIMEOUT_SECONDS: Account read timeout (default: 10)
- DEFAULT_HIVE_POSTING_ACCOUNT: System broadcaster account (optional)
- DEFAULT_HIVE_POSTING_KEY: System broadcaster posting key (optional)

Environment Variables (Service):
- USERBASE_INTERNAL_TOKEN: Guard secret for the retry endpoint (unset = open)
- USERBASE_ALERT_WEBHOOK_URL: Alert webhook (unset = alerts off)
- USERBASE_SESSION_TTL_DAYS: Session lifetime in days (default: 30)
- SOFT_VOTE_LEASE_SECONDS: Claim lease for the retry worker (default: 300)
- ENVIRONMENT: production or development (default: development)
- LOG_LEVEL: Log level (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from src.domain.errors.userbase import ConfigError
from src.domain.models.session import DEFAULT_SESSION_TTL_DAYS

DEFAULT_HIVE_API_NODE = "https://api.hive.blog"
DEFAULT_HIVE_API_TIMEOUT_SECONDS = 10.0
DEFAULT_SOFT_VOTE_LEASE_SECONDS = 300


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_optional_env(*keys: str) -> str | None:
    """Return the first non-blank value among several variable names."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return None


@dataclass(frozen=True)
class SupabaseConfig:
    """Supabase connection configuration."""

    url: str
    service_key: str


@dataclass(frozen=True)
class BroadcasterConfig:
    """System broadcaster identity used for all reconciled votes.

    The posting key is a secret: it is never logged and is excluded from
    the dataclass repr.
    """

    account: str
    posting_key: str = field(repr=False)


@dataclass(frozen=True)
class UserbaseConfig:
    """Configuration for the userbase service.

    Attributes:
        supabase: Store connection, None when not configured.
        broadcaster: System broadcaster identity, None when not configured.
        hive_api_nodes: Hive RPC nodes, tried in order.
        hive_api_timeout_seconds: Timeout for Ledger account reads.
        internal_token: Shared secret guarding the retry endpoint.
        alert_webhook_url: Destination for retry failure alerts.
        session_ttl_days: Lifetime of issued sessions.
        soft_vote_lease_seconds: How long a worker's claim on a soft vote lasts.
        environment: Deployment environment name.
        log_level: Root log level name.
    """

    supabase: SupabaseConfig | None = None
    broadcaster: BroadcasterConfig | None = None
    hive_api_nodes: tuple[str, ...] = (DEFAULT_HIVE_API_NODE,)
    hive_api_timeout_seconds: float = DEFAULT_HIVE_API_TIMEOUT_SECONDS
    internal_token: str | None = None
    alert_webhook_url: str | None = None
    session_ttl_days: int = DEFAULT_SESSION_TTL_DAYS
    soft_vote_lease_seconds: int = DEFAULT_SOFT_VOTE_LEASE_SECONDS
    environment: str = "development"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.hive_api_nodes:
            raise ValueError("hive_api_nodes must not be empty")
        if self.hive_api_timeout_seconds <= 0:
            raise ValueError(
                "hive_api_timeout_seconds must be positive, "
                f"got {self.hive_api_timeout_seconds}"
            )
        if self.session_ttl_days < 1:
            raise ValueError(
                f"session_ttl_days must be at least 1, got {self.session_ttl_days}"
            )
        if self.soft_vote_lease_seconds < 1:
            raise ValueError(
                "soft_vote_lease_seconds must be at least 1, "
                f"got {self.soft_vote_lease_seconds}"
            )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def require_supabase(self) -> SupabaseConfig:
        """Return the store configuration or fail the request.

        Raises:
            ConfigError: If URL or service key is missing.
        """
        if self.supabase is None:
            raise ConfigError("Missing Supabase configuration")
        return self.supabase

    def require_broadcaster(self) -> BroadcasterConfig:
        """Return the broadcaster identity or fail the run.

        Raises:
            ConfigError: If account or posting key is missing.
        """
        if self.broadcaster is None:
            raise ConfigError("Default Hive posting account not configured")
        return self.broadcaster

    @classmethod
    def from_environment(cls) -> "UserbaseConfig":
        """Create config from environment variables with defaults."""
        supabase_url = _get_optional_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
        supabase_key = _get_optional_env("SUPABASE_SERVICE_ROLE_KEY")
        supabase = (
            SupabaseConfig(url=supabase_url, service_key=supabase_key)
            if supabase_url and supabase_key
            else None
        )

        account = _get_optional_env("DEFAULT_HIVE_POSTING_ACCOUNT")
        posting_key = _get_optional_env("DEFAULT_HIVE_POSTING_KEY")
        broadcaster = (
            BroadcasterConfig(account=account, posting_key=posting_key)
            if account and posting_key
            else None
        )

        nodes = tuple(
            node.strip()
            for node in os.environ.get("HIVE_API_NODES", "").split(",")
            if node.strip()
        )

        return cls(
            supabase=supabase,
            broadcaster=broadcaster,
            hive_api_nodes=nodes or (DEFAULT_HIVE_API_NODE,),
            hive_api_timeout_seconds=_get_float_env(
                "HIVE_API_TIMEOUT_SECONDS", DEFAULT_HIVE_API_TIMEOUT_SECONDS
            ),
            internal_token=_get_optional_env("USERBASE_INTERNAL_TOKEN"),
            alert_webhook_url=_get_optional_env("USERBASE_ALERT_WEBHOOK_URL"),
            session_ttl_days=_get_int_env(
                "USERBASE_SESSION_TTL_DAYS", DEFAULT_SESSION_TTL_DAYS
            ),
            soft_vote_lease_seconds=_get_int_env(
                "SOFT_VOTE_LEASE_SECONDS", DEFAULT_SOFT_VOTE_LEASE_SECONDS
            ),
            environment=os.environ.get("ENVIRONMENT", "development"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


# Test configuration with a fake store and broadcaster.
TEST_USERBASE_CONFIG = UserbaseConfig(
    supabase=SupabaseConfig(url="http://localhost:54321", service_key="test-key"),
    broadcaster=BroadcasterConfig(account="skatehive", posting_key="test-posting-key"),
    environment="test",
)
