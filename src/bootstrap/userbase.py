"""Bootstrap wiring for userbase adapters.

Each adapter is a lazily built singleton chosen from UserbaseConfig:
- Identity Store: Supabase; missing configuration raises ConfigError so
  every store-backed request fails with 500 "Missing Supabase configuration"
- Ledger reader: Hive JSON-RPC over httpx
- Ledger broadcaster: hive-nectar, or None when no system account is set
- Signature verifier: per-kind dispatch; EVM wallets always, Hive posting
  keys only when hive-nectar is installed
- Alerts: webhook, disabled when no URL is set

Tests replace any of them with set_*() and restore defaults with
reset_userbase_adapters().
"""

from __future__ import annotations

import importlib.util

from structlog import get_logger

from src.application.ports.alert_delivery import AlertDeliveryProtocol
from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.ledger import LedgerBroadcasterProtocol, LedgerReaderProtocol
from src.application.ports.signature_verifier import SignatureVerifierProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.config.userbase_config import UserbaseConfig
from src.domain.models.identity import EVM, HIVE
from src.infrastructure.adapters.alerts import WebhookAlertDelivery
from src.infrastructure.adapters.ledger import (
    HiveAccountReader,
    HiveSignatureVerifier,
    NectarVoteBroadcaster,
)
from src.infrastructure.adapters.persistence import SupabaseIdentityStore
from src.infrastructure.adapters.signatures import (
    EvmSignatureVerifier,
    KindSignatureVerifier,
)
from src.infrastructure.adapters.time import SystemTimeAuthority

logger = get_logger()

_config: UserbaseConfig | None = None
_identity_store: IdentityStoreProtocol | None = None
_ledger_reader: LedgerReaderProtocol | None = None
_ledger_broadcaster: LedgerBroadcasterProtocol | None = None
_broadcaster_resolved = False
_signature_verifier: SignatureVerifierProtocol | None = None
_verifier_resolved = False
_alert_delivery: AlertDeliveryProtocol | None = None
_time_authority: TimeAuthorityProtocol | None = None


def get_userbase_config() -> UserbaseConfig:
    """Get service configuration, read from the environment on first use."""
    global _config
    if _config is None:
        _config = UserbaseConfig.from_environment()
    return _config


def set_userbase_config(config: UserbaseConfig) -> None:
    global _config
    _config = config


def get_identity_store() -> IdentityStoreProtocol:
    """Get the Identity Store adapter.

    Raises:
        ConfigError: If Supabase URL or service key is missing.
    """
    global _identity_store
    if _identity_store is None:
        supabase_config = get_userbase_config().require_supabase()
        _identity_store = SupabaseIdentityStore.from_config(supabase_config)
        logger.info("identity_store_configured", adapter="supabase")
    return _identity_store


def set_identity_store(store: IdentityStoreProtocol) -> None:
    global _identity_store
    _identity_store = store


def get_ledger_reader() -> LedgerReaderProtocol:
    global _ledger_reader
    if _ledger_reader is None:
        config = get_userbase_config()
        _ledger_reader = HiveAccountReader(
            nodes=config.hive_api_nodes,
            timeout_seconds=config.hive_api_timeout_seconds,
        )
    return _ledger_reader


def set_ledger_reader(reader: LedgerReaderProtocol) -> None:
    global _ledger_reader
    _ledger_reader = reader


def get_ledger_broadcaster() -> LedgerBroadcasterProtocol | None:
    """Get the system broadcaster, or None when no account/key is configured."""
    global _ledger_broadcaster, _broadcaster_resolved
    if not _broadcaster_resolved:
        config = get_userbase_config()
        if config.broadcaster is not None:
            _ledger_broadcaster = NectarVoteBroadcaster(
                account=config.broadcaster.account,
                posting_key=config.broadcaster.posting_key,
                nodes=config.hive_api_nodes,
            )
        _broadcaster_resolved = True
    return _ledger_broadcaster


def set_ledger_broadcaster(broadcaster: LedgerBroadcasterProtocol | None) -> None:
    global _ledger_broadcaster, _broadcaster_resolved
    _ledger_broadcaster = broadcaster
    _broadcaster_resolved = True


def get_signature_verifier() -> SignatureVerifierProtocol | None:
    """Get the challenge signature verifier.

    Kinds without a usable verifier are left out, so linking them fails with
    ConfigError while the other kinds keep working.
    """
    global _signature_verifier, _verifier_resolved
    if not _verifier_resolved:
        verifiers: dict[str, SignatureVerifierProtocol] = {EVM.name: EvmSignatureVerifier()}
        if importlib.util.find_spec("nectargraphenebase") is not None:
            verifiers[HIVE.name] = HiveSignatureVerifier(get_ledger_reader())
        else:
            logger.warning("signature_verifier_unavailable", kind=HIVE.name, missing="hive-nectar")
        _signature_verifier = KindSignatureVerifier(verifiers)
        _verifier_resolved = True
    return _signature_verifier


def set_signature_verifier(verifier: SignatureVerifierProtocol | None) -> None:
    global _signature_verifier, _verifier_resolved
    _signature_verifier = verifier
    _verifier_resolved = True


def get_alert_delivery() -> AlertDeliveryProtocol:
    global _alert_delivery
    if _alert_delivery is None:
        _alert_delivery = WebhookAlertDelivery(get_userbase_config().alert_webhook_url)
    return _alert_delivery


def set_alert_delivery(alerts: AlertDeliveryProtocol) -> None:
    global _alert_delivery
    _alert_delivery = alerts


def get_time_authority() -> TimeAuthorityProtocol:
    global _time_authority
    if _time_authority is None:
        _time_authority = SystemTimeAuthority()
    return _time_authority


def set_time_authority(time_authority: TimeAuthorityProtocol) -> None:
    global _time_authority
    _time_authority = time_authority


def reset_userbase_adapters() -> None:
    """Drop every cached adapter and the cached configuration."""
    global _config, _identity_store, _ledger_reader, _ledger_broadcaster
    global _broadcaster_resolved, _signature_verifier, _verifier_resolved
    global _alert_delivery, _time_authority
    _config = None
    _identity_store = None
    _ledger_reader = None
    _ledger_broadcaster = None
    _broadcaster_resolved = False
    _signature_verifier = None
    _verifier_resolved = False
    _alert_delivery = None
    _time_authority = None
