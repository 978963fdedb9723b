"""
Pytest configuration and shared fixtures for userbase tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Collaborators are the in-memory stubs from src/infrastructure/stubs/
- Time comes from FakeTimeAuthority, never the system clock
"""

from datetime import datetime, timezone

import pytest

from src.infrastructure.stubs import (
    AlertDeliveryStub,
    IdentityStoreStub,
    LedgerBroadcasterStub,
    LedgerReaderStub,
    SignatureVerifierStub,
)
from tests.helpers.fake_time_authority import FakeTimeAuthority

FROZEN_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from src import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Clock frozen at 2026-03-01T12:00:00Z."""
    return FakeTimeAuthority(frozen_at=FROZEN_AT)


@pytest.fixture
def identity_store() -> IdentityStoreStub:
    return IdentityStoreStub()


@pytest.fixture
def ledger_reader() -> LedgerReaderStub:
    return LedgerReaderStub()


@pytest.fixture
def ledger_broadcaster() -> LedgerBroadcasterStub:
    return LedgerBroadcasterStub(account="skatehive")


@pytest.fixture
def alert_delivery() -> AlertDeliveryStub:
    return AlertDeliveryStub()


@pytest.fixture
def signature_verifier() -> SignatureVerifierStub:
    return SignatureVerifierStub()
