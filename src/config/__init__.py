"""Configuration module for Userbase.

This module provides centralized configuration for the service.

Available Configurations:
- UserbaseConfig: Store, Ledger, session, worker and logging settings
"""

from src.config.userbase_config import (
    TEST_USERBASE_CONFIG,
    BroadcasterConfig,
    SupabaseConfig,
    UserbaseConfig,
)

__all__ = [
    "BroadcasterConfig",
    "SupabaseConfig",
    "TEST_USERBASE_CONFIG",
    "UserbaseConfig",
]
