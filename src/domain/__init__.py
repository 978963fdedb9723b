"""
Domain layer - Pure business logic for Userbase.

This layer contains:
- Domain models (identities, sessions, challenges, soft votes and posts)
- Domain errors

CRITICAL: This layer must NOT import from application, infrastructure, or api.
"""

from src.domain.exceptions import UserbaseError

__all__: list[str] = ["UserbaseError"]
