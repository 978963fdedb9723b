"""
API layer - FastAPI routes and HTTP concerns for the userbase service.

This layer contains:
- FastAPI route definitions
- Request/Response DTOs
- Session cookie and internal token authentication
- HTTP middleware and error envelope handlers

IMPORT RULES:
- CAN import from: application, domain, bootstrap
- Adapters are reached through src.bootstrap, never constructed here
"""

__all__: list[str] = []
