"""
Application layer - Use cases and orchestration for Userbase.

This layer contains:
- Application services (sessions, challenges, linking, overlays, reconciliation)
- Port definitions (abstract interfaces for infrastructure)

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, api
"""
