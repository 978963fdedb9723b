"""
Infrastructure layer - External adapters for Userbase.

This layer contains:
- Supabase adapter (Identity Store)
- Hive adapters (account read, vote broadcast)
- Webhook alert delivery
- In-memory stubs for development and tests
- Observability (structlog configuration, correlation ids)

IMPORT RULES:
- CAN import from: domain, application
- Implements ports defined in application layer
"""
