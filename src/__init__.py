"""
Userbase - Multi-identity accounts and soft-action reconciliation

Lets one app user own several external identities (Hive handle, EVM
address, Farcaster FID), proves ownership through signed challenges,
manages refresh-token sessions, and records votes optimistically before
they are broadcast to the Hive blockchain.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
