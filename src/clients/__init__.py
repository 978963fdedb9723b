"""Client-side access to the userbase overlay endpoints."""

from src.clients.overlay_cache import CacheEntry, OverlayCache, OverlayKey
from src.clients.soft_overlay_client import PostRef, SoftOverlayClient, SoftOverlayError

__all__: list[str] = [
    "CacheEntry",
    "OverlayCache",
    "OverlayKey",
    "PostRef",
    "SoftOverlayClient",
    "SoftOverlayError",
]
