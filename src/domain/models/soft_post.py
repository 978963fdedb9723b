"""Soft post annotation model (read-only in this service)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SoftPostAuthor:
    """Public profile of the app user behind a soft post."""

    id: str
    display_name: str | None = None
    handle: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class SoftPost:
    """Off-chain annotation attached to a Hive post.

    Attributes:
        author: Literal post author.
        permlink: Post permlink.
        type: Annotation type.
        metadata: Free-form annotation payload.
        user: App user who owns the annotation.
        safe_user: Alias identifier the post can also be resolved by.
    """

    author: str
    permlink: str
    user: SoftPostAuthor
    type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    safe_user: str | None = None

    @property
    def key(self) -> str:
        return f"{self.author}/{self.permlink}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "author": self.author,
            "permlink": self.permlink,
            "type": self.type,
            "metadata": self.metadata,
            "user": {
                "id": self.user.id,
                "display_name": self.user.display_name,
                "handle": self.user.handle,
                "avatar_url": self.user.avatar_url,
            },
        }
