"""Merge preview request/response models."""

from typing import Any, Optional

from pydantic import BaseModel


class MergePreviewRequest(BaseModel):
    type: Optional[str] = None
    identifier: Any = None


class MergePreviewResponse(BaseModel):
    """One of three shapes; unset fields are omitted from the response.

    - ``{exists: false}``: nobody owns the identity
    - ``{exists: true, same_user: true}``: the caller already owns it
    - ``{exists: true, same_user: false, source_user_id, counts}``: another
      user owns it, with their per-table row counts
    """

    exists: bool
    same_user: Optional[bool] = None
    source_user_id: Optional[str] = None
    counts: Optional[dict[str, int]] = None
