from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PlaylistItem:
    """One entry of a remote playlist. `item_id` is remote-assigned; `video_id` is the reconciliation key."""

    item_id: str
    video_id: str
    position: int

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> Optional["PlaylistItem"]:
        item_id = item.get("id")
        video_id = (item.get("contentDetails") or {}).get("videoId") or (
            (item.get("snippet") or {}).get("resourceId") or {}
        ).get("videoId")
        if not isinstance(item_id, str) or not isinstance(video_id, str):
            return None

        position = (item.get("snippet") or {}).get("position")
        return cls(
            item_id=item_id,
            video_id=video_id,
            position=position if isinstance(position, int) else 0,
        )


@dataclass(frozen=True)
class LatestVideo:
    video_id: str
    published_at: Optional[str] = None


@dataclass(frozen=True)
class ReconciliationResult:
    added: int = 0
    removed: int = 0
    reordered: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.reordered)
