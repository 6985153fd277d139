"""
reconcile.py

Make a remote playlist match a target ordering of video ids.

Two phases:
1) Set diff: add what is missing (appended, target order), remove what is
   not wanted (current order).
2) Order fix: walk the target and reposition every element that is not at
   its index.

Errors from individual add/remove/reposition calls are not caught here. A
failure aborts the rest of the run and leaves the playlist partially
converged; the caller decides whether to continue with other playlists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from subscriptarr.api import YouTubeApi
from subscriptarr.logger import get_logger
from subscriptarr.models import PlaylistItem, ReconciliationResult
from subscriptarr.progress import ProgressSink

logger = get_logger(__name__)


@dataclass(frozen=True)
class SetDiff:
    to_add: List[str]
    to_remove: List[str]
    # video_id -> every item carrying it (a video can appear more than once)
    items_by_video: Dict[str, List[PlaylistItem]]


def plan_set_diff(
    current_items: Sequence[PlaylistItem], target_ids: Sequence[str]
) -> SetDiff:
    """
    to_add keeps target order and is not de-duplicated.
    to_remove keeps current order and lists each unwanted video once.
    """
    items_by_video: Dict[str, List[PlaylistItem]] = {}
    for it in current_items:
        items_by_video.setdefault(it.video_id, []).append(it)

    target_set = set(target_ids)
    to_add = [v for v in target_ids if v not in items_by_video]
    to_remove = [v for v in items_by_video if v not in target_set]

    return SetDiff(to_add=to_add, to_remove=to_remove, items_by_video=items_by_video)


def _position_index(
    items: Sequence[PlaylistItem],
) -> Tuple[Dict[str, Tuple[str, int]], List[str]]:
    """video_id -> (item_id, fetched position) for the first occurrence, plus item ids in remote order."""
    ordered = sorted(items, key=lambda it: it.position)
    by_video: Dict[str, Tuple[str, int]] = {}
    for it in ordered:
        by_video.setdefault(it.video_id, (it.item_id, it.position))
    return by_video, [it.item_id for it in ordered]


class Reconciler:
    def __init__(self, api: YouTubeApi, sink: ProgressSink):
        self.api = api
        self.sink = sink

    async def reconcile(
        self,
        token: str,
        playlist_id: str,
        current_items: Sequence[PlaylistItem],
        target_ids: Sequence[str],
        simulate: bool = False,
    ) -> ReconciliationResult:
        diff = plan_set_diff(current_items, target_ids)

        # ---- phase 1: set diff ----
        for video_id in diff.to_add:
            if simulate:
                self.sink.info(f"[DRY-RUN] Would add: {video_id}")
                continue
            await self.api.add_item(token, playlist_id, video_id)
            self.sink.info(f"Added: {video_id}")

        for video_id in diff.to_remove:
            for it in diff.items_by_video[video_id]:
                if simulate:
                    self.sink.info(
                        f"[DRY-RUN] Would remove: {video_id} (playlistItemId={it.item_id})"
                    )
                    continue
                await self.api.remove_item(token, playlist_id, it.item_id)
                self.sink.info(f"Removed: {video_id} (playlistItemId={it.item_id})")

        # ---- phase 2: order fix ----
        if simulate:
            snapshot: Sequence[PlaylistItem] = current_items
        else:
            snapshot = await self.api.list_playlist_items(token, playlist_id)

        reordered = await self._fix_order(
            token, playlist_id, snapshot, target_ids, simulate
        )

        result = ReconciliationResult(
            added=len(diff.to_add),
            removed=len(diff.to_remove),
            reordered=reordered,
        )
        logger.debug(
            f"Reconciled {playlist_id}: added={result.added} removed={result.removed} "
            f"reordered={result.reordered} simulate={simulate}"
        )
        return result

    async def _fix_order(
        self,
        token: str,
        playlist_id: str,
        snapshot: Sequence[PlaylistItem],
        target_ids: Sequence[str],
        simulate: bool,
    ) -> int:
        by_video, order = _position_index(snapshot)
        reordered = 0

        for i, video_id in enumerate(target_ids):
            entry = by_video.get(video_id)
            if entry is None:
                # Absent from the playlist (e.g. planned add in a dry run); nothing to move.
                continue

            item_id, fetched_position = entry
            current = order.index(item_id)
            dest = min(i, len(order) - 1)

            # `order` tracks moves already issued in this pass, so an element
            # displaced by an earlier move is still put back in place.
            if fetched_position == i and current == dest:
                continue

            if simulate:
                self.sink.info(f"[DRY-RUN] Would reorder: {video_id} -> position {i}")
            else:
                await self.api.reposition_item(token, playlist_id, item_id, video_id, dest)
                self.sink.info(f"Reordered: {video_id} -> position {dest}")

            order.pop(current)
            order.insert(dest, item_id)
            reordered += 1

        return reordered

    async def sync_playlist(
        self,
        token: str,
        playlist_id: str,
        target_ids: Sequence[str],
        simulate: bool = False,
    ) -> ReconciliationResult:
        """Fetch the playlist's current items and reconcile them against `target_ids`."""
        current = await self.api.list_playlist_items(token, playlist_id)
        return await self.reconcile(token, playlist_id, current, target_ids, simulate)
