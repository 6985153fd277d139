"""
api.py

Typed YouTube Data API surface.

Every call goes: cache (reads only) -> scheduler (quota, concurrency, spacing)
-> retry -> transport. Writes are never cached and invalidate any cached read
of the collection they touch.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from subscriptarr import config
from subscriptarr.cache import ResponseCache, generate_key
from subscriptarr.logger import get_logger
from subscriptarr.models import LatestVideo, PlaylistItem
from subscriptarr.progress import ProgressSink
from subscriptarr.retry import run_with_retry
from subscriptarr.scheduler import QuotaScheduler
from subscriptarr.transport import Transport

logger = get_logger(__name__)


def _playlist_items_key(playlist_id: str) -> str:
    return generate_key(config.CACHE_KEY_PLAYLIST_ITEMS, {"playlistId": playlist_id})


def _my_playlists_key() -> str:
    return generate_key(config.CACHE_KEY_PLAYLISTS, {"mine": True})


class YouTubeApi:
    def __init__(
        self,
        transport: Transport,
        scheduler: QuotaScheduler,
        cache: ResponseCache,
        *,
        max_attempts: int = config.DEFAULT_MAX_ATTEMPTS,
        base_delay: float = config.DEFAULT_BASE_DELAY_SEC,
        max_delay: float = config.DEFAULT_MAX_DELAY_SEC,
        sink: Optional[ProgressSink] = None,
    ):
        self.transport = transport
        self.scheduler = scheduler
        self.cache = cache
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sink = sink

    # ------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------

    async def _call(
        self,
        method: str,
        path: str,
        token: str,
        *,
        cost: int,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        name = f"{method} {path}"

        async def attempt() -> Dict[str, Any]:
            return await self.transport.request(
                method, path, token=token, params=params, body=body
            )

        async def guarded() -> Dict[str, Any]:
            return await run_with_retry(
                attempt,
                self.max_attempts,
                self.base_delay,
                max_delay=self.max_delay,
                name=name,
                on_retry=self._report_retry(name),
            )

        return await self.scheduler.execute(guarded, cost)

    def _report_retry(self, name: str):
        if self.sink is None:
            return None
        sink = self.sink

        def report(error: Exception, attempt: int, delay: float) -> None:
            sink.warn(
                f"Retrying {name} (attempt {attempt}/{self.max_attempts}) "
                f"in {delay:.2f}s: {error}"
            )

        return report

    async def _paginate(
        self, path: str, token: str, params: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page_token: Optional[str] = None

        while True:
            resp = await self._call(
                "GET",
                path,
                token,
                cost=config.QUOTA_COST_LIST,
                params={**params, "pageToken": page_token},
            )
            items.extend(resp.get("items") or [])

            page_token = resp.get("nextPageToken")
            if not page_token:
                break

        return items

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    async def list_subscriptions(
        self, token: str, use_cache: bool = True
    ) -> List[Dict[str, Any]]:
        async def fetch() -> List[Dict[str, Any]]:
            items = await self._paginate(
                "/subscriptions",
                token,
                {"part": "snippet", "mine": True, "maxResults": config.YOUTUBE_PAGE_SIZE},
            )
            logger.info(f"Fetched {len(items)} subscriptions")
            return items

        if not use_cache:
            return await fetch()

        key = generate_key(config.CACHE_KEY_SUBSCRIPTIONS, {"mine": True})
        return await self.cache.wrap(key, fetch)

    async def get_channel(
        self, token: str, channel_id: str, use_cache: bool = True
    ) -> Optional[Dict[str, Any]]:
        key = generate_key(config.CACHE_KEY_CHANNEL, {"id": channel_id})

        if use_cache:
            cached = await self.cache.get(key)
            if cached:
                return cached

        resp = await self._call(
            "GET",
            "/channels",
            token,
            cost=config.QUOTA_COST_LIST,
            params={"part": "contentDetails,snippet", "id": channel_id},
        )
        items = resp.get("items") or []
        channel = items[0] if items else None

        # Unknown channels are not cached so a later run can pick them up.
        if channel:
            await self.cache.set(key, channel)
        return channel

    async def get_channels(self, token: str, channel_ids: List[str]) -> List[Dict[str, Any]]:
        """Batch channel lookup, 50 ids per request."""
        results: List[Dict[str, Any]] = []
        step = config.YOUTUBE_PAGE_SIZE

        for i in range(0, len(channel_ids), step):
            chunk = channel_ids[i : i + step]
            resp = await self._call(
                "GET",
                "/channels",
                token,
                cost=config.QUOTA_COST_LIST,
                params={"part": "contentDetails,snippet", "id": ",".join(chunk)},
            )
            results.extend(resp.get("items") or [])

        return results

    async def list_playlist_items(
        self, token: str, playlist_id: str, use_cache: bool = False
    ) -> List[PlaylistItem]:
        async def fetch() -> List[Dict[str, Any]]:
            return await self._paginate(
                "/playlistItems",
                token,
                {
                    "part": "snippet,contentDetails",
                    "playlistId": playlist_id,
                    "maxResults": config.YOUTUBE_PAGE_SIZE,
                },
            )

        if use_cache:
            raw = await self.cache.wrap(_playlist_items_key(playlist_id), fetch)
        else:
            raw = await fetch()

        items = []
        for it in raw:
            parsed = PlaylistItem.from_api(it)
            if parsed is not None:
                items.append(parsed)
        return items

    async def list_my_playlists(
        self, token: str, use_cache: bool = False
    ) -> List[Dict[str, Any]]:
        async def fetch() -> List[Dict[str, Any]]:
            return await self._paginate(
                "/playlists",
                token,
                {"part": "snippet", "mine": True, "maxResults": config.YOUTUBE_PAGE_SIZE},
            )

        if not use_cache:
            return await fetch()
        return await self.cache.wrap(_my_playlists_key(), fetch)

    async def find_playlist_by_title(
        self, token: str, title: str, use_cache: bool = False
    ) -> Optional[Dict[str, Any]]:
        if use_cache:
            playlists = await self.list_my_playlists(token, use_cache=True)
            for item in playlists:
                if (item.get("snippet") or {}).get("title") == title:
                    return item
            return None

        # Uncached: stop paging as soon as the title is found.
        page_token: Optional[str] = None
        while True:
            resp = await self._call(
                "GET",
                "/playlists",
                token,
                cost=config.QUOTA_COST_LIST,
                params={
                    "part": "snippet",
                    "mine": True,
                    "maxResults": config.YOUTUBE_PAGE_SIZE,
                    "pageToken": page_token,
                },
            )
            for item in resp.get("items") or []:
                if (item.get("snippet") or {}).get("title") == title:
                    return item

            page_token = resp.get("nextPageToken")
            if not page_token:
                return None

    async def get_recent_videos(
        self, token: str, uploads_playlist_id: str, limit: int = config.DEFAULT_LIMIT
    ) -> List[str]:
        limit = max(1, min(limit, config.MAX_LIMIT))
        resp = await self._call(
            "GET",
            "/playlistItems",
            token,
            cost=config.QUOTA_COST_LIST,
            params={
                "part": "contentDetails",
                "playlistId": uploads_playlist_id,
                "maxResults": limit,
            },
        )
        ids = [
            (it.get("contentDetails") or {}).get("videoId")
            for it in resp.get("items") or []
        ]
        return [v for v in ids if v][:limit]

    async def get_latest_video(
        self, token: str, uploads_playlist_id: str
    ) -> Optional[LatestVideo]:
        resp = await self._call(
            "GET",
            "/playlistItems",
            token,
            cost=config.QUOTA_COST_LIST,
            params={
                "part": "contentDetails",
                "playlistId": uploads_playlist_id,
                "maxResults": 1,
            },
        )
        items = resp.get("items") or []
        if not items:
            return None

        cd = items[0].get("contentDetails") or {}
        video_id = cd.get("videoId")
        if not video_id:
            return None
        return LatestVideo(video_id=video_id, published_at=cd.get("videoPublishedAt"))

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    async def create_playlist(
        self,
        token: str,
        title: str,
        description: str = "",
        privacy_status: str = config.DEFAULT_PRIVACY_STATUS,
    ) -> Dict[str, Any]:
        resp = await self._call(
            "POST",
            "/playlists",
            token,
            cost=config.QUOTA_COST_INSERT,
            params={"part": "snippet,status"},
            body={
                "snippet": {"title": title, "description": description},
                "status": {"privacyStatus": privacy_status},
            },
        )
        await self.cache.delete(_my_playlists_key())
        logger.info(f"Created playlist: {title}")
        return resp

    async def add_item(
        self,
        token: str,
        playlist_id: str,
        video_id: str,
        position: Optional[int] = None,
    ) -> Dict[str, Any]:
        snippet: Dict[str, Any] = {
            "playlistId": playlist_id,
            "resourceId": {"kind": "youtube#video", "videoId": video_id},
        }
        if position is not None:
            snippet["position"] = position

        resp = await self._call(
            "POST",
            "/playlistItems",
            token,
            cost=config.QUOTA_COST_INSERT,
            params={"part": "snippet"},
            body={"snippet": snippet},
        )
        await self.cache.delete(_playlist_items_key(playlist_id))
        return resp

    async def remove_item(self, token: str, playlist_id: str, item_id: str) -> None:
        await self._call(
            "DELETE",
            "/playlistItems",
            token,
            cost=config.QUOTA_COST_DELETE,
            params={"id": item_id},
        )
        await self.cache.delete(_playlist_items_key(playlist_id))

    async def reposition_item(
        self,
        token: str,
        playlist_id: str,
        item_id: str,
        video_id: str,
        position: int,
    ) -> Dict[str, Any]:
        resp = await self._call(
            "PUT",
            "/playlistItems",
            token,
            cost=config.QUOTA_COST_UPDATE,
            params={"part": "snippet"},
            body={
                "id": item_id,
                "snippet": {
                    "playlistId": playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": video_id},
                    "position": position,
                },
            },
        )
        await self.cache.delete(_playlist_items_key(playlist_id))
        return resp
