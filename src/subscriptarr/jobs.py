"""
jobs.py

Batch job: mirror each subscribed channel's recent uploads into its own
playlist, then maintain one aggregate playlist of every channel's latest upload.

A failure on one channel is logged and the batch moves on. Quota exhaustion
stops the batch: every further call would be rejected anyway.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from subscriptarr import config
from subscriptarr.api import YouTubeApi
from subscriptarr.errors import QuotaExceededError
from subscriptarr.logger import get_logger
from subscriptarr.models import LatestVideo, ReconciliationResult
from subscriptarr.progress import ProgressSink
from subscriptarr.reconcile import Reconciler

logger = get_logger(__name__)


@dataclass(frozen=True)
class JobOptions:
    limit: int = config.DEFAULT_LIMIT
    update: bool = True
    dry_run: bool = False
    aggregate_title: str = config.DEFAULT_AGGREGATE_TITLE


@dataclass(frozen=True)
class PlaylistOutcome:
    title: str
    playlist_id: Optional[str]
    created: bool
    result: ReconciliationResult


@dataclass
class JobSummary:
    total: int = 0
    processed: int = 0
    failed: List[str] = field(default_factory=list)
    channels: Dict[str, PlaylistOutcome] = field(default_factory=dict)
    aggregate: Optional[PlaylistOutcome] = None
    quota_exhausted: bool = False


def uploads_playlist_id(channel: Optional[Dict[str, Any]]) -> Optional[str]:
    if not channel:
        return None
    return ((channel.get("contentDetails") or {}).get("relatedPlaylists") or {}).get(
        "uploads"
    )


def _published_ts(video: LatestVideo) -> float:
    if not video.published_at:
        return 0.0
    try:
        return datetime.fromisoformat(video.published_at.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def order_newest_first(videos: Sequence[LatestVideo]) -> List[LatestVideo]:
    """Sort by publish time, newest first. Videos without a date sort last."""
    return sorted(videos, key=_published_ts, reverse=True)


async def _create_or_update(
    api: YouTubeApi,
    reconciler: Reconciler,
    sink: ProgressSink,
    token: str,
    *,
    title: str,
    description: str,
    video_ids: Sequence[str],
    options: JobOptions,
) -> PlaylistOutcome:
    if options.update:
        existing = await api.find_playlist_by_title(token, title)
        if existing:
            playlist_id = existing["id"]
            result = await reconciler.sync_playlist(
                token, playlist_id, video_ids, simulate=options.dry_run
            )
            return PlaylistOutcome(title, playlist_id, created=False, result=result)

    if options.dry_run:
        sink.info(
            f"[DRY-RUN] Would create playlist: '{title}' with {len(video_ids)} videos"
        )
        return PlaylistOutcome(
            title, None, created=True, result=ReconciliationResult(added=len(video_ids))
        )

    playlist = await api.create_playlist(token, title, description)
    playlist_id = playlist["id"]

    for video_id in video_ids:
        await api.add_item(token, playlist_id, video_id)

    return PlaylistOutcome(
        title, playlist_id, created=True, result=ReconciliationResult(added=len(video_ids))
    )


async def sync_channel_playlist(
    api: YouTubeApi,
    reconciler: Reconciler,
    sink: ProgressSink,
    token: str,
    channel_id: str,
    channel_title: str,
    options: JobOptions,
) -> Optional[PlaylistOutcome]:
    channel = await api.get_channel(token, channel_id)
    uploads = uploads_playlist_id(channel)
    if not uploads:
        sink.error(f"Channel not found or has no uploads playlist: {channel_id}")
        return None

    video_ids = await api.get_recent_videos(token, uploads, options.limit)
    if not video_ids:
        sink.info(f"- {channel_title}: No recent videos found")
        return None

    outcome = await _create_or_update(
        api,
        reconciler,
        sink,
        token,
        title=config.CHANNEL_PLAYLIST_TITLE.format(channel=channel_title),
        description=config.CHANNEL_PLAYLIST_DESCRIPTION.format(channel=channel_title),
        video_ids=video_ids,
        options=options,
    )

    r = outcome.result
    if outcome.created:
        sink.success(f"- {channel_title}: Created playlist with {r.added} videos")
    else:
        sink.success(
            f"- {channel_title}: Updated (added {r.added}, removed {r.removed}, reordered {r.reordered})"
        )
    return outcome


async def sync_aggregate_playlist(
    api: YouTubeApi,
    reconciler: Reconciler,
    sink: ProgressSink,
    token: str,
    latest: Sequence[LatestVideo],
    options: JobOptions,
) -> Optional[PlaylistOutcome]:
    if not latest:
        sink.info("Aggregate: No videos to add")
        return None

    target_ids = [v.video_id for v in order_newest_first(latest)]

    outcome = await _create_or_update(
        api,
        reconciler,
        sink,
        token,
        title=options.aggregate_title,
        description=config.AGGREGATE_PLAYLIST_DESCRIPTION,
        video_ids=target_ids,
        options=options,
    )

    r = outcome.result
    if outcome.created:
        sink.success(f"- Aggregate: Created playlist with {r.added} videos")
    else:
        sink.success(
            f"- Aggregate: Updated (added {r.added}, removed {r.removed}, reordered {r.reordered})"
        )
    return outcome


async def _latest_for_channel(
    api: YouTubeApi, token: str, channel_id: str
) -> Optional[LatestVideo]:
    channel = await api.get_channel(token, channel_id)
    uploads = uploads_playlist_id(channel)
    if not uploads:
        return None
    return await api.get_latest_video(token, uploads)


async def process_subscriptions(
    api: YouTubeApi,
    reconciler: Reconciler,
    sink: ProgressSink,
    token: str,
    options: JobOptions,
) -> JobSummary:
    sink.info("Starting subscription processing...")
    summary = JobSummary()

    try:
        subscriptions = await api.list_subscriptions(token)
    except QuotaExceededError as e:
        sink.error(f"Quota exhausted before subscriptions could be listed: {e}")
        summary.quota_exhausted = True
        return summary

    summary.total = len(subscriptions)
    sink.info(f"Found {summary.total} subscriptions")

    latest: List[LatestVideo] = []

    for subscription in subscriptions:
        snippet = subscription.get("snippet") or {}
        channel_id = (snippet.get("resourceId") or {}).get("channelId")
        channel_title = snippet.get("title") or channel_id

        if not channel_id:
            continue

        try:
            outcome = await sync_channel_playlist(
                api, reconciler, sink, token, channel_id, channel_title, options
            )
            if outcome is not None:
                summary.channels[channel_id] = outcome
        except QuotaExceededError as e:
            sink.error(f"Quota exhausted while processing {channel_title} ({channel_id}): {e}")
            summary.failed.append(channel_id)
            summary.quota_exhausted = True
            break
        except Exception as e:
            logger.debug(f"Channel {channel_id} failed", exc_info=True)
            sink.error(f"Failed to process {channel_title} ({channel_id}): {e}")
            summary.failed.append(channel_id)
            continue

        # Aggregate input is best-effort per channel.
        try:
            video = await _latest_for_channel(api, token, channel_id)
            if video is not None:
                latest.append(video)
        except QuotaExceededError as e:
            sink.error(f"Quota exhausted while fetching latest video for {channel_title}: {e}")
            summary.quota_exhausted = True
            break
        except Exception as e:
            sink.warn(f"Failed to get latest video for {channel_title}: {e}")

        summary.processed += 1
        sink.progress(summary.processed, summary.total)
        if summary.processed % config.PROGRESS_LOG_EVERY == 0:
            sink.info(f"Progress: {summary.processed}/{summary.total}")

    if summary.quota_exhausted:
        sink.warn("Skipping aggregate playlist: quota exhausted")
        return summary

    try:
        summary.aggregate = await sync_aggregate_playlist(
            api, reconciler, sink, token, latest, options
        )
    except QuotaExceededError as e:
        sink.error(f"Quota exhausted while updating aggregate playlist: {e}")
        summary.quota_exhausted = True
    except Exception as e:
        logger.debug("Aggregate playlist failed", exc_info=True)
        sink.error(f"Failed to create/update aggregate playlist '{options.aggregate_title}': {e}")
        summary.failed.append("aggregate")

    sink.success(
        f"All processing completed: {summary.processed}/{summary.total} subscriptions"
    )
    return summary
