import asyncio

from subscriptarr.errors import ClientError
from subscriptarr.jobs import (
    JobOptions,
    order_newest_first,
    process_subscriptions,
    sync_channel_playlist,
    uploads_playlist_id,
)
from subscriptarr.models import LatestVideo
from subscriptarr.progress import LogLevel, ProgressSink
from subscriptarr.reconcile import Reconciler

from fakes import FakeYouTube, make_api

TOKEN = "tok"


def _fixture():
    fake = FakeYouTube()
    fake.add_channel(
        "C1",
        "One",
        [("v1", "2024-02-01T00:00:00Z"), ("v2", "2024-01-01T00:00:00Z"), ("v3", None)],
    )
    fake.add_channel("C2", "Two", [("w1", "2024-03-01T00:00:00Z")])
    return fake


def _run(fake, options, limit=10_000):
    api = make_api(fake, limit=limit)
    sink = ProgressSink()
    summary = asyncio.run(
        process_subscriptions(api, Reconciler(api, sink), sink, TOKEN, options)
    )
    return summary, sink


def test_uploads_playlist_id_handles_missing_parts():
    assert uploads_playlist_id(None) is None
    assert uploads_playlist_id({"contentDetails": {}}) is None
    assert (
        uploads_playlist_id({"contentDetails": {"relatedPlaylists": {"uploads": "UU1"}}})
        == "UU1"
    )


def test_order_newest_first_puts_undated_last():
    videos = [
        LatestVideo("undated"),
        LatestVideo("old", "2023-01-01T00:00:00Z"),
        LatestVideo("new", "2024-01-01T00:00:00Z"),
    ]
    assert [v.video_id for v in order_newest_first(videos)] == ["new", "old", "undated"]


def test_first_run_creates_channel_and_aggregate_playlists():
    fake = _fixture()

    summary, _ = _run(fake, JobOptions(limit=2))

    assert (summary.total, summary.processed, summary.failed) == (2, 2, [])
    assert fake.video_ids(fake.playlist_by_title("One - Latest")) == ["v1", "v2"]
    assert fake.video_ids(fake.playlist_by_title("Two - Latest")) == ["w1"]
    assert fake.video_ids(fake.playlist_by_title("Subscriptions - Latest")) == ["w1", "v1"]
    assert summary.channels["C1"].created
    assert summary.aggregate.result.added == 2
    assert not summary.quota_exhausted


def test_second_run_updates_in_place():
    fake = _fixture()
    _run(fake, JobOptions(limit=2))
    playlists_before = set(fake.playlists)

    # New upload lands at the top of the uploads playlist
    fake._append("UUC1", "v0", "2024-04-01T00:00:00Z", position=0)
    summary, _ = _run(fake, JobOptions(limit=2))

    assert set(fake.playlists) == playlists_before
    assert fake.video_ids(fake.playlist_by_title("One - Latest")) == ["v0", "v1"]
    assert fake.video_ids(fake.playlist_by_title("Subscriptions - Latest")) == ["v0", "w1"]

    one = summary.channels["C1"]
    assert not one.created
    assert (one.result.added, one.result.removed) == (1, 1)
    assert not summary.channels["C2"].result.changed


def test_no_update_always_creates():
    fake = _fixture()
    _run(fake, JobOptions(limit=2))
    count_before = len(fake.playlists)

    _run(fake, JobOptions(limit=2, update=False))

    # two channel playlists plus the aggregate, again
    assert len(fake.playlists) == count_before + 3


def test_dry_run_writes_nothing():
    fake = _fixture()

    summary, sink = _run(fake, JobOptions(limit=2, dry_run=True))

    assert fake.writes() == []
    assert summary.channels["C1"].created
    assert summary.channels["C1"].playlist_id is None
    assert summary.channels["C1"].result.added == 2
    assert summary.aggregate.result.added == 2
    assert any("[DRY-RUN] Would create playlist: 'One - Latest'" in e.message for e in sink.events())


def test_channel_failure_is_logged_and_batch_continues():
    fake = _fixture()
    fake.fail_next("GET", "/channels", ClientError("channel gone", status=404))

    summary, sink = _run(fake, JobOptions(limit=2))

    assert summary.failed == ["C1"]
    assert summary.processed == 1
    assert fake.video_ids(fake.playlist_by_title("Two - Latest")) == ["w1"]
    assert fake.video_ids(fake.playlist_by_title("Subscriptions - Latest")) == ["w1"]
    errors = [e.message for e in sink.events(LogLevel.ERROR)]
    assert any("One (C1)" in m and "channel gone" in m for m in errors)


def test_quota_exhaustion_stops_batch_and_skips_aggregate():
    fake = _fixture()

    # 4 list calls + one playlist insert fit; the first item insert does not
    summary, sink = _run(fake, JobOptions(limit=2), limit=60)

    assert summary.quota_exhausted
    assert summary.failed == ["C1"]
    assert summary.aggregate is None
    assert fake.playlist_by_title("Two - Latest") is None
    assert fake.playlist_by_title("Subscriptions - Latest") is None
    assert any("Skipping aggregate" in e.message for e in sink.events(LogLevel.WARN))


def test_channel_without_videos_is_skipped():
    fake = FakeYouTube()
    fake.add_channel("C1", "Empty", [])
    api = make_api(fake)
    sink = ProgressSink()

    outcome = asyncio.run(
        sync_channel_playlist(
            api, Reconciler(api, sink), sink, TOKEN, "C1", "Empty", JobOptions()
        )
    )

    assert outcome is None
    assert fake.writes() == []
    assert "- Empty: No recent videos found" in [e.message for e in sink.events()]


def test_unknown_channel_is_reported():
    fake = FakeYouTube()
    api = make_api(fake)
    sink = ProgressSink()

    outcome = asyncio.run(
        sync_channel_playlist(api, Reconciler(api, sink), sink, TOKEN, "CX", "X", JobOptions())
    )

    assert outcome is None
    assert sink.events(LogLevel.ERROR)[0].message.startswith("Channel not found")
