import asyncio
import json
import logging

from subscriptarr.progress import LogLevel, ProgressSink
from subscriptarr.storage import MemoryStorage
from subscriptarr.ui.events import try_parse_ui_event


def test_sink_records_and_logs_events(caplog):
    sink = ProgressSink(logging.getLogger("test.progress"))

    with caplog.at_level(logging.INFO, logger="test.progress"):
        sink.info("starting")
        sink.warn("careful")
        sink.success("done")

    assert [(e.message, e.level) for e in sink.events()] == [
        ("starting", LogLevel.INFO),
        ("careful", LogLevel.WARN),
        ("done", LogLevel.SUCCESS),
    ]
    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING, logging.INFO]
    assert caplog.records[2].event_level == "success"


def test_events_filter_by_level():
    sink = ProgressSink()
    sink.info("a")
    sink.error("b")

    assert [e.message for e in sink.events(LogLevel.ERROR)] == ["b"]


def test_sink_keeps_only_recent_events():
    sink = ProgressSink(max_events=3)
    for i in range(5):
        sink.info(str(i))

    assert [e.message for e in sink.events()] == ["2", "3", "4"]


def test_progress_emits_ui_counter(capsys, monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_UI", "1")

    ProgressSink().progress(2, 7)

    lines = [try_parse_ui_event(l) for l in capsys.readouterr().out.splitlines()]
    assert {"event": "progress", "current": 2, "total": 7} in lines


class Clock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        self.now += 1
        return self.now


def test_history_survives_a_new_sink():
    storage = MemoryStorage()

    async def first_process():
        sink = ProgressSink(storage=storage, clock=Clock())
        sink.info("added a")
        sink.error("failed b")
        await sink.flush()

    async def second_process():
        sink = ProgressSink(storage=storage, clock=Clock(200.0))
        sink.info("fresh")
        restored = await sink.load()
        return restored, sink

    asyncio.run(first_process())
    restored, sink = asyncio.run(second_process())

    assert restored == 2
    assert [e.message for e in sink.events()] == ["added a", "failed b", "fresh"]
    assert [e.message for e in sink.events(LogLevel.ERROR)] == ["failed b"]


def test_events_filter_by_time_range():
    sink = ProgressSink(clock=Clock())
    for name in ("a", "b", "c", "d"):
        sink.info(name)

    assert [e.message for e in sink.events(since=102, until=103)] == ["b", "c"]


def test_export_and_clear():
    storage = MemoryStorage({"logs": [{"message": "old", "level": "warn", "timestamp": 5}]})

    async def scenario():
        sink = ProgressSink(storage=storage)
        await sink.load()
        exported = json.loads(sink.export())
        await sink.clear()
        return exported, sink.events(), await storage.keys()

    exported, events, keys = asyncio.run(scenario())

    assert exported == [{"message": "old", "level": "warn", "timestamp": 5.0}]
    assert events == []
    assert "logs" not in keys


def test_malformed_history_entries_are_skipped():
    storage = MemoryStorage(
        {"logs": [{"message": "ok", "level": "info", "timestamp": 1}, {"level": "loud"}, "x"]}
    )
    sink = ProgressSink(storage=storage)

    assert asyncio.run(sink.load()) == 1
