from __future__ import annotations

import json
import logging
import time
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from subscriptarr import config
from subscriptarr.logger import get_logger
from subscriptarr.storage import Storage
from subscriptarr.ui.events import emit_ui_event


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"

    @property
    def logging_level(self) -> int:
        return {
            LogLevel.INFO: logging.INFO,
            LogLevel.WARN: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
            LogLevel.SUCCESS: logging.INFO,
        }[self]


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    level: LogLevel
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["level"] = self.level.value
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Optional["ProgressEvent"]:
        try:
            return cls(str(d["message"]), LogLevel(d["level"]), float(d["timestamp"]))
        except (KeyError, TypeError, ValueError):
            return None


class ProgressSink:
    """
    Receives {message, level} events from the job, api and reconciler.

    Events go to the logging tree and, when enabled, to the UI event stream.
    The most recent events are kept in memory and, when a storage is given,
    persisted under the `logs` key by `flush()` so the history survives the
    process.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        max_events: int = config.MAX_PERSISTED_EVENTS,
        storage: Optional[Storage] = None,
        clock=time.time,
    ):
        self.logger = logger or get_logger("subscriptarr.progress")
        self.storage = storage
        self._clock = clock
        self._events: Deque[ProgressEvent] = deque(maxlen=max_events)

    def emit(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        level = LogLevel(level)
        self._events.append(ProgressEvent(message, level, self._clock()))
        self.logger.log(
            level.logging_level, message, extra={"event_level": level.value}
        )
        emit_ui_event("log", message=message, level=level.value)

    def info(self, message: str) -> None:
        self.emit(message, LogLevel.INFO)

    def warn(self, message: str) -> None:
        self.emit(message, LogLevel.WARN)

    def error(self, message: str) -> None:
        self.emit(message, LogLevel.ERROR)

    def success(self, message: str) -> None:
        self.emit(message, LogLevel.SUCCESS)

    def progress(self, processed: int, total: int) -> None:
        emit_ui_event("progress", current=processed, total=total)

    # ------------------------------------------------------------
    # History
    # ------------------------------------------------------------

    def events(
        self,
        level: Optional[LogLevel] = None,
        *,
        since: Optional[float] = None,
        until: Optional[float] = None,
    ) -> List[ProgressEvent]:
        out = []
        for e in self._events:
            if level is not None and e.level != level:
                continue
            if since is not None and e.timestamp < since:
                continue
            if until is not None and e.timestamp > until:
                continue
            out.append(e)
        return out

    def export(self) -> str:
        return json.dumps([e.to_dict() for e in self._events], indent=2)

    async def load(self) -> int:
        """Prepend persisted history to the buffer; returns how many events were restored."""
        if self.storage is None:
            return 0

        data = await self.storage.get([config.STORAGE_KEY_LOGS])
        raw = data.get(config.STORAGE_KEY_LOGS)
        if not isinstance(raw, list):
            return 0

        restored = []
        for d in raw:
            event = ProgressEvent.from_dict(d) if isinstance(d, dict) else None
            if event is not None:
                restored.append(event)
        current = list(self._events)
        self._events.clear()
        self._events.extend(restored + current)
        return len(restored)

    async def flush(self) -> None:
        if self.storage is None:
            return
        try:
            await self.storage.set(
                {config.STORAGE_KEY_LOGS: [e.to_dict() for e in self._events]}
            )
        except OSError as e:
            self.logger.warning(f"Failed to persist event log: {e}")

    async def clear(self) -> None:
        self._events.clear()
        if self.storage is not None:
            await self.storage.remove([config.STORAGE_KEY_LOGS])
