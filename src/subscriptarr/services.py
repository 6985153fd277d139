"""
services.py

Explicit wiring of the process-wide services.

One Services object is built at startup and passed by reference, so there is
one quota counter and one cache per process without module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from subscriptarr import config
from subscriptarr.api import YouTubeApi
from subscriptarr.cache import ResponseCache
from subscriptarr.env import Environment
from subscriptarr.env.paths import cache_file
from subscriptarr.progress import ProgressSink
from subscriptarr.reconcile import Reconciler
from subscriptarr.scheduler import QuotaScheduler
from subscriptarr.storage import JsonFileStorage, Storage
from subscriptarr.transport import RequestsTransport, Transport


@dataclass
class Services:
    storage: Storage
    cache: ResponseCache
    scheduler: QuotaScheduler
    transport: Transport
    api: YouTubeApi
    reconciler: Reconciler
    sink: ProgressSink

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()


def build_services(
    env: Environment,
    *,
    storage: Optional[Storage] = None,
    transport: Optional[Transport] = None,
    sink: Optional[ProgressSink] = None,
) -> Services:
    storage = storage or JsonFileStorage(cache_file(config.STORAGE_FILENAME))
    transport = transport or RequestsTransport(timeout=env.request_timeout)
    sink = sink or ProgressSink(storage=storage)

    cache = ResponseCache(storage, ttl=env.cache_ttl)
    scheduler = QuotaScheduler(
        storage,
        limit=env.quota_limit,
        max_concurrent=env.max_concurrent,
        min_delay=env.min_delay,
        reset_hour=env.quota_reset_hour,
    )
    api = YouTubeApi(
        transport,
        scheduler,
        cache,
        max_attempts=env.max_attempts,
        base_delay=env.base_delay,
        max_delay=env.max_delay,
        sink=sink,
    )
    reconciler = Reconciler(api, sink)

    return Services(
        storage=storage,
        cache=cache,
        scheduler=scheduler,
        transport=transport,
        api=api,
        reconciler=reconciler,
        sink=sink,
    )
