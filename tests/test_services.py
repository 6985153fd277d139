from subscriptarr.env import get_env
from subscriptarr.services import build_services
from subscriptarr.storage import JsonFileStorage, MemoryStorage
from subscriptarr.transport import RequestsTransport


def test_services_share_one_storage_and_scheduler():
    storage = MemoryStorage()
    services = build_services(get_env(), storage=storage)

    assert services.cache.storage is storage
    assert services.scheduler.storage is storage
    assert services.api.scheduler is services.scheduler
    assert services.api.cache is services.cache
    assert services.reconciler.api is services.api
    assert services.reconciler.sink is services.sink
    assert isinstance(services.transport, RequestsTransport)
    services.close()


def test_default_storage_lives_in_cache_dir(tmp_path):
    services = build_services(get_env())

    assert isinstance(services.storage, JsonFileStorage)
    assert services.storage.path == (tmp_path / "cache" / "storage.json").resolve()
    services.close()


def test_services_follow_env(monkeypatch):
    monkeypatch.setenv("SUBSCRIPTARR_QUOTA_LIMIT", "500")
    monkeypatch.setenv("SUBSCRIPTARR_MAX_CONCURRENT", "2")
    monkeypatch.setenv("SUBSCRIPTARR_CACHE_TTL_SEC", "10")

    services = build_services(get_env(), storage=MemoryStorage())

    assert services.scheduler.state.limit == 500
    assert services.scheduler.max_concurrent == 2
    assert services.cache.ttl == 10
    services.close()
