from subscriptarr.errors import (
    ApiError,
    ClientError,
    ErrorKind,
    QuotaExceededError,
    RateLimitedError,
    ServerError,
    TransportError,
    classify_status,
    is_retryable,
)


def test_classify_status_maps_each_kind():
    assert isinstance(classify_status(None, "boom"), TransportError)
    assert isinstance(classify_status(403, "forbidden"), RateLimitedError)
    assert isinstance(classify_status(429, "slow down"), RateLimitedError)
    assert isinstance(classify_status(503, "unavailable"), ServerError)
    assert isinstance(classify_status(404, "missing"), ClientError)


def test_error_carries_fixed_shape():
    e = classify_status(500, "API GET /x: 500", body='{"error": {}}')

    assert e.kind == ErrorKind.SERVER
    assert e.status == 500
    assert e.message == "API GET /x: 500"
    assert e.body == '{"error": {}}'
    assert str(e) == "API GET /x: 500"


def test_retryability():
    assert is_retryable(TransportError("timeout"))
    assert is_retryable(RateLimitedError("429", status=429))
    assert is_retryable(ServerError("502", status=502))
    assert not is_retryable(ClientError("404", status=404))
    assert not is_retryable(ClientError("401", status=401))
    assert not is_retryable(QuotaExceededError("exhausted", reset_in=60))


def test_foreign_exceptions_without_status_are_network_failures():
    assert is_retryable(ConnectionResetError("reset"))

    class WithStatus(Exception):
        status = 404

    assert not is_retryable(WithStatus())


def test_quota_exceeded_carries_reset_time():
    e = QuotaExceededError("Daily quota exceeded", reset_in=3600.0, used=100, limit=100)

    assert isinstance(e, ApiError)
    assert e.kind == ErrorKind.QUOTA_EXCEEDED
    assert e.reset_in == 3600.0
    assert e.status is None


def test_foreign_exceptions_with_non_numeric_status_are_not_retried():
    class OddStatus(Exception):
        status = "unavailable"

    class ZeroStatus(Exception):
        status = 0

    assert not is_retryable(OddStatus())
    assert is_retryable(ZeroStatus())
