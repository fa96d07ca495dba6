from fastapi import FastAPI
from fastapi.testclient import TestClient

from isyourdayok.api.middleware.security.rate_limiter import RateLimiter, RateLimitMiddleware


def test_window_fills_up():
    limiter = RateLimiter(endpoint_limits={"/api/v1/auth/verify": 3}, default_limit=10)

    results = [limiter.hit("1.2.3.4", "/api/v1/auth/verify") for _ in range(4)]

    assert [r[0] for r in results] == [False, False, False, True]
    assert [r[1] for r in results] == [1, 2, 3, 3]
    assert results[0][2] == 3


def test_limits_are_per_ip_and_endpoint():
    limiter = RateLimiter(endpoint_limits={"/a": 1}, default_limit=2)

    assert limiter.hit("1.1.1.1", "/a")[0] is False
    assert limiter.hit("1.1.1.1", "/a")[0] is True
    assert limiter.hit("2.2.2.2", "/a")[0] is False
    assert limiter.hit("1.1.1.1", "/b")[0] is False
    assert limiter.hit("1.1.1.1", "/b")[2] == 2


def _app(limiter):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, rate_limiter=limiter)

    @app.get("/api/v1/ping")
    async def ping():
        return {"ok": True}

    @app.get("/api/v1/health")
    async def health():
        return {"status": "healthy"}

    return app


def test_middleware_returns_429_envelope():
    client = TestClient(_app(RateLimiter(endpoint_limits={"/api/v1/ping": 2}, default_limit=100)))

    first = client.get("/api/v1/ping")
    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"

    client.get("/api/v1/ping")
    limited = client.get("/api/v1/ping")

    assert limited.status_code == 429
    assert int(limited.headers["Retry-After"]) >= 1
    body = limited.json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert body["error"]["details"]["limit"] == 2


def test_health_is_exempt():
    client = TestClient(_app(RateLimiter(endpoint_limits={}, default_limit=1)))
    assert all(client.get("/api/v1/health").status_code == 200 for _ in range(3))


def test_forwarded_for_identifies_client():
    client = TestClient(_app(RateLimiter(endpoint_limits={"/api/v1/ping": 1}, default_limit=100)))

    assert client.get("/api/v1/ping", headers={"X-Forwarded-For": "10.0.0.1, 10.0.0.2"}).status_code == 200
    assert client.get("/api/v1/ping", headers={"X-Forwarded-For": "10.0.0.3"}).status_code == 200
    assert client.get("/api/v1/ping", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
