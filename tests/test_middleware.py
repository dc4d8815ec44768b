import asyncio
from types import SimpleNamespace

from middleware import RateLimitMiddleware


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def request_from(host):
    return SimpleNamespace(client=SimpleNamespace(host=host))


async def ok(request):
    return "ok"


def send(limiter, host):
    return asyncio.run(limiter.dispatch(request_from(host), ok))


def test_limit_resets_after_window():
    clock = FakeClock()
    limiter = RateLimitMiddleware(app=None, max_requests=1, window_seconds=60, clock=clock)

    assert send(limiter, "10.0.0.1") == "ok"
    assert send(limiter, "10.0.0.1").status_code == 429
    # other clients have their own window
    assert send(limiter, "10.0.0.2") == "ok"

    clock.now = 61
    assert send(limiter, "10.0.0.1") == "ok"


def test_expired_clients_are_forgotten():
    clock = FakeClock()
    limiter = RateLimitMiddleware(app=None, max_requests=5, window_seconds=60, clock=clock)

    for i in range(1000):
        send(limiter, f"10.0.{i // 256}.{i % 256}")
    assert len(limiter._windows) == 1000

    clock.now = 61
    send(limiter, "192.168.0.1")
    assert list(limiter._windows) == ["192.168.0.1"]


def test_active_clients_survive_sweep():
    clock = FakeClock()
    limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=60, clock=clock)

    send(limiter, "10.0.0.1")
    clock.now = 30
    send(limiter, "10.0.0.2")
    send(limiter, "10.0.0.2")

    clock.now = 61
    send(limiter, "10.0.0.3")
    assert set(limiter._windows) == {"10.0.0.2", "10.0.0.3"}
    # 10.0.0.2 is still inside its window and already at the limit
    assert send(limiter, "10.0.0.2").status_code == 429
