"""
Tests for StudioEngine: caching, fallback, stats and single-flight refresh
"""
import asyncio

import httpx
import pytest

from conftest import EMPTY_PAGE, TABLE_PAGE, TEXT_PAGE, FakeSite, build_engine
from errors import FetchTimeoutError, HttpStatusError, NetworkError
from fetcher import ContentFetcher


def run(coro):
    return asyncio.run(coro)


def test_live_schedule_is_cached_and_filtered(engine, site):
    snapshot = run(engine.get_schedule())

    assert snapshot.meta.origin == "live"
    assert snapshot.meta.strategy == "structured"
    assert snapshot.meta.source == "https://studio.test/raspisanie/"
    assert snapshot.entries == {
        "Дыбенко": ["Пн, Ср Hip-Hop (новички)"],
        "Купчино": ["Пт 17:30 Contemporary (начальный)"],
    }
    assert engine.get_stats()["successes"] == 1


def test_second_call_within_ttl_does_not_fetch(engine, site):
    first = run(engine.get_schedule())
    second = run(engine.get_schedule("Купчино"))

    assert len(site.requests) == 1
    assert second.entries == {"Купчино": first.entries["Купчино"]}
    stats = engine.get_stats()
    assert stats["requests"] == 2
    assert stats["cache_hits"] == 1
    assert stats["fetches"] == 1


def test_refetch_after_ttl_expires(site, clock):
    engine = build_engine(site, ttl=60, clock=clock)
    run(engine.get_schedule())
    clock.advance(61)
    run(engine.get_schedule())
    assert len(site.requests) == 2


def test_clear_cache_forces_refetch(engine, site):
    run(engine.get_schedule())
    run(engine.get_prices())
    engine.clear_cache()
    run(engine.get_schedule())
    run(engine.get_prices())
    assert len(site.requests) == 4
    assert engine.get_stats()["cache_hits"] == 0


def test_timeout_serves_fallback_and_counts_one_failure():
    async def slow(request):
        await asyncio.sleep(1)
        return httpx.Response(200, text=TABLE_PAGE)

    engine = build_engine(slow, timeout=0.05)
    before = engine.get_stats()["failures"]
    snapshot = run(engine.get_schedule())

    assert snapshot.meta.origin == "fallback"
    assert snapshot.entries
    assert engine.get_stats()["failures"] == before + 1


def refuse(request):
    raise httpx.ConnectError("refused", request=request)


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(503, text="maintenance"),
        refuse,
        lambda request: httpx.Response(200, text=EMPTY_PAGE),
    ],
    ids=["http-status", "network", "nothing-extracted"],
)
def test_failures_never_raise_and_never_return_empty(handler):
    engine = build_engine(handler)

    schedule = run(engine.get_schedule())
    prices = run(engine.get_prices())

    assert schedule.meta.origin == "fallback" and schedule.entries
    assert prices.meta.origin == "fallback" and prices.entries
    stats = engine.get_stats()
    assert stats["failures"] == 2
    assert stats["successes"] == 0
    assert stats["last_origin"] == {"schedule": "fallback", "prices": "fallback"}


def test_fallback_is_not_cached():
    site = FakeSite({"/raspisanie/": EMPTY_PAGE})
    engine = build_engine(site)
    run(engine.get_schedule())
    run(engine.get_schedule())
    assert len(site.requests) == 2
    assert engine.get_stats()["cache"]["schedule"]["cached"] is False


def test_hip_hop_line_from_text_page():
    engine = build_engine(FakeSite({"/raspisanie/": TEXT_PAGE}))
    snapshot = run(engine.get_schedule("Дыбенко"))

    assert snapshot.meta.strategy == "unstructured"
    assert snapshot.entries == {"Дыбенко": ["Пн, Ср: - Hip-Hop (новички)"]}


def test_contact_hours_stay_out_of_branch_schedule():
    page = (
        "<html><body><h2>Озерки</h2><p>Сб 13:00 K-Pop (с нуля)</p>"
        "<h2>Контакты</h2><p>Студия работает ежедневно с 10:00 до 22:00</p>"
        "<p>Звонки принимаем с 09:30 до 21:00</p></body></html>"
    )
    engine = build_engine(FakeSite({"/raspisanie/": page}))
    snapshot = run(engine.get_schedule("Озерки"))
    assert snapshot.entries == {"Озерки": ["Сб 13:00 K-Pop (с нуля)"]}


def test_unknown_branch_returns_empty_view(engine):
    snapshot = run(engine.get_schedule("Марс"))
    assert snapshot.entries == {}
    assert snapshot.meta.origin == "live"


def test_known_branch_missing_from_live_data_gets_fallback(engine):
    snapshot = run(engine.get_schedule("Озерки"))
    assert snapshot.meta.origin == "fallback"
    assert list(snapshot.entries) == ["Озерки"]


def test_live_prices():
    engine = build_engine(FakeSite({"/prices/": "<h2>Абонементы</h2><table><tr><td>8 занятий</td><td>6000 ₽</td></tr></table>"}))
    snapshot = run(engine.get_prices())
    assert snapshot.meta.origin == "live"
    assert snapshot.entries == {"Абонементы": ["8 занятий 6000 ₽"]}


def test_concurrent_misses_share_one_fetch():
    calls = []

    async def slow_site(request):
        calls.append(request)
        await asyncio.sleep(0.05)
        return httpx.Response(200, text=TABLE_PAGE)

    engine = build_engine(slow_site)

    async def burst():
        return await asyncio.gather(*(engine.get_schedule() for _ in range(5)))

    results = run(burst())
    assert len(calls) == 1
    assert all(r.meta.origin == "live" for r in results)
    stats = engine.get_stats()
    assert stats["requests"] == 5
    assert stats["fetches"] == 1
    assert stats["successes"] == 1


def test_prefetch_warms_both_caches(engine, site):
    result = run(engine.prefetch())
    assert result["schedule"]["origin"] == "live"
    assert result["prices"]["origin"] == "live"

    run(engine.get_schedule())
    run(engine.get_prices())
    assert len(site.requests) == 2


def test_fetcher_sends_browser_headers_and_maps_errors():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        if request.url.path == "/down":
            raise httpx.ConnectError("refused", request=request)
        if request.url.path == "/missing":
            return httpx.Response(404)
        return httpx.Response(200, text="ok")

    fetcher = ContentFetcher(timeout_seconds=1, transport=httpx.MockTransport(handler))
    assert run(fetcher.fetch("https://studio.test/")) == "ok"
    assert seen["user-agent"].startswith("Mozilla/5.0")
    assert "ru-RU" in seen["accept-language"]

    with pytest.raises(NetworkError):
        run(fetcher.fetch("https://studio.test/down"))
    with pytest.raises(HttpStatusError) as exc_info:
        run(fetcher.fetch("https://studio.test/missing"))
    assert exc_info.value.status_code == 404


def test_fetcher_timeout():
    async def slow(request):
        await asyncio.sleep(1)
        return httpx.Response(200)

    fetcher = ContentFetcher(timeout_seconds=0.05, transport=httpx.MockTransport(slow))
    with pytest.raises(FetchTimeoutError):
        run(fetcher.fetch("https://studio.test/"))
