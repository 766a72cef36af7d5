"""
Shared fixtures: sample pages and an engine wired to httpx.MockTransport
"""
from typing import Callable, Dict, List

import httpx
import pytest

from branches import BranchResolver
from config import EngineConfig
from fetcher import ContentFetcher
from studio_engine import StudioEngine

TABLE_PAGE = """
<html><body>
<h1>Расписание</h1>
<h2>Филиал Дыбенко</h2>
<table>
  <tr><th>Время</th><th>Группа</th></tr>
  <tr><td>Пн, Ср 18:00-19:00</td><td>Hip-Hop 12+ (новички)</td></tr>
  <tr><td>Вт, Чт 19:00-20:00</td><td>Jazz Funk команда</td></tr>
</table>
<h2>Филиал Купчино</h2>
<table>
  <tr><td>Пт 17:30</td><td>Contemporary (начальный)</td></tr>
</table>
<p>Купчино: Сб 12:00 Зумба для всех</p>
</body></html>
"""

BLOCKS_PAGE = """
<html><body>
<div class="schedule-container">
  <h3>Звёздная</h3>
  <div class="schedule-item"><span class="day">Пн</span><span class="time">19:00</span><span class="name">High Heels (новички)</span></div>
  <div class="schedule-item"><span class="day">Вт</span><span class="time">18:00</span><span class="name">Twerk</span></div>
</div>
<div class="schedule-container">
  <h3>Озерки</h3>
  <div class="lesson"><span class="time">13:00</span><span class="title">K-Pop</span><span class="weekday">Сб</span></div>
</div>
</body></html>
"""

TEXT_PAGE = """
<html><head><script>var cfg = {branch: "Дыбенко 18:00"};</script></head><body>
<h2>Дыбенко</h2>
<p>Пн, Ср: 18:00-19:00 - Hip-Hop 12+ (новички)</p>
<p>Вт: 20:00 - Команда Jazz Funk</p>
<h2>Озерки</h2>
<p>Сб 13:00 K-Pop (с нуля)</p>
<p>Купчино, Чт 18:00 Shuffle с нуля</p>
<footer>CosmoDance</footer>
</body></html>
"""

EMPTY_PAGE = """
<html><body><h1>Скоро здесь будет расписание</h1><p>Следите за новостями студии.</p></body></html>
"""

PRICE_TABLE_PAGE = """
<html><body>
<h2>Абонементы</h2>
<table>
  <tr><td>8 занятий</td><td>6000 ₽</td></tr>
  <tr><td>4 занятия</td><td>3500 ₽</td></tr>
</table>
<h2>Разовые занятия</h2>
<p>Групповое занятие: 1200 руб</p>
</body></html>
"""


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSite:
    """Serves fixed pages per path and records every request"""

    def __init__(self, pages: Dict[str, str]):
        self.pages = pages
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.pages.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body)


def build_engine(handler: Callable, ttl: float = 3600, timeout: float = 1.0, clock=None) -> StudioEngine:
    cfg = EngineConfig(base_url="https://studio.test", ttl_seconds=ttl, timeout_seconds=timeout)
    fetcher = ContentFetcher(timeout_seconds=timeout, transport=httpx.MockTransport(handler))
    kwargs = {"clock": clock} if clock is not None else {}
    return StudioEngine(cfg, fetcher=fetcher, **kwargs)


@pytest.fixture
def resolver():
    return BranchResolver(EngineConfig().branches)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def site():
    return FakeSite({"/raspisanie/": TABLE_PAGE, "/prices/": PRICE_TABLE_PAGE})


@pytest.fixture
def engine(site):
    return build_engine(site)
