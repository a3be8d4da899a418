"""Shared fixtures: canned Trafikverket responses and host fakes."""

import asyncio
import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from tvweather.models.database import create_session_factory, create_sqlite_engine, create_tables
from tvweather.services.trafikverket import TrafikverketClient

FIXTURES = Path(__file__).parent / "fixtures"
API_URL = "https://api.test/v2/data.json"
TOKEN = "test-token"


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


def parse_query(request: httpx.Request) -> ET.Element:
    """The QUERY element of a captured request body."""
    return ET.fromstring(request.content).find("QUERY")


def empty_result(objecttype: str) -> dict:
    return {"RESPONSE": {"RESULT": [{objecttype: []}]}}


def fixture_handler(request: httpx.Request) -> httpx.Response:
    """Route queries to the JSON fixtures by object type and filter."""
    query = parse_query(request)
    objecttype = query.get("objecttype")
    flt = query.find("FILTER")[0]

    if objecttype == "Camera":
        return httpx.Response(200, json=load_fixture("cameras.json"))
    if flt.tag == "LIKE" and flt.get("value") == "^Sto":
        return httpx.Response(200, json=load_fixture("stations_sto.json"))
    if flt.tag == "WITHIN":
        return httpx.Response(200, json=load_fixture("stations_nearby.json"))
    if flt.tag == "EQ" and flt.get("value") == "1211":
        return httpx.Response(200, json=load_fixture("station_1211.json"))
    return httpx.Response(200, json=empty_result(objecttype))


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def count(self, objecttype: str) -> int:
        return sum(1 for r in self.requests if parse_query(r).get("objecttype") == objecttype)


def make_client(handler=fixture_handler) -> TrafikverketClient:
    return TrafikverketClient(
        token=TOKEN,
        base_url=API_URL,
        timeout=5.0,
        transport=RecordingTransport(handler),
    )


class FakeImage:
    def __init__(self, fail: bool = False):
        self.url = None
        self.updates = 0
        self.fail = fail

    def set_url(self, url: str) -> None:
        self.url = url

    async def update(self) -> None:
        self.updates += 1
        if self.fail:
            raise RuntimeError("image download failed")


class FakeImageFactory:
    def __init__(self, failing_urls: tuple = ()):
        self.created: list[FakeImage] = []
        self.failing_urls = failing_urls

    def create_image(self) -> FakeImage:
        image = _FactoryImage(self)
        self.created.append(image)
        return image


class _FactoryImage(FakeImage):
    def __init__(self, factory: FakeImageFactory):
        super().__init__()
        self._factory = factory

    def set_url(self, url: str) -> None:
        super().set_url(url)
        self.fail = url in self._factory.failing_urls


class DictTranslator:
    def __init__(self, table: dict[str, str] | None = None):
        self.table = table or {}

    def translate(self, key: str) -> str:
        return self.table.get(key, key)


class RecordingTrigger:
    def __init__(self):
        self.calls: list[tuple[Any, dict]] = []

    async def trigger(self, device, tokens: dict) -> None:
        self.calls.append((device, tokens))


class ManualSleep:
    """Replaces asyncio.sleep in the device timer; each sleep waits for fire()."""

    def __init__(self):
        self.intervals: list[float] = []
        self._waiters: list[asyncio.Future] = []

    async def __call__(self, interval: float) -> None:
        self.intervals.append(interval)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    def fire(self) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
                return


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def session_factory():
    """Session factory bound to a private in-memory SQLite database."""
    engine = create_sqlite_engine("sqlite://")
    create_tables(engine)
    yield create_session_factory(engine)
    engine.dispose()
