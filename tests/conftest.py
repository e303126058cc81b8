"""Shared fixtures: an in-memory stand-in for the Prisma client and a
VendorClient wired to httpx.MockTransport."""

from __future__ import annotations

import itertools
from typing import Any, Callable

import httpx
import pytest

from exotel_mcp.auth.session import get_auth_store
from exotel_mcp.services.callbacks import CallbackStore
from exotel_mcp.services.exotel import ExotelService
from exotel_mcp.vendor.cache import MetadataCache
from exotel_mcp.vendor.client import VendorClient


class Row:
    """Attribute-style record, like the rows Prisma returns."""

    def __init__(self, **fields: Any):
        self.__dict__.update(fields)


def _matches(row: Row, where: dict) -> bool:
    for key, expected in where.items():
        if key == "OR":
            if not any(_matches(row, clause) for clause in expected):
                return False
        elif getattr(row, key, None) != expected:
            return False
    return True


class FakeTable:
    def __init__(self):
        self.rows: list[Row] = []
        self._ids = itertools.count(1)
        self.fail_with: Exception | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def create(self, data: dict) -> Row:
        self._check()
        row = Row(id=next(self._ids), **data)
        self.rows.append(row)
        return row

    async def update(self, where: dict, data: dict) -> Row | None:
        self._check()
        for row in self.rows:
            if _matches(row, where):
                row.__dict__.update(data)
                return row
        return None

    async def find_first(self, where: dict) -> Row | None:
        self._check()
        return next((row for row in self.rows if _matches(row, where)), None)

    async def find_many(self, where: dict) -> list[Row]:
        self._check()
        return [row for row in self.rows if _matches(row, where)]


class FakeDb:
    def __init__(self):
        self.smscallback = FakeTable()
        self.voicecallback = FakeTable()


@pytest.fixture(autouse=True)
def clean_auth_store():
    get_auth_store().clear()
    yield
    get_auth_store().clear()


@pytest.fixture
def fake_db() -> FakeDb:
    return FakeDb()


@pytest.fixture
def callback_store(fake_db: FakeDb) -> CallbackStore:
    async def get_fake_db():
        return fake_db

    return CallbackStore(db_getter=get_fake_db)


class VendorStub:
    """Records vendor requests and answers them from a handler."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def form(self, index: int = -1) -> dict[str, str]:
        request = self.requests[index]
        return dict(httpx.QueryParams(request.content.decode()))


@pytest.fixture
def vendor() -> VendorStub:
    return VendorStub()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def vendor_client(vendor: VendorStub, sleeps: list[float]) -> VendorClient:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(vendor))
    return VendorClient(
        http_client,
        max_attempts=3,
        base_delay=1.0,
        max_jitter=0.5,
        sleep=fake_sleep,
    )


@pytest.fixture
def service(vendor_client: VendorClient, callback_store: CallbackStore) -> ExotelService:
    return ExotelService(
        client=vendor_client,
        cache=MetadataCache(),
        callbacks=callback_store,
        store=get_auth_store(),
    )
