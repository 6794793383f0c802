"""Shared fakes for oracle tests."""

import asyncio
from collections.abc import Callable, Iterator

import httpx
import pytest

from drm_oracle.src.AssetPair import AssetPair
from drm_oracle.src.fetchers import BaseFetcher


class StaticFetcher(BaseFetcher):
    """Returns a fixed price (or raises / stalls) and records calls."""

    name = "static"

    def __init__(
        self,
        price: float | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.price = price
        self.error = error
        self.delay = delay
        self.calls: list[AssetPair] = []

    async def fetch(self, pair: AssetPair) -> float | None:
        self.calls.append(pair)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.price


class StaticGateway:
    """Gateway probe stub with a fixed answer."""

    def __init__(self, reachable: bool = True, error: Exception | None = None) -> None:
        self.reachable = reachable
        self.error = error
        self.probed: list[str] = []

    async def is_reachable(self, cid: str) -> bool:
        self.probed.append(cid)
        if self.error is not None:
            raise self.error
        return self.reachable


@pytest.fixture
def make_fetcher() -> type[StaticFetcher]:
    return StaticFetcher


@pytest.fixture
def make_gateway() -> type[StaticGateway]:
    return StaticGateway


@pytest.fixture
def mock_http() -> Iterator[Callable[[Callable[[httpx.Request], httpx.Response]], None]]:
    """Route the shared fetcher client through an httpx.MockTransport."""

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> None:
        BaseFetcher._shared_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler)
        )

    yield install

    BaseFetcher._shared_client = None
