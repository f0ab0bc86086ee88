"""
Pytest fixtures for synteny adapter tests.

Provides alignment record builders and a fake REST endpoint served
through httpx.MockTransport.
"""
import asyncio
from typing import Any, Optional

import httpx
import pytest

from schemas import AdapterConfig, Region

API_URL = "https://synteny.example.org/api/alignments"


def make_alignment(
    query: tuple = ("chr1", 1000, 1500),
    target: tuple = ("chr5", 3000, 3500),
    strand: Any = "+",
    **extra: Any,
) -> dict:
    """Build a raw macro-synteny alignment record."""
    record = {
        "query": {"name": query[0], "start": query[1], "end": query[2], "length": 50000},
        "target": {"name": target[0], "start": target[1], "end": target[2], "length": 60000},
        "strand": strand,
        "numResidueMatches": 450,
        "alignmentBlockLength": 500,
        "mappingQuality": 60,
    }
    record.update(extra)
    return record


class FakeApi:
    """Records incoming requests and answers with a fixed JSON body."""

    def __init__(self, body: Optional[dict] = None, status_code: int = 200):
        self.body = body if body is not None else {"alignments": [make_alignment()]}
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        # When set to an asyncio.Event, responses wait until it fires
        self.gate: Optional[asyncio.Event] = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


async def consume(adapter, region: Region, options: Optional[dict] = None) -> list:
    return [feature async for feature in adapter.get_features(region, options)]


def collect(adapter, region: Region, options: Optional[dict] = None) -> list:
    return asyncio.run(consume(adapter, region, options))


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def config():
    return AdapterConfig(
        url=API_URL,
        assembly_names=["A", "B"],
        client_side_filter=False,
        append_region_params=True,
    )


@pytest.fixture
def region():
    return Region(ref_name="chr1", start=1000, end=2000, assembly_name="A")
