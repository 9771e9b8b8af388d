"""
Pytest configuration and fixtures
"""

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx
import pytest

from ingestion.http_client import HttpClientService
from ingestion.mappers import FieldMapper
from ingestion.sources import IngestionSource


Route = Union[bytes, int, Callable[[httpx.Request], httpx.Response]]


class InMemoryRepository:
    """Collects saved batches; fails the calls listed in ``fail_on`` (1-based)"""

    def __init__(self, fail_on: Iterable[int] = (), delay: float = 0.0):
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls = 0
        self.batches: List[List[Any]] = []

    async def save_all(self, records: Sequence[Any]) -> None:
        self.calls += 1
        call = self.calls
        await asyncio.sleep(self.delay)
        if call in self.fail_on:
            raise RuntimeError(f"batch {call} rejected")
        self.batches.append(list(records))

    @property
    def records(self) -> List[Any]:
        return [record for batch in self.batches for record in batch]


class FailingByteStream(httpx.AsyncByteStream):
    """Yields the given chunks, then fails like a dropped connection"""

    def __init__(self, chunks: List[bytes]):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise httpx.ReadError("connection reset by peer")


def json_body(elements: List[Any]) -> bytes:
    return json.dumps(elements).encode("utf-8")


def make_records(count: int, start: int = 0) -> List[Dict[str, Any]]:
    return [
        {"id": f"item_{i}", "name": f"Item {i}", "price": i * 1.5, "category": "test"}
        for i in range(start, start + count)
    ]


def build_http_client(routes: Dict[str, Route]) -> HttpClientService:
    """HttpClientService backed by httpx.MockTransport; unknown URLs return 404"""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, json={"detail": "not found"})
        if isinstance(route, int):
            return httpx.Response(route)
        if isinstance(route, bytes):
            return httpx.Response(200, content=route)
        return route(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpClientService(client=client)


def catalog_source(name: str, url: str, mapper: Optional[Any] = None) -> IngestionSource:
    return IngestionSource(name=name, url=url, mapper=mapper or FieldMapper(name))


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def mock_api_data():
    """Mock API response data"""
    return [
        {
            "id": "api_001",
            "name": "Test Product 1",
            "description": "This is a test product",
            "category": "electronics",
            "price": 99.99,
            "created_at": "2024-01-15T10:00:00Z",
            "tags": ["new", "featured"]
        },
        {
            "id": "api_002",
            "name": "Test Product 2",
            "description": "Another test product",
            "category": "books",
            "price": "19.99",
            "created_at": "2024-01-15T11:00:00Z",
            "tags": "bestseller, paperback"
        }
    ]


@pytest.fixture
def mock_feed_data():
    """Mock article feed data"""
    return [
        {
            "guid": "urn:article:1",
            "title": "Markets rally",
            "summary": "Stocks closed higher",
            "link": "https://news.example.com/1",
            "author": "Desk",
            "published": "2024-01-15T09:30:00+00:00",
            "content": "Full text"
        }
    ]
