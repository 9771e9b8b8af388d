"""
End-to-end ingestion tests: mock HTTP transport -> pipeline -> in-memory storage
"""

import asyncio
import logging
import httpx
import pytest

from conftest import (
    FailingByteStream,
    InMemoryRepository,
    build_http_client,
    catalog_source,
    json_body,
    make_records,
)
from core.exceptions import MappingError, SourceFetchError
from ingestion.mappers import FieldMapper
from ingestion.pipeline import SourcePipeline, SourceReport
from ingestion.service import IngestionService
from models.base import IngestionStatus

URL_A = "https://source-a.example.com/items.json"
URL_B = "https://source-b.example.com/items.json"


class ExplodingMapper(FieldMapper):
    """Raises on the element whose id is ``explode_at``"""

    def __init__(self, source_name, explode_at):
        super().__init__(source_name)
        self.explode_at = explode_at

    def map(self, raw):
        if raw.get("id") == self.explode_at:
            raise KeyError("unexpected shape")
        return super().map(raw)


@pytest.mark.asyncio
async def test_12000_records_make_three_batches():
    repository = InMemoryRepository(delay=0.001)
    http_client = build_http_client({URL_A: json_body(make_records(12000))})
    pipeline = SourcePipeline(repository, http_client, batch_size=5000, max_concurrent_batches=3)

    report = await pipeline.run(catalog_source("source_a", URL_A))

    assert sorted(len(b) for b in repository.batches) == [2000, 5000, 5000]
    assert report.status == IngestionStatus.COMPLETED
    assert report.batches_submitted == 3
    assert report.batches_succeeded == 3
    assert report.records_written == 12000
    assert len({r.external_id for r in repository.records}) == 12000


@pytest.mark.asyncio
async def test_skipped_elements_never_reach_storage():
    elements = make_records(5) + [None, "noise", {"name": "no id"}, 17] + make_records(3, start=5)
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: json_body(elements)})
    pipeline = SourcePipeline(repository, http_client, batch_size=3, max_concurrent_batches=2)

    report = await pipeline.run(catalog_source("source_a", URL_A))

    assert report.elements_read == 12
    assert report.records_skipped == 4
    assert report.records_mapped == 8
    assert sorted(len(b) for b in repository.batches) == [2, 3, 3]
    assert sorted(r.external_id for r in repository.records) == sorted(
        f"item_{i}" for i in range(8)
    )


@pytest.mark.asyncio
async def test_exact_multiple_has_no_undersized_batch():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: json_body(make_records(20))})
    pipeline = SourcePipeline(repository, http_client, batch_size=5, max_concurrent_batches=3)

    report = await pipeline.run(catalog_source("source_a", URL_A))

    assert [len(b) for b in repository.batches] == [5, 5, 5, 5]
    assert report.batches_submitted == 4


@pytest.mark.asyncio
async def test_empty_array_writes_nothing():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: b"[]"})
    pipeline = SourcePipeline(repository, http_client, batch_size=5, max_concurrent_batches=3)

    report = await pipeline.run(catalog_source("source_a", URL_A))

    assert report.status == IngestionStatus.COMPLETED
    assert repository.calls == 0


@pytest.mark.asyncio
async def test_in_flight_writes_never_exceed_ceiling():
    in_flight = 0
    peak = 0
    saved = []

    class TrackingRepository:
        async def save_all(self, records):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            saved.append(len(records))
            in_flight -= 1

    http_client = build_http_client({URL_A: json_body(make_records(95))})
    pipeline = SourcePipeline(TrackingRepository(), http_client, batch_size=10, max_concurrent_batches=3)

    await pipeline.run(catalog_source("source_a", URL_A))

    assert peak <= 3
    assert sum(saved) == 95


@pytest.mark.asyncio
async def test_batch_failure_does_not_stop_later_batches(caplog):
    repository = InMemoryRepository(fail_on={2, 4})
    http_client = build_http_client({URL_A: json_body(make_records(23))})
    pipeline = SourcePipeline(repository, http_client, batch_size=5, max_concurrent_batches=2)

    report = await pipeline.run(catalog_source("source_a", URL_A))

    assert report.status == IngestionStatus.COMPLETED
    assert report.batches_submitted == 5
    assert report.batches_failed == 2
    assert report.batches_succeeded == 3
    assert report.records_failed == 10
    assert report.records_written == 13
    assert caplog.text.count("Failed to save batch") == 2


@pytest.mark.asyncio
async def test_mapper_error_halts_source_after_draining_dispatched_writes():
    repository = InMemoryRepository(delay=0.001)
    http_client = build_http_client({URL_A: json_body(make_records(20))})
    pipeline = SourcePipeline(repository, http_client, batch_size=5, max_concurrent_batches=3)
    source = catalog_source("source_a", URL_A, ExplodingMapper("source_a", "item_7"))

    with pytest.raises(MappingError) as exc_info:
        await pipeline.run(source)

    assert exc_info.value.context["element_index"] == 7
    # First batch (items 0-4) was dispatched and is drained; items 5-6 were still buffered
    assert repository.calls == 1
    assert [r.external_id for r in repository.records] == [f"item_{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_failing_source_does_not_block_next_source(caplog):
    repository = InMemoryRepository()
    http_client = build_http_client({
        URL_A: json_body(make_records(10)),
        URL_B: json_body(make_records(12, start=100)),
    })
    service = IngestionService(repository, http_client, batch_size=5, max_concurrent_batches=3)
    service.register_source(catalog_source("source_a", URL_A, ExplodingMapper("source_a", "item_3")))
    service.register_source(catalog_source("source_b", URL_B))

    await service.ingest_all()

    report_a, report_b = service.last_reports
    assert report_a.status == IngestionStatus.FAILED
    assert "MappingError" in report_a.error_message
    assert report_b.status == IngestionStatus.COMPLETED
    assert report_b.records_written == 12
    assert sorted(r.external_id for r in repository.records if r.source_name == "source_b") == sorted(
        f"item_{i}" for i in range(100, 112)
    )
    assert "Failed ingestion for source_a" in caplog.text


@pytest.mark.asyncio
async def test_http_error_status_fails_only_that_source():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: 503, URL_B: json_body(make_records(4))})
    service = IngestionService(repository, http_client, batch_size=5, max_concurrent_batches=3)
    service.register_source(catalog_source("source_a", URL_A))
    service.register_source(catalog_source("source_b", URL_B))

    await service.ingest_all()

    report_a, report_b = service.last_reports
    assert report_a.status == IngestionStatus.FAILED
    assert "503" in report_a.error_message
    assert report_b.status == IngestionStatus.COMPLETED
    assert len(repository.records) == 4


@pytest.mark.asyncio
async def test_cancelled_source_is_reported_failed_after_draining():
    started = asyncio.Event()
    release = asyncio.Event()
    saved = []

    class GatedRepository:
        async def save_all(self, records):
            started.set()
            await release.wait()
            saved.append(len(records))

    http_client = build_http_client({URL_A: json_body(make_records(3))})
    pipeline = SourcePipeline(GatedRepository(), http_client, batch_size=1, max_concurrent_batches=1)
    report = SourceReport(source_name="source_a")

    task = asyncio.create_task(pipeline.run(catalog_source("source_a", URL_A), report))
    await started.wait()
    task.cancel()
    await asyncio.sleep(0)
    release.set()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert report.status == IngestionStatus.FAILED
    assert report.error_message == "Ingestion cancelled"
    assert report.completed_at is not None
    assert saved == [1]
    assert report.batches_succeeded == 1


@pytest.mark.asyncio
async def test_not_modified_status_raises_fetch_error():
    repository = InMemoryRepository()
    pipeline = SourcePipeline(repository, build_http_client({URL_A: 304}), batch_size=5, max_concurrent_batches=1)

    with pytest.raises(SourceFetchError) as exc_info:
        await pipeline.run(catalog_source("source_a", URL_A))

    assert exc_info.value.context["status_code"] == 304
    assert repository.calls == 0


@pytest.mark.asyncio
async def test_unknown_url_raises_fetch_error():
    pipeline = SourcePipeline(InMemoryRepository(), build_http_client({}), batch_size=5, max_concurrent_batches=1)

    with pytest.raises(SourceFetchError) as exc_info:
        await pipeline.run(catalog_source("source_a", URL_A))

    assert exc_info.value.context["status_code"] == 404


@pytest.mark.asyncio
async def test_transport_error_after_complete_body_is_logged_only(caplog):
    body = json_body(make_records(7))
    http_client = build_http_client({
        URL_A: lambda request: httpx.Response(200, stream=FailingByteStream([body[:40], body[40:]])),
    })
    repository = InMemoryRepository()
    pipeline = SourcePipeline(repository, http_client, batch_size=5, max_concurrent_batches=3)

    with caplog.at_level(logging.ERROR):
        report = await pipeline.run(catalog_source("source_a", URL_A))

    assert report.status == IngestionStatus.COMPLETED
    assert report.stream_errors == 1
    assert report.records_written == 7
    assert "Stream error for source_a" in caplog.text


@pytest.mark.asyncio
async def test_transport_error_mid_body_fails_source():
    body = json_body(make_records(12))
    http_client = build_http_client({
        URL_A: lambda request: httpx.Response(200, stream=FailingByteStream([body[: len(body) // 2]])),
        URL_B: json_body(make_records(2)),
    })
    repository = InMemoryRepository()
    service = IngestionService(repository, http_client, batch_size=100, max_concurrent_batches=3)
    service.register_source(catalog_source("source_a", URL_A))
    service.register_source(catalog_source("source_b", URL_B))

    await service.ingest_all()

    report_a, report_b = service.last_reports
    assert report_a.status == IngestionStatus.FAILED
    assert report_a.stream_errors == 1
    assert "StreamError" in report_a.error_message
    assert report_b.status == IngestionStatus.COMPLETED
    assert all(r.source_name == "source_b" for r in repository.records)


@pytest.mark.asyncio
async def test_sources_run_in_registration_order_one_at_a_time():
    order = []

    class OrderRepository:
        async def save_all(self, records):
            order.append(records[0].source_name)
            await asyncio.sleep(0.001)

    routes = {f"https://s{i}.example.com/": json_body(make_records(3)) for i in range(3)}
    service = IngestionService(OrderRepository(), build_http_client(routes), batch_size=1, max_concurrent_batches=3)
    for i in range(3):
        service.register_source(catalog_source(f"s{i}", f"https://s{i}.example.com/"))

    await service.ingest_all()

    assert order == ["s0"] * 3 + ["s1"] * 3 + ["s2"] * 3


@pytest.mark.asyncio
async def test_rerun_duplicates_writes():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: json_body(make_records(6))})
    service = IngestionService(repository, http_client, batch_size=4, max_concurrent_batches=3)
    service.register_source(catalog_source("source_a", URL_A))

    await service.ingest_all()
    await service.ingest_all()

    assert len(repository.records) == 12
    assert repository.calls == 4


@pytest.mark.asyncio
async def test_duplicate_source_names_are_both_ingested():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: json_body(make_records(2))})
    service = IngestionService(repository, http_client, batch_size=10, max_concurrent_batches=1)
    service.register_source(catalog_source("dup", URL_A))
    service.register_source(catalog_source("dup", URL_A))

    await service.ingest_all()

    assert len(service.sources) == 2
    assert len(repository.records) == 4


@pytest.mark.asyncio
async def test_requested_run_blocks_a_second_request_until_it_finishes():
    repository = InMemoryRepository()
    http_client = build_http_client({URL_A: json_body(make_records(3))})
    service = IngestionService(repository, http_client, batch_size=5, max_concurrent_batches=1)
    service.register_source(catalog_source("source_a", URL_A))

    assert service.request_run() is True
    # Not started yet, but already reserved
    assert service.is_running
    assert service.request_run() is False

    await service.ingest_all()

    assert not service.is_running
    assert len(repository.records) == 3
    assert service.request_run() is True
