"""
Streaming bulk ingestion of remote JSON arrays.

Modules:
    sources: IngestionSource and the RecordMapper protocol
    http_client: Streaming HTTP client (httpx)
    json_stream: Lazy top-level array element parsing (ijson)
    mappers: Field-preset mappers into the unified schema
    batcher: Fixed-size grouping of mapped records
    limiter: Bounded concurrency for batch writes
    repository: Batch persistence (SQLAlchemy async)
    pipeline: Per-source driver (stream -> map -> batch -> write -> drain)
    service: Sequential orchestrator over registered sources
    bootstrap: Service wiring from settings
    scheduler: APScheduler integration for periodic runs

Architecture:
    Sources run one after another. Within a source, elements are pulled
    one at a time, mapped, and grouped into batches; each full batch is
    written in the background and the pull loop pauses while the number
    of unresolved writes is at the ceiling. At stream end the trailing
    batch is flushed and every write is awaited before the next source.

    Failures are isolated: a failed batch is logged and counted, a failed
    source is logged and the run moves on. Nothing is retried.

Usage:
    from ingestion.service import IngestionService
    from ingestion.sources import IngestionSource
    from ingestion.mappers import build_mapper

Example:
    service = IngestionService(repository, HttpClientService())
    service.register_source(
        IngestionSource(
            name="coingecko_markets",
            url="https://api.coingecko.com/api/v3/coins/markets?vs_currency=usd",
            mapper=build_mapper("catalog", "coingecko_markets"),
        )
    )
    await service.ingest_all()
"""

__all__ = [
    "IngestionSource",
    "RecordMapper",
    "FieldMapper",
    "Batcher",
    "ConcurrencyLimiter",
    "HttpClientService",
    "PostgresUnifiedDataRepository",
    "SourcePipeline",
    "SourceReport",
    "IngestionService",
    "IngestionScheduler",
]
