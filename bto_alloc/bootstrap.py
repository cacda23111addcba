"""Build the allocation service and its collaborators from configuration."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from bto_alloc.config import AllocConfig
from bto_alloc.exceptions import ConfigurationError
from bto_alloc.repositories.base import EventSink, InMemoryRepository, Repository
from bto_alloc.repositories.json_file import JsonFileRepository
from bto_alloc.service import AllocationService

logger = logging.getLogger(__name__)


def create_repository(config: AllocConfig) -> Repository:
    """Repository for ``config.backend``."""
    if config.backend == "memory":
        return InMemoryRepository()
    if config.backend == "json":
        return JsonFileRepository(config.output.json_data_dir, pretty=config.output.pretty_json)
    if config.backend == "postgres":
        from bto_alloc.repositories.postgres import PostgresRepository

        return PostgresRepository(config.postgres.connection_string)
    raise ConfigurationError(f"Unknown backend {config.backend!r}")


def create_event_sink(config: AllocConfig) -> EventSink | None:
    """Kafka change-log sink when ``publish_events`` is on."""
    if not config.publish_events:
        return None
    from bto_alloc.repositories.kafka import KafkaEventSink

    return KafkaEventSink(config.kafka)


def create_service(
    config: AllocConfig | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> AllocationService:
    """Load state from the configured backend and return a ready service."""
    config = config or AllocConfig.from_env()
    repository = create_repository(config)
    events = create_event_sink(config)
    service = AllocationService.from_repository(repository, events, config.engine, clock)
    logger.info(
        "Allocation service ready: backend=%s events=%s", config.backend, events is not None
    )
    return service
