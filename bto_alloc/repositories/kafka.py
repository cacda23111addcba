"""Kafka change-log sink for committed allocation events."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from bto_alloc.config import KafkaConfig
from bto_alloc.exceptions import RepositoryError
from bto_alloc.models.base import Event
from bto_alloc.repositories.serialization import to_dict

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaEventSink:
    """Publish ``Event`` envelopes to ``<topic_prefix>.<entity>`` topics.

    Messages are keyed by listing id so that every change to one listing
    lands on the same partition in commit order.
    """

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()

    def topic_for(self, event: Event) -> str:
        # application.decided -> bto.allocation.application
        entity = event.event_type.split(".", 1)[0]
        return f"{self.config.topic_prefix}.{entity}"

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def publish(self, event: Event, key: str | None = None) -> None:
        """Queue one event.

        Raises
        ------
        RepositoryError
            If the producer refuses the message (full queue, broker error).
        """
        topic = self.topic_for(event)
        value = json.dumps(to_dict(event), ensure_ascii=False, default=str).encode("utf-8")

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            self.stats.failed += 1
            raise RepositoryError(f"Cannot publish {event.event_type} to {topic}: {e}") from e

        self.stats.sent += 1
        self.producer.poll(0)

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
