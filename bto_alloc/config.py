"""Configuration management for bto-alloc."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bto_alloc.exceptions import ConfigurationError

BACKENDS = ("memory", "json", "postgres")


@dataclass
class EngineConfig:
    """Business rule parameters for the allocation engine."""

    single_min_age: int = 35
    married_min_age: int = 21
    max_staff_slots: int = 10
    # Raise on ledger invariant violations instead of rejecting the call
    strict_invariants: bool = True


@dataclass
class KafkaConfig:
    """Kafka producer configuration for the change-log sink."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "bto.allocation"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "bto"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """File output configuration."""

    json_data_dir: Path = field(default_factory=lambda: Path("data"))
    pretty_json: bool = False


@dataclass
class AllocConfig:
    """Main configuration for bto-alloc."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    backend: str = "memory"
    publish_events: bool = False
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown backend {self.backend!r}, expected one of {', '.join(BACKENDS)}"
            )

    @classmethod
    def from_env(cls) -> "AllocConfig":
        """Create config from environment variables."""
        import os

        engine = EngineConfig(
            single_min_age=int(os.getenv("SINGLE_MIN_AGE", "35")),
            married_min_age=int(os.getenv("MARRIED_MIN_AGE", "21")),
            max_staff_slots=int(os.getenv("MAX_STAFF_SLOTS", "10")),
            strict_invariants=os.getenv("STRICT_INVARIANTS", "true").lower() == "true",
        )

        output = OutputConfig(
            json_data_dir=Path(os.getenv("BTO_DATA_DIR", "data")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "bto"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("TOPIC_PREFIX", "bto.allocation"),
        )

        return cls(
            engine=engine,
            output=output,
            postgres=postgres,
            kafka=kafka,
            backend=os.getenv("BTO_BACKEND", "memory"),
            publish_events=os.getenv("PUBLISH_EVENTS", "false").lower() == "true",
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
