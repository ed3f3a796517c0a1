"""Configuration management for ledger-engine."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_engine.exceptions import ConfigurationError
from ledger_engine.models.ledger import Plan
from ledger_engine.plans import DEFAULT_PLANS

# Decimal places kept by the PostgreSQL money columns
MONEY_SCALE = 8


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "ledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class EngineConfig:
    """Ledger engine behaviour."""

    app_id: str = "default-app"
    max_retries: int = 5
    money_quantum: Decimal = Decimal("0.01")
    plans: tuple[Plan, ...] = DEFAULT_PLANS
    topic_prefix: str = "dev.ledger"
    event_source: str = "ledger-engine"

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigurationError("max_retries must be at least 1")
        if not self.money_quantum.is_finite() or self.money_quantum <= 0:
            raise ConfigurationError("money_quantum must be a positive number")
        if -self.money_quantum.as_tuple().exponent > MONEY_SCALE:
            raise ConfigurationError(f"money_quantum must have at most {MONEY_SCALE} decimal places")


@dataclass
class LedgerConfig:
    """Main configuration for ledger-engine."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        import json
        import os

        from ledger_engine.plans import plans_from_dicts

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_int_env("POSTGRES_PORT", 5432),
            database=os.getenv("POSTGRES_DB", "ledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        plans_str = os.getenv("LEDGER_PLANS")
        if plans_str:
            try:
                plans = plans_from_dicts(json.loads(plans_str))
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"LEDGER_PLANS is not valid JSON: {e}") from e
        else:
            plans = DEFAULT_PLANS

        try:
            quantum = Decimal(os.getenv("LEDGER_MONEY_QUANTUM", "0.01"))
        except InvalidOperation as e:
            raise ConfigurationError("LEDGER_MONEY_QUANTUM is not a number") from e

        engine = EngineConfig(
            app_id=os.getenv("LEDGER_APP_ID", "default-app"),
            max_retries=_int_env("LEDGER_MAX_RETRIES", 5),
            money_quantum=quantum,
            plans=plans,
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.ledger"),
        )

        return cls(
            engine=engine,
            kafka=kafka,
            postgres=postgres,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _int_env(name: str, default: int) -> int:
    import os

    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
