"""Configuration loaded from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROD = "production"
DEV = "development"


@dataclass
class DefaultConfig:
    """General settings."""

    engine: str = ""


@dataclass
class KafkaAuth:
    """Kafka authentication details."""

    security_protocol: str = ""
    mechanism: str = ""
    username: str = ""
    password: str = ""


@dataclass
class KafkaExtras:
    """Additional Kafka settings."""

    jaas_config: str = ""


@dataclass
class KafkaConsumer:
    """Kafka consumer settings."""

    group: str = ""
    start: str = ""


@dataclass
class KafkaConfig:
    """Kafka settings."""

    servers: str = ""
    auth_required: bool = False
    topics: list[str] = field(default_factory=list)
    auth: KafkaAuth = field(default_factory=KafkaAuth)
    extras: KafkaExtras = field(default_factory=KafkaExtras)
    consumer: KafkaConsumer = field(default_factory=KafkaConsumer)


@dataclass
class RabbitMqAuth:
    """RabbitMQ credentials."""

    username: str = ""
    password: str = ""


@dataclass
class RabbitMQConfig:
    """RabbitMQ connection settings."""

    host: str = ""
    port: str = ""
    exchange: str = ""
    protocol: str = ""
    auth: RabbitMqAuth = field(default_factory=RabbitMqAuth)


@dataclass
class Config:
    """The whole configuration."""

    default: DefaultConfig = field(default_factory=DefaultConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    rabbitmq: RabbitMQConfig = field(default_factory=RabbitMQConfig)


def get_config(environ: Mapping[str, str] | None = None) -> Config:
    """Read the configuration from ``environ``.

    Without ``environ``, a ``.env`` file is loaded (never overriding variables
    already set) and the process environment is used.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    cfg = Config(
        default=DefaultConfig(engine=environ.get("ENGINE", "")),
        rabbitmq=RabbitMQConfig(
            host=environ.get("RABBITMQ_HOST", ""),
            port=environ.get("RABBITMQ_PORT", ""),
            exchange=environ.get("RABBITMQ_EXCHANGE", ""),
            protocol=environ.get("RABBITMQ_SCHEME", ""),
            auth=RabbitMqAuth(
                username=environ.get("RABBITMQ_AUTH_USERNAME", ""),
                password=environ.get("RABBITMQ_AUTH_PASSWORD", ""),
            ),
        ),
    )
    logger.info("[💨💨] Rimbus Engine Loaded: '%s' [💨💨]", cfg.default.engine)
    return cfg