"""The message bus interface and the factory that picks an implementation."""

from __future__ import annotations

from typing import Iterator, Mapping, Protocol, runtime_checkable

from .config import get_config
from .models import ConsumeOptions, MessageEvent, PublishOptions
from .rabbitmq import RabbitMqClient


@runtime_checkable
class MessageBusClient(Protocol):
    """What every message bus client offers."""

    def establish_connection(self) -> None:
        """Connect to the broker."""

    def consume(
        self, topic: str, options: ConsumeOptions | None = None
    ) -> Iterator[MessageEvent]:
        """Return an iterator of events arriving on ``topic``."""

    def get_dsn(self) -> str:
        """Return the broker URL."""

    def publish(
        self, topic: str, message: bytes | str, options: PublishOptions | None = None
    ) -> bool:
        """Send ``message`` to ``topic``."""


def new(environ: Mapping[str, str] | None = None) -> MessageBusClient:
    """Create the client for the configured engine; RabbitMQ is the default."""
    config = get_config(environ)
    match config.default.engine:
        case _:
            return RabbitMqClient(config.rabbitmq)