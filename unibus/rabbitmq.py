"""RabbitMQ implementation of the message bus client."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import pika
import pika.exceptions

from .config import RabbitMQConfig
from .models import ConsumeOptions, MessageEvent, PublishOptions

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
"""Failed attempts tolerated before connecting or reconnecting gives up."""

_BROKER_ERRORS = (pika.exceptions.AMQPError, OSError)


def _dial(dsn: str) -> Any:
    return pika.BlockingConnection(pika.URLParameters(dsn))


def _close_quietly(resource: Any, what: str) -> None:
    if resource is None or resource.is_closed:
        return
    try:
        resource.close()
    except _BROKER_ERRORS as exc:
        logger.warning("Failed to close RabbitMQ %s: %s", what, exc)


@dataclass(frozen=True)
class _ChannelAcknowledger:
    """Acknowledges deliveries on the channel they arrived on."""

    channel: Any

    def ack(self, tag: int, multiple: bool = False) -> None:
        self.channel.basic_ack(delivery_tag=tag, multiple=multiple)

    def nack(self, tag: int, multiple: bool = False, requeue: bool = True) -> None:
        self.channel.basic_nack(delivery_tag=tag, multiple=multiple, requeue=requeue)

    def reject(self, tag: int, requeue: bool = True) -> None:
        self.channel.basic_reject(delivery_tag=tag, requeue=requeue)


class RabbitMqClient:
    """A message bus client backed by a RabbitMQ broker.

    ``connection_factory`` takes a DSN and returns an open connection; by
    default a blocking pika connection is made.
    """

    def __init__(
        self, config: RabbitMQConfig, connection_factory: Callable[[str], Any] | None = None
    ) -> None:
        self._config = config
        self._connection_factory = connection_factory or _dial
        self._connection: Any = None
        self._channel: Any = None
        self._lock = threading.RLock()
        self._closed = threading.Event()

    @property
    def engine(self) -> Any:
        """The underlying broker connection, or None before connecting."""
        return self._connection

    def get_dsn(self) -> str:
        """Build the broker URL from the configuration."""
        cfg = self._config
        dsn = f"{cfg.protocol}://{cfg.auth.username}:{cfg.auth.password}@{cfg.host}:{cfg.port}/"
        logger.debug("RabbitMQ DSN: %s", dsn)
        return dsn

    def establish_connection(self) -> None:
        """Connect to the broker, backing off quadratically between failures.

        Raises ConnectionError once more than MAX_RETRIES attempts have failed
        or when no channel can be opened.
        """
        dsn = self.get_dsn()
        failures = 0
        while True:
            try:
                connection = self._connection_factory(dsn)
                break
            except _BROKER_ERRORS as exc:
                failures += 1
                logger.warning("RabbitMQ connection failed: %s", exc)
                if failures > MAX_RETRIES:
                    raise ConnectionError(
                        f"failed to connect to RabbitMQ after {failures} attempts"
                    ) from exc
                time.sleep(failures**2)

        logger.info("Connected to RabbitMQ!")
        with self._lock:
            self._connection = connection
            try:
                self._channel = connection.channel()
            except _BROKER_ERRORS as exc:
                raise ConnectionError(f"failed to create channel: {exc}") from exc
            self._closed.clear()

    def publish(
        self, topic: str, message: bytes | str, options: PublishOptions | None = None
    ) -> bool:
        """Declare the ``topic`` queue and publish ``message`` to it."""
        options = options or PublishOptions()
        body = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        channel = self._require_channel()
        queue_name = self._declare(channel, topic, options)
        channel.basic_publish(
            exchange=options.exchange,
            routing_key=queue_name,
            body=body,
            properties=pika.BasicProperties(content_type=options.content_type or None),
            mandatory=options.mandatory,
        )
        logger.info("--- Sent to Queue: %s --- [x] Sent %r ---", queue_name, body)
        return True

    def consume(
        self, topic_name: str, options: ConsumeOptions | None = None
    ) -> Iterator[MessageEvent]:
        """Declare the ``topic_name`` queue and return an iterator of its events.

        Declaration errors are raised here. The iterator reconnects when the
        connection drops, skips bodies that are not valid events, and stops
        once the client is closed or on an interrupt, which closes the client.
        """
        options = options or ConsumeOptions()
        logger.info("Consuming messages from topic %s", topic_name)
        queue_name = self._declare(self._require_channel(), topic_name, options)
        return self._deliveries(queue_name, options)

    def close(self) -> None:
        """Close the channel and connection; running consumers stop."""
        with self._lock:
            self._closed.set()
            _close_quietly(self._channel, "channel")
            _close_quietly(self._connection, "connection")

    def __enter__(self) -> RabbitMqClient:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _require_channel(self) -> Any:
        if self._channel is None:
            raise RuntimeError("not connected: call establish_connection() first")
        return self._channel

    @staticmethod
    def _declare(channel: Any, topic: str, options: PublishOptions | ConsumeOptions) -> str:
        try:
            queue_name = channel.queue_declare(
                queue=topic,
                durable=options.durable,
                exclusive=options.exclusive,
                auto_delete=options.auto_delete,
                arguments=options.args,
            ).method.queue
            if options.exchange:
                channel.queue_bind(
                    queue=queue_name,
                    exchange=options.exchange,
                    routing_key=topic,
                    arguments=options.args,
                )
        except _BROKER_ERRORS as exc:
            logger.error("Failed to declare or bind queue for topic %s: %s", topic, exc)
            raise
        return queue_name

    def _needs_reconnect(self) -> bool:
        return any(
            r is None or r.is_closed for r in (self._channel, self._connection)
        )

    def _reconnect(self) -> None:
        dsn = self.get_dsn()
        attempts = 0
        while True:
            attempts += 1
            connection = None
            try:
                connection = self._connection_factory(dsn)
                self._channel = connection.channel()
                self._connection = connection
                logger.info("Reconnected to RabbitMQ successfully!")
                return
            except _BROKER_ERRORS as exc:
                _close_quietly(connection, "connection")
                if attempts > MAX_RETRIES:
                    raise ConnectionError(
                        f"failed to reconnect after {attempts} attempts: {exc}"
                    ) from exc
            logger.info("Reconnection attempt %d failed, backing off...", attempts)
            time.sleep(attempts)

    def _deliveries(self, queue_name: str, options: ConsumeOptions) -> Iterator[MessageEvent]:
        while not self._closed.is_set():
            with self._lock:
                if self._needs_reconnect():
                    logger.warning("Connection or channel closed, attempting to reconnect...")
                    self._reconnect()
                channel = self._channel
            try:
                for method, _properties, body in channel.consume(
                    queue=queue_name,
                    auto_ack=options.auto_ack,
                    exclusive=options.exclusive,
                    arguments=options.args,
                ):
                    try:
                        event = MessageEvent.from_json(body)
                    except ValueError as exc:
                        logger.warning("Failed to unmarshal message: %s", exc)
                        continue
                    event.acknowledger = _ChannelAcknowledger(channel)
                    event.tag = method.delivery_tag
                    yield event
                    if self._closed.is_set():
                        return
            except KeyboardInterrupt:
                logger.warning("Caught interrupt: initiating shutdown")
                self.close()
                return
            except _BROKER_ERRORS as exc:
                logger.warning("Failed to consume messages: %s", exc)
                time.sleep(1)