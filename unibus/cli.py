"""Command that publishes a sample event and acknowledges what arrives."""

from __future__ import annotations

import argparse
import json
import logging

from .client import new
from .models import ConsumeOptions, MessageEvent, PublishOptions, new_event

logger = logging.getLogger(__name__)

TOPIC = "rimdesk.product-api"


def build_sample_event() -> MessageEvent:
    """Return the sample product-creation event with its payload."""
    event = new_event(TOPIC, "rimdesk.inventory.create", "rimdesk.product.create")
    event.metadata = {"triggered_by": "bb4ef24b-1699-4452-ad09-f284e57c6049"}
    payload = {
        "product": {
            "id": "bb4ef24b-1699-4452-ad09-f284e57c6049",
            "barcode": "1234567890",
            "name": "Apple iPhone Charger",
            "description": "Apple iPhone Charger Description",
            "supply_price": 800.40,
            "retail_price": 1000.85,
            "type": "product",
            "amount": 1200,
            "category_id": "123",
            "company_id": "3ec34288-5ce8-4974-b05e-6e50a32465bb",
        }
    }
    event.payload = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return event


def main(argv: list[str] | None = None) -> int:
    """Publish the sample event, then consume and acknowledge messages."""
    parser = argparse.ArgumentParser(
        prog="unibus",
        description="Publish a sample event and acknowledge incoming messages.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    client = new()
    try:
        client.establish_connection()
    except ConnectionError as exc:
        logger.error("failed to connect: %s", exc)
        return 1

    event = build_sample_event()
    try:
        client.publish(
            TOPIC,
            event.to_json().encode("utf-8"),
            PublishOptions(content_type="application/json"),
        )
    except Exception as exc:
        logger.error("failed to send message: | %s", exc)
        return 1

    try:
        messages = client.consume(TOPIC, ConsumeOptions(queue_name=TOPIC))
    except Exception as exc:
        logger.error("failed to consume messages :::::: | %s", exc)
        return 1

    for message in messages:
        try:
            message.acknowledger.ack(message.tag, False)
        except Exception as exc:
            logger.error("failed to acknowledge message: %s", exc)
            return 1
    return 0