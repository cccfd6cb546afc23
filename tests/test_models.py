import json
import time

import pytest

from unibus.models import (
    BusEventResponse,
    ConsumeOptions,
    MessageEvent,
    PublishOptions,
    new_event,
    new_event_with_payload,
)


def _millis():
    return time.time_ns() // 1_000_000


def test_new_event_sets_fields_and_timestamp():
    before = _millis()
    evt = new_event("rimdesk.product-api", "rimdesk.inventory.create", "rimdesk.product.create")
    after = _millis()
    assert evt.application == "rimdesk.product-api"
    assert evt.event == "rimdesk.inventory.create"
    assert evt.action == "rimdesk.product.create"
    assert evt.metadata is None
    assert evt.payload is None
    assert before <= evt.timestamp <= after


def test_new_event_with_payload_keeps_payload():
    before = _millis()
    evt = new_event_with_payload("app", "evt", "act", b"body")
    after = _millis()
    assert evt.payload == b"body"
    assert (evt.application, evt.event, evt.action) == ("app", "evt", "act")
    assert before <= evt.timestamp <= after


def test_empty_event_serialises_to_empty_object():
    assert MessageEvent().to_dict() == {}
    assert json.loads(MessageEvent().to_json()) == {}


def test_to_dict_omits_empty_fields():
    evt = MessageEvent(action="act", metadata={}, payload=b"", timestamp=0)
    assert evt.to_dict() == {"action": "act"}


def test_payload_is_base64_on_the_wire():
    evt = MessageEvent(payload=b"hi")
    assert evt.to_dict()["payload"] == "aGk="


def test_json_keys_follow_field_order():
    evt = MessageEvent(
        action="a", application="b", event="c", metadata={"k": 1}, payload=b"x", timestamp=5
    )
    keys = list(json.loads(evt.to_json()).keys())
    assert keys == ["action", "application", "event", "metadata", "payload", "timestamp"]


def test_json_escapes_html_characters():
    evt = MessageEvent(action="<tag>")
    text = evt.to_json()
    assert "<" not in text and ">" not in text
    assert "\\u003c" in text
    assert MessageEvent.from_json(text).action == "<tag>"


def test_json_round_trip():
    evt = MessageEvent(
        action="rimdesk.product.create",
        application="rimdesk.product-api",
        event="rimdesk.inventory.create",
        metadata={"triggered_by": "bb4ef24b-1699-4452-ad09-f284e57c6049"},
        payload=json.dumps({"product": {"name": "Apple iPhone Charger"}}).encode(),
        timestamp=1700000000000,
    )
    assert MessageEvent.from_json(evt.to_json()) == evt
    assert MessageEvent.from_json(evt.to_json().encode()) == evt


def test_str_matches_to_json():
    evt = MessageEvent(action="x", timestamp=3)
    assert str(evt) == evt.to_json()


def test_delivery_fields_not_serialised():
    evt = MessageEvent(action="x", acknowledger=object(), tag=42)
    assert set(evt.to_dict()) == {"action"}


def test_from_dict_ignores_unknown_and_nulls():
    evt = MessageEvent.from_dict({"action": None, "other": 1, "timestamp": None})
    assert evt == MessageEvent()


def test_from_json_rejects_bad_base64():
    with pytest.raises(ValueError):
        MessageEvent.from_json('{"payload":"***"}')


def test_from_json_rejects_non_object():
    with pytest.raises(ValueError):
        MessageEvent.from_json("[1,2]")


def test_from_json_rejects_invalid_json():
    with pytest.raises(ValueError):
        MessageEvent.from_json("{not json")


@pytest.mark.parametrize(
    "data",
    [
        {"action": 1},
        {"metadata": [1]},
        {"payload": 5},
        {"timestamp": 1.5},
        {"timestamp": True},
    ],
)
def test_from_dict_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        MessageEvent.from_dict(data)


def test_from_dict_requires_mapping():
    with pytest.raises(TypeError):
        MessageEvent.from_dict(["action"])


def test_bus_event_response_str():
    assert str(BusEventResponse()) == "{}"


def test_publish_options_to_dict_omits_defaults():
    assert PublishOptions().to_dict() == {}
    opts = PublishOptions(content_type="application/json", durable=True, exchange="ex")
    assert opts.to_dict() == {
        "content_type": "application/json",
        "durable": True,
        "exchange": "ex",
    }


def test_publish_options_args_included_when_present():
    opts = PublishOptions(args={"x-max-length": 10})
    assert opts.to_dict() == {"args": {"x-max-length": 10}}


def test_consume_options_to_dict():
    assert ConsumeOptions().to_dict() == {}
    opts = ConsumeOptions(auto_ack=True, queue_name="rimdesk.product-api", no_local=True)
    assert opts.to_dict() == {
        "auto_ack": True,
        "queue_name": "rimdesk.product-api",
        "no_local": True,
    }