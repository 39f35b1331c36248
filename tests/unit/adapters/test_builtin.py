# tests/unit/adapters/test_builtin.py
"""Tests for the NATS, Temporal and Cloudflare Queues adapters."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

from relaytrace.adapters.builtin import CLOUDFLARE_QUEUES_ADAPTER, NATS_ADAPTER, TEMPORAL_ADAPTER
from relaytrace.testing.scenarios import make_traceparent


class _GetOnlyHeaders:
    """Header container that only supports get(), like some client wrappers."""

    def __init__(self, values: dict[str, str]) -> None:
        self._values = values

    def get(self, name: str) -> str | None:
        return self._values.get(name)


class _CoreMsg:
    """Core NATS message: metadata raises because there is no JetStream reply subject."""

    subject = "orders.created"
    reply = ""
    headers = None

    @property
    def metadata(self) -> Any:
        raise ValueError("not a JetStream message")


@dataclass
class _Activity:
    workflow_id: str
    run_id: str
    activity_id: str
    task_queue: str
    attempt: int
    activity_type: str


@dataclass
class _QueueMessage:
    id: str
    timestamp: Any
    attempts: int
    body: dict[str, Any] = field(default_factory=dict)


class TestNatsAdapter:
    def test_publish_attributes(self) -> None:
        assert NATS_ADAPTER.producer is not None
        custom = NATS_ADAPTER.producer.custom_attributes
        assert custom is not None

        result = custom(None, ({"subject": "orders.created", "reply_to": "inbox.1", "stream": "ORDERS"},))  # type: ignore[arg-type]

        assert result == {"nats.subject": "orders.created", "nats.reply_to": "inbox.1", "nats.stream": "ORDERS"}

    def test_process_attributes_from_jetstream_metadata(self) -> None:
        assert NATS_ADAPTER.consumer is not None
        custom = NATS_ADAPTER.consumer.custom_attributes
        assert custom is not None
        message = SimpleNamespace(
            subject="orders.created",
            reply="$JS.ACK.ORDERS.billing.1.5.5.0.0",
            metadata=SimpleNamespace(stream="ORDERS", consumer="billing", num_delivered=2, num_pending=7),
        )

        result = custom(None, message)  # type: ignore[arg-type]

        assert result == {
            "nats.subject": "orders.created",
            "nats.reply_to": "$JS.ACK.ORDERS.billing.1.5.5.0.0",
            "nats.stream": "ORDERS",
            "nats.consumer": "billing",
            "nats.delivered_count": 2,
            "nats.pending": 7,
        }

    def test_core_message_without_metadata(self) -> None:
        assert NATS_ADAPTER.consumer is not None
        custom = NATS_ADAPTER.consumer.custom_attributes
        assert custom is not None

        assert custom(None, _CoreMsg()) == {"nats.subject": "orders.created"}  # type: ignore[arg-type]

    def test_headers_from_mapping_drop_non_strings(self) -> None:
        assert NATS_ADAPTER.consumer is not None
        headers_from = NATS_ADAPTER.consumer.headers_from
        assert headers_from is not None
        traceparent = make_traceparent()

        result = headers_from(SimpleNamespace(headers={"traceparent": traceparent, "Nats-Msg-Size": 12}))

        assert result == {"traceparent": traceparent}

    def test_headers_from_get_only_container(self) -> None:
        assert NATS_ADAPTER.consumer is not None
        headers_from = NATS_ADAPTER.consumer.headers_from
        assert headers_from is not None
        traceparent = make_traceparent()

        result = headers_from(SimpleNamespace(headers=_GetOnlyHeaders({"traceparent": traceparent, "other": "x"})))

        assert result == {"traceparent": traceparent}

    def test_headers_missing(self) -> None:
        assert NATS_ADAPTER.consumer is not None
        headers_from = NATS_ADAPTER.consumer.headers_from
        assert headers_from is not None

        assert headers_from(_CoreMsg()) is None
        assert headers_from(SimpleNamespace(headers={})) is None


class TestTemporalAdapter:
    def test_signal_attributes(self) -> None:
        assert TEMPORAL_ADAPTER.producer is not None
        custom = TEMPORAL_ADAPTER.producer.custom_attributes
        assert custom is not None

        result = custom(None, ({"workflow_id": "wf-1", "workflow_run_id": "run-9", "task_queue": "billing"},))  # type: ignore[arg-type]

        assert result == {
            "temporal.workflow_id": "wf-1",
            "temporal.run_id": "run-9",
            "temporal.task_queue": "billing",
        }

    def test_activity_attributes(self) -> None:
        assert TEMPORAL_ADAPTER.consumer is not None
        custom = TEMPORAL_ADAPTER.consumer.custom_attributes
        assert custom is not None

        result = custom(None, _Activity("wf-1", "run-1", "act-3", "billing", 2, "charge_card"))  # type: ignore[arg-type]

        assert result["temporal.activity_id"] == "act-3"
        assert result["temporal.attempt"] == 2
        assert result["temporal.activity_type"] == "charge_card"


class TestCloudflareQueuesAdapter:
    def test_has_no_producer_hooks(self) -> None:
        assert CLOUDFLARE_QUEUES_ADAPTER.producer is None

    def test_datetime_timestamp(self) -> None:
        assert CLOUDFLARE_QUEUES_ADAPTER.consumer is not None
        custom = CLOUDFLARE_QUEUES_ADAPTER.consumer.custom_attributes
        assert custom is not None
        sent = datetime(2026, 1, 1, tzinfo=UTC)

        result = custom(None, _QueueMessage("q-1", sent, 3))  # type: ignore[arg-type]

        assert result == {
            "cloudflare.queue.message_id": "q-1",
            "cloudflare.queue.timestamp_ms": int(sent.timestamp() * 1000),
            "cloudflare.queue.attempts": 3,
        }

    def test_numeric_timestamp(self) -> None:
        assert CLOUDFLARE_QUEUES_ADAPTER.consumer is not None
        custom = CLOUDFLARE_QUEUES_ADAPTER.consumer.custom_attributes
        assert custom is not None

        result = custom(None, {"id": "q-2", "timestamp": 1767225600000.0, "attempts": 1})  # type: ignore[arg-type]

        assert result["cloudflare.queue.timestamp_ms"] == 1767225600000
