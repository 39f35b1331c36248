# src/relaytrace/testing/__init__.py
"""Test infrastructure for code instrumented with relaytrace.

- RecordingSpan: span double capturing everything written to it
- MockMessageBroker / MockMessage: in-memory topics with auto offsets
- Scenario builders: trace headers, mock span contexts and links, batches,
  rebalances, out-of-order and duplicate deliveries
- MessagingTestHarness: records producer/consumer/rebalance calls and
  asserts on them

Usage:
    from relaytrace.testing import MockMessageBroker, create_out_of_order_scenario
    from relaytrace.testing import RecordingSpan, create_mock_producer_link
"""

from relaytrace.testing.broker import MockMessage, MockMessageBroker
from relaytrace.testing.harness import (
    MessagingTestHarness,
    RecordedConsumerCall,
    RecordedProducerCall,
    RecordedRebalance,
)
from relaytrace.testing.recording import RecordedEvent, RecordingSpan
from relaytrace.testing.scenarios import (
    create_duplicate_scenario,
    create_mock_message_batch,
    create_mock_producer_link,
    create_mock_span_context,
    create_out_of_order_scenario,
    create_rebalance_scenario,
    extract_span_id_from_header,
    extract_trace_id_from_header,
    make_traceparent,
    random_span_id,
    random_trace_id,
)

__all__ = [
    "MessagingTestHarness",
    "MockMessage",
    "MockMessageBroker",
    "RecordedConsumerCall",
    "RecordedEvent",
    "RecordedProducerCall",
    "RecordedRebalance",
    "RecordingSpan",
    "create_duplicate_scenario",
    "create_mock_message_batch",
    "create_mock_producer_link",
    "create_mock_span_context",
    "create_out_of_order_scenario",
    "create_rebalance_scenario",
    "extract_span_id_from_header",
    "extract_trace_id_from_header",
    "make_traceparent",
    "random_span_id",
    "random_trace_id",
]
