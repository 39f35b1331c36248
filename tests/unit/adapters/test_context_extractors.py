# tests/unit/adapters/test_context_extractors.py
"""Tests for Datadog, B3 and X-Ray header decoders."""

import pytest
from opentelemetry.trace import TraceFlags

from relaytrace.adapters.context_extractors import (
    b3_context_extractor,
    datadog_context_extractor,
    xray_context_extractor,
)

B3_TRACE = "80f198ee56343ba864fe8b2a57d3eff7"
B3_SPAN = "e457b5a2e4d86bd1"


class TestDatadog:
    def test_decimal_ids_become_padded_hex(self) -> None:
        ctx = datadog_context_extractor({"x-datadog-trace-id": "123", "x-datadog-parent-id": "456"})

        assert ctx is not None
        assert format(ctx.trace_id, "032x") == f"{123:032x}"
        assert format(ctx.span_id, "016x") == f"{456:016x}"
        assert ctx.is_remote
        assert ctx.trace_flags == TraceFlags.SAMPLED

    @pytest.mark.parametrize(("priority", "sampled"), [("1", True), ("2", True), ("0", False), ("-1", False)])
    def test_sampling_priority(self, priority: str, sampled: bool) -> None:
        ctx = datadog_context_extractor(
            {
                "x-datadog-trace-id": "123",
                "x-datadog-parent-id": "456",
                "x-datadog-sampling-priority": priority,
            }
        )
        assert ctx is not None
        assert ctx.trace_flags.sampled is sampled

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"x-datadog-trace-id": "123"},
            {"x-datadog-trace-id": "abc", "x-datadog-parent-id": "456"},
            {"x-datadog-trace-id": "0", "x-datadog-parent-id": "0"},
        ],
    )
    def test_missing_or_invalid_ids(self, headers: dict[str, str]) -> None:
        assert datadog_context_extractor(headers) is None


class TestB3:
    def test_single_header(self) -> None:
        ctx = b3_context_extractor({"b3": f"{B3_TRACE}-{B3_SPAN}-1"})

        assert ctx is not None
        assert format(ctx.trace_id, "032x") == B3_TRACE
        assert format(ctx.span_id, "016x") == B3_SPAN
        assert ctx.trace_flags.sampled

    @pytest.mark.parametrize("flag", ["0", "d"])
    def test_single_header_unsampled_flags(self, flag: str) -> None:
        ctx = b3_context_extractor({"b3": f"{B3_TRACE}-{B3_SPAN}-{flag}"})
        assert ctx is not None
        assert not ctx.trace_flags.sampled

    def test_single_header_deny_only(self) -> None:
        assert b3_context_extractor({"b3": "0"}) is None

    def test_short_trace_id_is_left_padded(self) -> None:
        ctx = b3_context_extractor({"b3": f"64fe8b2a57d3eff7-{B3_SPAN}"})
        assert ctx is not None
        assert format(ctx.trace_id, "032x") == "000000000000000064fe8b2a57d3eff7"

    def test_multi_header_defaults_to_sampled(self) -> None:
        ctx = b3_context_extractor({"x-b3-traceid": B3_TRACE, "x-b3-spanid": B3_SPAN})
        assert ctx is not None
        assert ctx.trace_flags.sampled

    def test_multi_header_unsampled(self) -> None:
        ctx = b3_context_extractor({"x-b3-traceid": B3_TRACE, "x-b3-spanid": B3_SPAN, "x-b3-sampled": "0"})
        assert ctx is not None
        assert not ctx.trace_flags.sampled

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"x-b3-traceid": B3_TRACE},
            {"x-b3-traceid": "not-hex", "x-b3-spanid": B3_SPAN},
            {"b3": "zz-yy-1"},
        ],
    )
    def test_missing_or_invalid(self, headers: dict[str, str]) -> None:
        assert b3_context_extractor(headers) is None


class TestXRay:
    HEADER = "Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1"

    def test_root_parts_concatenated(self) -> None:
        ctx = xray_context_extractor({"x-amzn-trace-id": self.HEADER})

        assert ctx is not None
        assert format(ctx.trace_id, "032x") == "5759e988bd862e3fe1be46a994272793"
        assert format(ctx.span_id, "016x") == "53995c3f42cd8ad8"
        assert ctx.trace_flags.sampled

    def test_unsampled(self) -> None:
        ctx = xray_context_extractor({"x-amzn-trace-id": self.HEADER.replace("Sampled=1", "Sampled=0")})
        assert ctx is not None
        assert not ctx.trace_flags.sampled

    def test_sampled_defaults_true(self) -> None:
        ctx = xray_context_extractor({"x-amzn-trace-id": "Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8"})
        assert ctx is not None
        assert ctx.trace_flags.sampled

    @pytest.mark.parametrize(
        "value",
        ["", "Root=1-5759e988-bd862e3fe1be46a994272793", "Parent=53995c3f42cd8ad8", "garbage"],
    )
    def test_incomplete_header(self, value: str) -> None:
        assert xray_context_extractor({"x-amzn-trace-id": value}) is None
