# tests/conftest.py
"""Shared test fixtures.

Tracing fixtures build a local TracerProvider with an in-memory exporter.
The global OpenTelemetry provider is never set, so tests stay isolated from
each other and from anything the interpreter configured.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Tracer

from relaytrace.core.clock import MockClock
from relaytrace.ordering.registry import OrderingRegistry, clear_tracking_state, create_registry

# =============================================================================
# Tracing
# =============================================================================


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> Iterator[TracerProvider]:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider: TracerProvider) -> Tracer:
    return tracer_provider.get_tracer("relaytrace-tests")


def finished_span(exporter: InMemorySpanExporter) -> ReadableSpan:
    """The single span exported so far; fails if there is not exactly one."""
    spans = exporter.get_finished_spans()
    assert len(spans) == 1, f"expected one finished span, got {[s.name for s in spans]}"
    return spans[0]


def span_attributes(span: ReadableSpan) -> dict[str, Any]:
    return dict(span.attributes or {})


def event_names(span: ReadableSpan) -> list[str]:
    return [event.name for event in span.events]


# =============================================================================
# Ordering state and time
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_default_registry() -> Iterator[None]:
    """Consumers built without a registry share the process-wide one."""
    clear_tracking_state()
    yield
    clear_tracking_state()


@pytest.fixture
def registry() -> OrderingRegistry:
    return create_registry()


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=datetime(2026, 1, 1, tzinfo=UTC))


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
