# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Stream identity (systems, destinations, partition keys, consumer groups)
- Sequence runs (strictly consecutive and arbitrary)
- Message ids for deduplication
- Attribute values as callers hand them to extractors

Usage:
    from tests.property.conftest import consecutive_runs, message_ids

    @given(run=consecutive_runs)
    def test_consecutive_never_flagged(run: list[int]) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STATE_MACHINE (200), STANDARD (100), SLOW (50), QUICK (20)
# =============================================================================

from __future__ import annotations

from typing import Any

from hypothesis import strategies as st

# =============================================================================
# Stream Identity
# =============================================================================

systems = st.sampled_from(["kafka", "rabbitmq", "sqs", "nats", "temporal", "cloudflare_queues"])

destinations = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="-_."),
    min_size=1,
    max_size=30,
)

consumer_groups = st.none() | st.text(min_size=1, max_size=20)

# Partition keys arrive as whatever the broker client hands over
partition_keys: st.SearchStrategy[Any] = (
    st.none()
    | st.text(max_size=20)
    | st.integers(min_value=0, max_value=10_000)
    | st.text(max_size=20).map(lambda s: s.encode("utf-8"))
)

# =============================================================================
# Sequences
# =============================================================================

sequence_numbers = st.integers(min_value=0, max_value=2**53 - 1)


@st.composite
def _consecutive_runs(draw: st.DrawFn) -> list[int]:
    start = draw(st.integers(min_value=0, max_value=1_000_000))
    length = draw(st.integers(min_value=1, max_value=50))
    return list(range(start, start + length))


consecutive_runs = _consecutive_runs()

arbitrary_runs = st.lists(st.integers(min_value=0, max_value=200), min_size=1, max_size=60)

# =============================================================================
# Message IDs
# =============================================================================

message_ids = st.text(min_size=1, max_size=12)

# Small alphabet so streams repeat ids often
repeating_message_ids = st.lists(st.sampled_from([f"m{i}" for i in range(15)]), min_size=1, max_size=80)

# =============================================================================
# Attribute values
# =============================================================================

attribute_primitives = st.text(max_size=20) | st.booleans() | st.integers() | st.floats(allow_nan=False)

attribute_values: st.SearchStrategy[Any] = (
    st.none()
    | attribute_primitives
    | st.lists(attribute_primitives | st.none(), max_size=5)
    | st.dictionaries(st.text(max_size=8), attribute_primitives, max_size=4)
    | st.binary(max_size=8)
)

attribute_maps = st.dictionaries(st.text(min_size=1, max_size=16), attribute_values, max_size=8)
