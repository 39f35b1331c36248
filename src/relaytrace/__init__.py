"""
relaytrace: correlation-aware observability for message producers and consumers.

Wraps send/process callables in OpenTelemetry spans, propagates trace context
across the broker, and reports ordering, duplication, dead-letter and
consumer-group diagnostics without changing delivery semantics.
"""

__version__ = "0.1.0"
