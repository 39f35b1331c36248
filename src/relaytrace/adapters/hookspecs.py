# src/relaytrace/adapters/hookspecs.py
"""pluggy hook specifications for messaging adapters.

Adapter plugins implement these hooks to make presets available through
relaytrace.adapters.get_adapter().

Usage (implementing an adapter plugin):
    from relaytrace.adapters.hookspecs import hookimpl

    class RabbitAdapterPlugin:
        @hookimpl
        def relaytrace_get_adapters(self):
            return [MessagingAdapter(name="rabbitmq", consumer=...)]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from relaytrace.adapters.base import MessagingAdapter

PROJECT_NAME = "relaytrace"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for adapter plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class RelaytraceAdapterSpec:
    """Hook specifications for adapter plugins."""

    @hookspec
    def relaytrace_get_adapters(self) -> list["MessagingAdapter"]:  # type: ignore[empty-body]
        """Return messaging adapters.

        Called whenever an adapter is resolved by name. Adapter names must
        be unique across all registered plugins.

        Returns:
            List of MessagingAdapter instances
        """
