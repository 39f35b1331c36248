# src/relaytrace/adapters/registry.py
"""Adapter discovery through pluggy hooks.

Usage:
    from relaytrace.adapters import get_adapter

    adapter = get_adapter("nats")
    consume = trace_consumer(ConsumerConfig(
        system="nats",
        destination="orders.created",
        adapter=adapter.consumer,
    ))
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from relaytrace.adapters.base import MessagingAdapter
from relaytrace.adapters.builtin import BuiltinAdaptersPlugin
from relaytrace.adapters.hookspecs import PROJECT_NAME, RelaytraceAdapterSpec
from relaytrace.contracts.errors import AdapterRegistrationError, MessagingConfigError

logger = structlog.get_logger(__name__)


def discover_adapters(plugins: Iterable[Any] = ()) -> dict[str, MessagingAdapter]:
    """Build the name -> adapter registry from the built-ins plus plugins.

    Args:
        plugins: Additional plugin objects implementing
            ``relaytrace_get_adapters``.

    Returns:
        Mapping of adapter name to adapter.

    Raises:
        AdapterRegistrationError: If a plugin fails validation, its hook
            raises or returns a non-iterable, it yields something other than
            a MessagingAdapter, or two adapters share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(RelaytraceAdapterSpec)

    for plugin in [BuiltinAdaptersPlugin(), *list(plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook signature mismatch
            # ValueError: plugin object registered twice
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise AdapterRegistrationError(type(plugin).__name__, f"Invalid adapter plugin: {e}") from e

    registry: dict[str, MessagingAdapter] = {}
    for hook_impl in plugin_manager.hook.relaytrace_get_adapters.get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            adapters = hook_impl.function()
        except Exception as e:
            raise AdapterRegistrationError(plugin_name, f"relaytrace_get_adapters failed: {e}") from e

        if adapters is None or isinstance(adapters, (str, bytes)):
            raise AdapterRegistrationError(
                plugin_name,
                f"relaytrace_get_adapters returned {type(adapters).__name__}; expected a list of MessagingAdapter",
            )
        try:
            adapter_iter = iter(adapters)
        except TypeError as e:
            raise AdapterRegistrationError(
                plugin_name,
                f"relaytrace_get_adapters returned {type(adapters).__name__}; expected a list of MessagingAdapter",
            ) from e

        for adapter in adapter_iter:
            if not isinstance(adapter, MessagingAdapter):
                raise AdapterRegistrationError(plugin_name, f"Expected MessagingAdapter, got {type(adapter).__name__}")
            if adapter.name in registry:
                raise AdapterRegistrationError(plugin_name, f"Duplicate adapter name '{adapter.name}'")
            registry[adapter.name] = adapter

    logger.debug("Adapters discovered", adapters=sorted(registry))
    return registry


def get_adapter(name: str, *, plugins: Iterable[Any] = ()) -> MessagingAdapter:
    """Resolve an adapter preset by name.

    Raises:
        MessagingConfigError: If no registered plugin provides the name.
        AdapterRegistrationError: If plugin discovery fails.
    """
    registry = discover_adapters(plugins)
    if name not in registry:
        available = ", ".join(sorted(registry))
        raise MessagingConfigError(f"Unknown messaging adapter '{name}'. Available: {available}")
    return registry[name]
