"""relaytrace exceptions.

Only setup-time configuration problems raise. Extraction failures degrade
to "no link available", and errors from wrapped user functions are re-raised
unchanged, so neither has a relaytrace exception type.
"""


class MessagingConfigError(ValueError):
    """Raised when producer/consumer configuration is invalid.

    Examples: an unknown adapter preset, an extractor that is neither a path
    nor a callable, or a record_dlq call whose arguments match no accepted
    shape.
    """


class AdapterRegistrationError(Exception):
    """Raised when an adapter plugin cannot be registered.

    Attributes:
        plugin_name: Name of the plugin or adapter that failed
        message: Human-readable error description
    """

    def __init__(self, plugin_name: str, message: str) -> None:
        self.plugin_name = plugin_name
        self.message = message
        super().__init__(f"Adapter plugin '{plugin_name}' failed: {message}")
