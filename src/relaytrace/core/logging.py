# src/relaytrace/core/logging.py
"""Diagnostics logging for relaytrace itself.

relaytrace logs about its own behavior (links that could not be decoded,
extractors that raised, dedup evictions, skipped attributes). Message
telemetry goes to spans, not to logs. Modules log through
``structlog.get_logger(__name__)``, so every record carries a
``relaytrace.*`` logger name and this module can tune them as one group.

Three logger groups are configured:
- the root logger: the application's level and output format
- ``relaytrace``: diagnostics level, independent of the root so dropped-link
  debugging can be turned on without DEBUG output from the whole process
- ``opentelemetry``: API/SDK internals, pinned to WARNING or stricter

Both structlog and stdlib records are rendered by one ProcessorFormatter.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from relaytrace.core.config import LoggingSettings

DIAGNOSTICS_LOGGER = "relaytrace"

# Context attach/detach, propagators and span processors all log here
OTEL_LOGGER = "opentelemetry"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    diagnostics_level: str | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        json_output: Render one JSON object per line instead of console output.
        level: Root log level.
        diagnostics_level: Level for relaytrace's own loggers. None follows
            the root level.

    Raises:
        ValueError: If a level name is unknown.
    """
    root_level = _level(level)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    final_processors: list[Any] = [ProcessorFormatter.remove_processors_meta]
    if json_output:
        final_processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final_processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=final_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(root_level)

    diagnostics = logging.getLogger(DIAGNOSTICS_LOGGER)
    diagnostics.setLevel(_level(diagnostics_level) if diagnostics_level is not None else logging.NOTSET)

    logging.getLogger(OTEL_LOGGER).setLevel(max(root_level, logging.WARNING))


def configure_logging_from_settings(settings: "LoggingSettings") -> None:
    """Apply the ``logging`` section of RelaytraceSettings."""
    configure_logging(
        json_output=settings.json_output,
        level=settings.level,
        diagnostics_level=settings.diagnostics_level,
    )
