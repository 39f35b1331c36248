"""Value extractors used to pull identifiers and headers out of messages.

An extractor is one of two variants:

- PathExtractor: dotted path into the message (mapping keys or attributes)
- FunctionExtractor: caller-supplied callable

Producer extractors resolve against the call arguments (paths start at the
first positional argument, callables receive the whole args tuple). Consumer
extractors resolve against a single message.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from relaytrace.contracts.errors import MessagingConfigError


@dataclass(frozen=True, slots=True)
class PathExtractor:
    """Read a value by dotted path, e.g. ``"headers"`` or ``"meta.sequence"``."""

    path: str

    def __post_init__(self) -> None:
        if not self.path or any(segment == "" for segment in self.path.split(".")):
            raise MessagingConfigError(f"Invalid extractor path: {self.path!r}")

    def resolve(self, source: Any) -> Any:
        current = source
        for segment in self.path.split("."):
            if current is None:
                return None
            if isinstance(current, Mapping):
                current = current.get(segment)
            else:
                current = getattr(current, segment, None)
        return current


@dataclass(frozen=True, slots=True)
class FunctionExtractor:
    """Delegate extraction to a callable."""

    fn: Callable[[Any], Any]

    def resolve(self, source: Any) -> Any:
        return self.fn(source)


Extractor = PathExtractor | FunctionExtractor


def as_extractor(value: "str | Callable[[Any], Any] | Extractor | None") -> Extractor | None:
    """Normalize a configuration value into an Extractor.

    Strings become PathExtractor and callables become FunctionExtractor.
    This is the only place where the raw shape is inspected.

    Raises:
        MessagingConfigError: If the value is neither a path nor a callable.
    """
    match value:
        case None:
            return None
        case PathExtractor() | FunctionExtractor():
            return value
        case str():
            return PathExtractor(value)
        case _ if callable(value):
            return FunctionExtractor(value)
        case _:
            raise MessagingConfigError(
                f"Extractor must be a path string or a callable, got {type(value).__name__}"
            )


def extract_from_args(extractor: Extractor, args: Sequence[Any]) -> Any:
    """Resolve a producer-side extractor against call arguments."""
    match extractor:
        case PathExtractor():
            if not args:
                return None
            return extractor.resolve(args[0])
        case FunctionExtractor():
            return extractor.resolve(tuple(args))


def extract_from_message(extractor: Extractor, message: Any) -> Any:
    """Resolve a consumer-side extractor against one message."""
    return extractor.resolve(message)
