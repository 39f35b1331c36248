# tests/unit/contracts/test_extractors.py
"""Tests for path and function extractors."""

from dataclasses import dataclass

import pytest

from relaytrace.contracts.errors import MessagingConfigError
from relaytrace.contracts.extractors import (
    FunctionExtractor,
    PathExtractor,
    as_extractor,
    extract_from_args,
    extract_from_message,
)


@dataclass
class _Meta:
    sequence: int


@dataclass
class _Message:
    id: str
    meta: _Meta


class TestPathExtractor:
    def test_reads_mapping_keys(self) -> None:
        assert PathExtractor("meta.sequence").resolve({"meta": {"sequence": 4}}) == 4

    def test_reads_attributes(self) -> None:
        assert PathExtractor("meta.sequence").resolve(_Message("m1", _Meta(7))) == 7

    def test_mixed_mapping_and_attributes(self) -> None:
        assert PathExtractor("body.meta.sequence").resolve({"body": _Message("m1", _Meta(2))}) == 2

    def test_missing_segment_yields_none(self) -> None:
        assert PathExtractor("meta.sequence").resolve({"meta": None}) is None
        assert PathExtractor("missing.deeper").resolve({}) is None

    @pytest.mark.parametrize("path", ["", ".", "a..b", "a."])
    def test_rejects_malformed_paths(self, path: str) -> None:
        with pytest.raises(MessagingConfigError, match="Invalid extractor path"):
            PathExtractor(path)


class TestAsExtractor:
    def test_none_passes_through(self) -> None:
        assert as_extractor(None) is None

    def test_string_becomes_path(self) -> None:
        assert as_extractor("id") == PathExtractor("id")

    def test_callable_becomes_function(self) -> None:
        fn = lambda m: m  # noqa: E731
        extractor = as_extractor(fn)
        assert isinstance(extractor, FunctionExtractor)
        assert extractor.fn is fn

    def test_existing_extractor_is_kept(self) -> None:
        extractor = PathExtractor("id")
        assert as_extractor(extractor) is extractor

    def test_rejects_other_values(self) -> None:
        with pytest.raises(MessagingConfigError, match="int"):
            as_extractor(42)  # type: ignore[arg-type]


class TestResolution:
    def test_producer_path_reads_first_argument(self) -> None:
        assert extract_from_args(PathExtractor("id"), ({"id": "m1"}, {"id": "other"})) == "m1"

    def test_producer_path_without_arguments(self) -> None:
        assert extract_from_args(PathExtractor("id"), ()) is None

    def test_producer_function_receives_all_arguments(self) -> None:
        extractor = FunctionExtractor(lambda args: args[1])
        assert extract_from_args(extractor, ("orders", "m2")) == "m2"

    def test_consumer_resolves_against_message(self) -> None:
        assert extract_from_message(FunctionExtractor(lambda m: m["id"]), {"id": "m3"}) == "m3"
