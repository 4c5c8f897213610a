"""Tests for common.utils module."""

import time

import pytest

from common.utils import chunked, elapsed_ms


class TestChunked:
    def test_even_split(self) -> None:
        assert chunked([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_last_chunk_is_shorter(self) -> None:
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_size_larger_than_input(self) -> None:
        assert chunked(["a"], 10) == [["a"]]

    def test_empty_input(self) -> None:
        assert chunked([], 3) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_size_raises(self, size: int) -> None:
        with pytest.raises(ValueError):
            chunked([1, 2], size)


class TestElapsedMs:
    def test_non_negative_integer(self) -> None:
        result = elapsed_ms(time.monotonic())
        assert isinstance(result, int)
        assert result >= 0

    def test_measures_from_start(self) -> None:
        assert elapsed_ms(time.monotonic() - 1.5) >= 1500
