"""Unit tests for bounded-concurrency batch helpers."""

from __future__ import annotations

import asyncio

import pytest

from lexrag.utils.concurrency import embed_in_batches, throttled_gather


def _vector(text: str) -> list[float]:
    return [float(len(text)), 1.0]


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_bounds_in_flight_and_keeps_order(self) -> None:
        active = 0
        peak = 0

        async def work(n: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return n * 2

        results = await throttled_gather([work(n) for n in range(6)], asyncio.Semaphore(2))

        assert results == [0, 2, 4, 6, 8, 10]
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_exceptions_returned_in_place(self) -> None:
        async def boom() -> int:
            raise RuntimeError("x")

        async def ok() -> int:
            return 1

        results = await throttled_gather([ok(), boom()], asyncio.Semaphore(1))
        assert results[0] == 1
        assert isinstance(results[1], RuntimeError)


class TestEmbedInBatches:
    @pytest.mark.asyncio
    async def test_splits_and_preserves_order(self) -> None:
        seen: list[list[str]] = []

        async def embed_batch(batch: list[str]) -> list[list[float]]:
            seen.append(batch)
            return [_vector(t) for t in batch]

        async def embed_one(text: str) -> list[float]:
            raise AssertionError("no retry expected")

        texts = ["a", "bb", "ccc", "dddd", "eeeee"]
        vectors = await embed_in_batches(texts, embed_batch, embed_one, batch_size=2)

        assert vectors == [_vector(t) for t in texts]
        assert sorted(len(b) for b in seen) == [1, 2, 2]

    @pytest.mark.asyncio
    async def test_failed_batch_retried_per_item(self) -> None:
        async def embed_batch(batch: list[str]) -> list[list[float]]:
            if "bad" in batch:
                raise RuntimeError("batch rejected")
            return [_vector(t) for t in batch]

        async def embed_one(text: str) -> list[float]:
            if text == "bad":
                raise RuntimeError("item rejected")
            return _vector(text)

        vectors = await embed_in_batches(
            ["ok1", "bad", "ok2", "ok3"], embed_batch, embed_one, batch_size=2
        )

        assert vectors == [_vector("ok1"), None, _vector("ok2"), _vector("ok3")]

    @pytest.mark.asyncio
    async def test_length_mismatch_triggers_fallback(self) -> None:
        async def embed_batch(batch: list[str]) -> list[list[float]]:
            return [_vector(batch[0])]

        async def embed_one(text: str) -> list[float]:
            return _vector(text)

        vectors = await embed_in_batches(["a", "bb"], embed_batch, embed_one, batch_size=5)
        assert vectors == [_vector("a"), _vector("bb")]

    @pytest.mark.asyncio
    async def test_empty_vector_counts_as_failure(self) -> None:
        async def embed_batch(batch: list[str]) -> list[list[float]]:
            raise RuntimeError("down")

        async def embed_one(text: str) -> list[float]:
            return []

        assert await embed_in_batches(["a"], embed_batch, embed_one, batch_size=1) == [None]

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        async def never(*_args):
            raise AssertionError("should not be called")

        assert await embed_in_batches([], never, never, batch_size=10) == []
