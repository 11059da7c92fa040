"""Bounded-concurrency helpers for provider batch calls.

Two patterns are exposed:

1. **throttled_gather** -- a drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release, so at most N
   coroutines run at once while results keep input order.

2. **embed_in_batches** -- the batch-embedding policy shared by every
   embedding provider: split texts into fixed-size batches, dispatch a small
   number of batches concurrently to respect provider rate limits, and when
   a batch fails retry its items one by one.  Items that still fail come
   back as ``None`` so the output list is always positionally aligned with
   the input.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

import structlog

_T = TypeVar("_T")

#: Default number of in-flight batches per ``embed_in_batches`` call.
DEFAULT_BATCH_CONCURRENCY = 5

logger = structlog.get_logger(logger_name=__name__)


async def throttled_gather(
    coros: Sequence[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many awaitables execute simultaneously.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def embed_in_batches(
    texts: Sequence[str],
    embed_batch: Callable[[list[str]], Awaitable[list[list[float]]]],
    embed_one: Callable[[str], Awaitable[list[float]]],
    batch_size: int,
    concurrency: int = DEFAULT_BATCH_CONCURRENCY,
    provider_name: str = "unknown",
) -> list[list[float] | None]:
    """Embed *texts* in fixed-size batches with bounded concurrency.

    Parameters
    ----------
    texts:
        Texts to embed, in caller order.
    embed_batch:
        Coroutine function embedding one batch; must return one vector per
        input text in the same order.
    embed_one:
        Coroutine function embedding a single text; used to retry the items
        of a failed batch.
    batch_size:
        Maximum texts per ``embed_batch`` call.
    concurrency:
        Maximum batches in flight at once.
    provider_name:
        Provider label for log events.

    Returns
    -------
    list[list[float] | None]
        One entry per input text.  ``None`` marks an item that failed both
        in its batch and on the per-item retry.
    """
    if not texts:
        return []

    batches = [list(texts[i : i + batch_size]) for i in range(0, len(texts), batch_size)]
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(batch_no: int, batch: list[str]) -> list[list[float] | None]:
        try:
            vectors = await embed_batch(batch)
            if len(vectors) != len(batch):
                raise ValueError(
                    f"batch returned {len(vectors)} vectors for {len(batch)} texts"
                )
            return list(vectors)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "embedding_batch_failed",
                provider=provider_name,
                batch=batch_no,
                size=len(batch),
                error=str(exc),
            )
            return await _run_items(batch)

    async def _run_items(batch: list[str]) -> list[list[float] | None]:
        results: list[list[float] | None] = []
        for text in batch:
            try:
                vector = await embed_one(text)
                results.append(vector if vector else None)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "embedding_item_failed",
                    provider=provider_name,
                    text_length=len(text),
                    error=str(exc),
                )
                results.append(None)
        return results

    batch_results = await throttled_gather(
        [_run(n, b) for n, b in enumerate(batches)],
        semaphore=semaphore,
        return_exceptions=False,
    )

    flat: list[list[float] | None] = []
    for result in batch_results:
        flat.extend(result)  # type: ignore[arg-type]

    failed = sum(1 for v in flat if v is None)
    logger.info(
        "embedding_batches_complete",
        provider=provider_name,
        texts=len(texts),
        batches=len(batches),
        failed=failed,
    )
    return flat
