"""Sorted, bounded streaming of grouped records to a consumer."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import NamedTuple, TypeVar

from authordb.aggregate.grouper import GroupedPayloads
from authordb.aggregate.types import OutputRecord
from authordb.common.errors import BuildError, SinkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONDUIT_CAPACITY = 1

_CLOSED = object()


def sorted_keys(grouped: GroupedPayloads) -> list[str]:
    """Keys in ascending order.

    Code point order on str matches byte order on the UTF-8 encoding.
    """
    return sorted(grouped.keys())


def iter_records(grouped: GroupedPayloads) -> Iterator[OutputRecord]:
    """Yield every record, keys sorted, payloads in input order."""
    for key in sorted_keys(grouped):
        user = key.encode("utf-8")
        for body in grouped.payloads(key):
            yield OutputRecord(user=user, body=body)


class _Failed(NamedTuple):
    """Conduit marker carrying the error that stopped the producer."""

    error: Exception


async def _produce(grouped: GroupedPayloads, conduit: asyncio.Queue) -> int:
    sent = 0
    try:
        for record in iter_records(grouped):
            await conduit.put(record)
            sent += 1
    except Exception as e:
        logger.error(f"Producer failed after {sent} records: {e}")
        await conduit.put(_Failed(e))
        raise
    await conduit.put(_CLOSED)
    logger.debug(f"Producer sent {sent} records")
    return sent


async def _drain(conduit: asyncio.Queue) -> AsyncIterator[OutputRecord]:
    while True:
        record = await conduit.get()
        if record is _CLOSED:
            return
        if isinstance(record, _Failed):
            raise record.error
        yield record


async def stream_records(
    grouped: GroupedPayloads,
    consumer: Callable[[AsyncIterator[OutputRecord]], Awaitable[T]],
) -> T:
    """Feed the sorted records to consumer through a single-slot conduit.

    The producer runs as its own task and blocks until the consumer has taken
    the previous record. It is cancelled if the consumer fails or stops early.
    An error raised while producing is delivered through the conduit and
    re-raised unchanged.
    """
    conduit: asyncio.Queue = asyncio.Queue(maxsize=CONDUIT_CAPACITY)
    producer = asyncio.create_task(_produce(grouped, conduit), name="record-producer")

    try:
        result = await consumer(_drain(conduit))
    except BuildError:
        raise
    except Exception as e:
        if producer.done() and not producer.cancelled() and producer.exception() is e:
            raise
        raise SinkError(f"Writer failed while consuming records: {e}") from e
    finally:
        if not producer.done():
            producer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await producer

    return result
