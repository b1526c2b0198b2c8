"""Second pass: group payloads by author into one packed buffer."""

from __future__ import annotations

import logging
from array import array
from collections.abc import Iterable, Iterator, Mapping

from authordb.aggregate.types import MIN_POSTS_PER_AUTHOR, PayloadView, Row

logger = logging.getLogger(__name__)


class GroupedPayloads:
    """Payloads grouped by key, backed by a single frozen buffer.

    Every payload lives in one contiguous buffer. Each key owns a flat array
    of offsets holding ``start, end`` pairs in input order, so no per-payload
    object is kept around.
    """

    def __init__(self, buffer: bytes | bytearray, offsets: Mapping[str, array]) -> None:
        self._buffer = memoryview(buffer).toreadonly()
        self._offsets = dict(offsets)

    def __len__(self) -> int:
        return len(self._offsets)

    def __contains__(self, key: object) -> bool:
        return key in self._offsets

    def __iter__(self) -> Iterator[str]:
        return iter(self._offsets)

    def keys(self) -> list[str]:
        return list(self._offsets)

    @property
    def buffer(self) -> memoryview:
        """The packed payload bytes."""
        return self._buffer

    @property
    def record_count(self) -> int:
        return sum(len(pairs) // 2 for pairs in self._offsets.values())

    def views(self, key: str) -> list[PayloadView]:
        """Offsets of the payloads stored under key, in input order."""
        pairs = self._offsets[key]
        return [PayloadView(pairs[i], pairs[i + 1]) for i in range(0, len(pairs), 2)]

    def payloads(self, key: str) -> Iterator[memoryview]:
        """Zero-copy slices of the payloads stored under key, in input order."""
        pairs = self._offsets[key]
        for i in range(0, len(pairs), 2):
            yield self._buffer[pairs[i] : pairs[i + 1]]


def group_payloads(
    rows: Iterable[Row],
    counts: Mapping[str, int],
    min_count: int = MIN_POSTS_PER_AUTHOR,
) -> GroupedPayloads:
    """Pack the payloads of every key seen at least min_count times.

    ``rows`` must yield the same sequence that produced ``counts``.
    """
    buffer = bytearray()
    offsets: dict[str, array] = {}
    skipped = 0

    for row in rows:
        key = row.validate().key
        if counts.get(key, 0) < min_count:
            skipped += 1
            continue

        body = row.payload.encode("utf-8")
        start = len(buffer)
        buffer += body

        pairs = offsets.get(key)
        if pairs is None:
            pairs = offsets[key] = array("Q")
        pairs.append(start)
        pairs.append(start + len(body))

    logger.debug(
        f"Packed {len(buffer)} payload bytes for {len(offsets)} keys, skipped {skipped} rows"
    )
    return GroupedPayloads(buffer, offsets)
