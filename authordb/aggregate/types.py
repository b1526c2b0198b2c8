"""Aggregation types."""

from __future__ import annotations

from typing import NamedTuple

from authordb.common.errors import MalformedRowError

# Authors with fewer posts than this carry too little signal downstream.
MIN_POSTS_PER_AUTHOR = 2

MIN_FIELDS = 3
KEY_FIELD = 1


class Row(NamedTuple):
    """One parsed input record."""

    line: int
    fields: list[str]

    @property
    def key(self) -> str:
        return self.fields[KEY_FIELD]

    @property
    def payload(self) -> str:
        return self.fields[-1]

    def validate(self) -> Row:
        """Ensure the row carries a key and a payload."""
        if len(self.fields) < MIN_FIELDS:
            raise MalformedRowError(
                f"expected at least {MIN_FIELDS} columns, got {len(self.fields)}",
                line=self.line,
            )
        return self


class PayloadView(NamedTuple):
    """Byte range of one payload inside a packed buffer."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


class OutputRecord(NamedTuple):
    """A (user, body) pair handed to the sink."""

    user: bytes
    body: memoryview
