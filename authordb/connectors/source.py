"""CSV input connector."""

from __future__ import annotations

import csv
import hashlib
import io
import logging
import sys
from collections.abc import Iterator
from typing import TextIO

from authordb.aggregate.types import Row
from authordb.common.config import SourceConfig
from authordb.common.errors import (
    InputAccessError,
    InputChangedError,
    MalformedInputError,
    MalformedRowError,
)
from authordb.connectors.component import ConnectorComponent

logger = logging.getLogger(__name__)


class CSVSource(ConnectorComponent):
    """Re-scannable source of rows from a CSV file.

    Every call to ``scan`` starts from the beginning of the file. A digest of
    each complete scan is compared with the first one so that passes relying
    on each other never see different content.
    """

    _config_type = SourceConfig

    def __init__(self, config: SourceConfig, stream: TextIO | None = None) -> None:
        """Initialize source, optionally over an already open stream."""
        super().__init__(config)
        self._stream = stream
        self._owned = stream is None
        self._digest: str | None = None
        self.scans = 0

    async def connect(self) -> None:
        """Open the input and make sure it can be rewound."""
        if self._stream is None:
            try:
                self._stream = open(
                    self.config.path, encoding=self.config.encoding, newline=""
                )
            except (OSError, LookupError) as e:
                raise InputAccessError(f"Cannot open input {self.config.path}: {e}") from e

        try:
            seekable = self._stream.seekable()
        except (OSError, ValueError) as e:
            raise InputAccessError(f"Cannot inspect input {self.config.path}: {e}") from e
        if not seekable:
            await self.disconnect()
            raise InputAccessError(f"Input {self.config.path} must be seekable to scan twice")

        # post bodies may exceed the default 128 KiB field limit
        csv.field_size_limit(sys.maxsize)
        logger.info(f"Opened input {self.config.path}")

    async def disconnect(self) -> None:
        """Close the input if it was opened here."""
        if self._stream is not None and self._owned:
            self._stream.close()
            self._stream = None

    def scan(self) -> Iterator[Row]:
        """Yield every non-blank row from the start of the input."""
        if self._stream is None:
            raise InputAccessError("Input is not open")

        try:
            self._stream.seek(0, io.SEEK_SET)
        except (OSError, ValueError) as e:
            raise InputAccessError(f"Cannot rewind input {self.config.path}: {e}") from e

        digest = hashlib.blake2b()
        consumed: list[str] = []
        reader = csv.reader(
            self._hashed_lines(digest, consumed),
            delimiter=self.config.delimiter,
            strict=True,
        )
        width: int | None = None
        line = 1

        try:
            for fields in reader:
                start, line = line, reader.line_num + 1
                text = "".join(consumed)
                consumed.clear()
                if not fields:
                    continue
                if not self.config.lazy_quotes and _has_bare_quote(
                    text, self.config.delimiter
                ):
                    raise MalformedInputError('bare " in non-quoted field', line=start)
                if "\r\n" in text:
                    # only quoted fields can hold a line break
                    fields = [f.replace("\r\n", "\n") for f in fields]
                if self.config.strict_field_count:
                    if width is None:
                        width = len(fields)
                    elif len(fields) != width:
                        raise MalformedRowError(
                            f"wrong number of fields: expected {width}, got {len(fields)}",
                            line=start,
                        )
                yield Row(line=start, fields=fields)
        except csv.Error as e:
            raise MalformedInputError(str(e), line=reader.line_num) from e
        except UnicodeDecodeError as e:
            raise InputAccessError(f"Cannot decode input {self.config.path}: {e}") from e
        except OSError as e:
            raise InputAccessError(f"Cannot read input {self.config.path}: {e}") from e

        self._check_digest(digest.hexdigest())

    def _hashed_lines(self, digest, consumed: list[str]) -> Iterator[str]:
        for text in self._stream:
            digest.update(text.encode("utf-8", "surrogatepass"))
            consumed.append(text)
            yield text

    def _check_digest(self, value: str) -> None:
        self.scans += 1
        if self._digest is None:
            self._digest = value
            return
        if value != self._digest:
            raise InputChangedError(
                f"Input {self.config.path} changed between scans "
                f"(scan {self.scans} digest differs from the first)"
            )
        logger.debug(f"Scan {self.scans} of {self.config.path} matches the first scan")


def _has_bare_quote(text: str, delimiter: str) -> bool:
    """Whether a record's raw text has a quote inside an unquoted field.

    Malformed quoting inside quoted fields is left to ``csv`` in strict mode.
    """
    if '"' not in text:
        return False

    field_start, quoted, closing = True, False, False
    for ch in text:
        if quoted:
            if ch == '"':
                quoted, closing = False, True
            continue
        if ch == '"':
            if field_start or closing:
                # opening quote, or the second half of an escaped ""
                quoted, field_start, closing = True, False, False
                continue
            return True
        closing = False
        field_start = ch == delimiter or ch in "\r\n"
    return False
