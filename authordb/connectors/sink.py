"""Output sinks writing grouped records to a database file."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any, BinaryIO

import pyarrow as pa
from pyarrow import ipc
from pyarrow import parquet as pq

from authordb.aggregate.types import OutputRecord
from authordb.common.config import SinkConfig, SinkFormat
from authordb.common.errors import OutputAccessError, SinkError
from authordb.connectors.component import ConnectorComponent

logger = logging.getLogger(__name__)

RECORD_SCHEMA = pa.schema(
    [
        pa.field("user", pa.binary(), nullable=False),
        pa.field("body", pa.binary(), nullable=False),
    ]
)

PARTIAL_SUFFIX = ".partial"


class RecordSink(ConnectorComponent):
    """Base class for database sinks.

    Entering the sink creates ``<path>.partial``. Leaving it without error
    renames the partial file to ``path``; leaving it with an error removes it.
    """

    _config_type = SinkConfig
    _registry: dict[SinkFormat, type[RecordSink]] = {}

    def __init__(self, config: SinkConfig) -> None:
        """Initialize sink."""
        super().__init__(config)
        self._file: BinaryIO | None = None
        self.written = 0

    @classmethod
    def register(cls, sink_format: SinkFormat) -> Any:
        """Register a sink class for an output format."""

        def wrapper(sink_cls: type[RecordSink]) -> type[RecordSink]:
            cls._registry[sink_format] = sink_cls
            return sink_cls

        return wrapper

    @classmethod
    def from_config(cls, config: SinkConfig | dict[str, Any]) -> RecordSink:
        """Create the sink registered for the configured format."""
        if isinstance(config, dict):
            config = SinkConfig(**config)

        if config.format not in cls._registry:
            raise ValueError(f"No sink registered for format: {config.format.value}")

        return cls._registry[config.format](config)

    @property
    def partial_path(self) -> str:
        return f"{self.config.path}{PARTIAL_SUFFIX}"

    async def connect(self) -> None:
        """Create the partial output file."""
        try:
            self._file = open(self.partial_path, "wb")
        except OSError as e:
            raise OutputAccessError(f"Cannot create output {self.partial_path}: {e}") from e
        logger.info(f"Created output {self.partial_path}")

    async def disconnect(self) -> None:
        """Finalize the output file."""
        self._close()
        try:
            os.replace(self.partial_path, self.config.path)
        except OSError as e:
            self._discard()
            raise OutputAccessError(f"Cannot finalize output {self.config.path}: {e}") from e
        logger.info(f"Finalized {self.config.path} with {self.written} records")

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Finalize on success, discard the partial file on failure."""
        if exc_type is None:
            await self.disconnect()
            return

        self._close()
        self._discard()
        logger.warning(f"Discarded partial output {self.partial_path}")

    async def write(self, records: AsyncIterator[OutputRecord]) -> int:
        """Write every record to the open output file."""
        if self._file is None:
            raise OutputAccessError("Output is not open")
        return await self.write_to(self._file, records)

    async def write_to(self, destination: BinaryIO, records: AsyncIterator[OutputRecord]) -> int:
        """Consume records and write a complete artifact to destination."""
        users: list[bytes] = []
        bodies: list[bytes] = []
        self.written = 0

        try:
            writer = self._open_writer(destination)
            try:
                async for record in records:
                    users.append(record.user)
                    bodies.append(bytes(record.body))
                    if len(users) >= self.config.batch_size:
                        self._write_batch(writer, users, bodies)
                        users, bodies = [], []
                if users:
                    self._write_batch(writer, users, bodies)
            finally:
                writer.close()
        except OSError as e:
            raise OutputAccessError(f"Cannot write output: {e}") from e
        except pa.ArrowException as e:
            raise SinkError(f"Cannot encode records: {e}") from e

        return self.written

    def _write_batch(self, writer: Any, users: list[bytes], bodies: list[bytes]) -> None:
        batch = pa.RecordBatch.from_arrays(
            [pa.array(users, type=pa.binary()), pa.array(bodies, type=pa.binary())],
            schema=RECORD_SCHEMA,
        )
        writer.write_batch(batch)
        self.written += batch.num_rows
        logger.debug(f"Wrote batch of {batch.num_rows} records ({self.written} total)")

    def _open_writer(self, destination: BinaryIO) -> Any:
        raise NotImplementedError

    def _close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def _discard(self) -> None:
        try:
            os.remove(self.partial_path)
        except FileNotFoundError:
            pass


@RecordSink.register(SinkFormat.PARQUET)
class ParquetSink(RecordSink):
    """Parquet database file, one row group per batch."""

    def _open_writer(self, destination: BinaryIO) -> pq.ParquetWriter:
        return pq.ParquetWriter(
            destination,
            RECORD_SCHEMA,
            compression=self.config.compression or "none",
        )


@RecordSink.register(SinkFormat.ARROW)
class ArrowSink(RecordSink):
    """Arrow IPC database file."""

    def _open_writer(self, destination: BinaryIO) -> ipc.RecordBatchFileWriter:
        return ipc.new_file(destination, RECORD_SCHEMA)
