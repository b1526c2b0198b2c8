"""Pytest configuration."""

import csv
import logging
import sys
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

sys.path.append(str(Path(__file__).parent.parent))

from authordb.common.config import SinkConfig, SourceConfig  # noqa: E402

# id, user, created_at, body
SAMPLE_ROWS = [
    ["1", "alice", "2017-01-01", "hi"],
    ["2", "bob", "2017-01-01", "yo"],
    ["3", "alice", "2017-01-02", "bye"],
    ["4", "carol", "2017-01-02", "first, with a comma"],
    ["5", "dave", "2017-01-03", "lonely"],
    ["6", "carol", "2017-01-03", 'a "quoted"\nmultiline post'],
    ["7", "Zed", "2017-01-04", "upper case sorts first"],
    ["8", "Zed", "2017-01-04", "ünïcødé"],
    ["9", "carol", "2017-01-05", ""],
]


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo logging setup done by the code under test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def write_csv(path: Path, rows: list[list[str]]) -> Path:
    with open(path, "w", encoding="utf-8", newline="") as f:
        csv.writer(f).writerows(rows)
    return path


@pytest.fixture
def sample_rows() -> list[list[str]]:
    return [list(r) for r in SAMPLE_ROWS]


@pytest.fixture
def sample_csv(tmp_path) -> Path:
    return write_csv(tmp_path / "tweets.csv", SAMPLE_ROWS)


@pytest.fixture
def source_config(sample_csv) -> SourceConfig:
    return SourceConfig(path=str(sample_csv))


@pytest.fixture
def sink_config(tmp_path) -> SinkConfig:
    return SinkConfig(path=str(tmp_path / "tweets.parquet"), batch_size=2)


def _read_artifact(path: Path, fmt: str = "parquet") -> list[tuple[bytes, bytes]]:
    """Read (user, body) pairs back from a written database file."""
    if fmt == "parquet":
        table = pq.read_table(path)
    else:
        with pa.OSFile(str(path), "rb") as source:
            table = pa.ipc.open_file(source).read_all().combine_chunks()
    rows = table.to_pydict()
    return list(zip(rows["user"], rows["body"]))


@pytest.fixture
def read_artifact():
    """Fixture returning a reader for written database files."""
    return _read_artifact
