"""Test sorted streaming emission through the conduit."""

import asyncio

import pytest

from authordb.aggregate.counter import count_keys
from authordb.aggregate.emitter import (
    CONDUIT_CAPACITY,
    iter_records,
    sorted_keys,
    stream_records,
)
from authordb.aggregate.grouper import group_payloads
from authordb.aggregate.types import OutputRecord, Row
from authordb.common.errors import OutputAccessError, SinkError


def _grouped(rows):
    rows = [Row(line=i, fields=f) for i, f in enumerate(rows, start=1)]
    return group_payloads(rows, count_keys(rows))


async def _collect(records):
    return [(r.user, bytes(r.body)) async for r in records]


def test_example_alice_bob():
    grouped = _grouped([["1", "alice", "hi"], ["2", "bob", "yo"], ["3", "alice", "bye"]])

    assert [(r.user, bytes(r.body)) for r in iter_records(grouped)] == [
        (b"alice", b"hi"),
        (b"alice", b"bye"),
    ]


def test_keys_sorted_bytewise(sample_rows):
    grouped = _grouped(sample_rows)

    keys = sorted_keys(grouped)

    assert keys == ["Zed", "alice", "carol"]
    assert keys == sorted(keys, key=lambda k: k.encode("utf-8"))


def test_contiguous_runs_in_input_order(sample_rows):
    records = list(iter_records(_grouped(sample_rows)))

    users = [r.user for r in records]
    runs = [u for i, u in enumerate(users) if i == 0 or users[i - 1] != u]
    assert runs == [b"Zed", b"alice", b"carol"]
    assert [bytes(r.body).decode() for r in records if r.user == b"carol"] == [
        "first, with a comma",
        'a "quoted"\nmultiline post',
        "",
    ]


@pytest.mark.asyncio
async def test_stream_matches_sorted_sequence(sample_rows):
    grouped = _grouped(sample_rows)

    streamed = await stream_records(grouped, _collect)

    assert streamed == [(r.user, bytes(r.body)) for r in iter_records(grouped)]
    assert len(streamed) == grouped.record_count


@pytest.mark.asyncio
async def test_stream_is_idempotent(sample_rows):
    first = await stream_records(_grouped(sample_rows), _collect)
    second = await stream_records(_grouped(sample_rows), _collect)

    assert first == second


@pytest.mark.asyncio
async def test_empty_mapping_closes_immediately():
    grouped = _grouped([])

    assert await stream_records(grouped, _collect) == []


@pytest.mark.asyncio
async def test_conduit_bounds_producer(mocker):
    """The producer only runs a record or two ahead of the consumer."""
    grouped = _grouped([["1", "a", str(i)] for i in range(10)])
    expected = [bytes(r.body) for r in iter_records(grouped)]
    generated = []

    def counting_records(grouped):
        for record in iter_records(grouped):
            generated.append(record)
            yield record

    mocker.patch("authordb.aggregate.emitter.iter_records", side_effect=counting_records)
    seen = []

    async def slow_consumer(records):
        async for record in records:
            seen.append(bytes(record.body))
            for _ in range(5):
                await asyncio.sleep(0)
            # one record held here, one in the slot, one waiting on put
            assert len(generated) <= len(seen) + CONDUIT_CAPACITY + 1
        return len(seen)

    assert await stream_records(grouped, slow_consumer) == 10
    assert seen == expected


@pytest.mark.asyncio
async def test_consumer_failure_cancels_producer():
    grouped = _grouped([["1", "a", str(i)] for i in range(100)])

    async def failing_consumer(records):
        async for record in records:
            assert isinstance(record, OutputRecord)
            raise RuntimeError("disk full")

    with pytest.raises(SinkError, match="disk full") as exc:
        await asyncio.wait_for(stream_records(grouped, failing_consumer), timeout=5)

    assert isinstance(exc.value.__cause__, RuntimeError)
    assert not [t for t in asyncio.all_tasks() if t.get_name() == "record-producer"]


@pytest.mark.asyncio
async def test_build_errors_pass_through():
    grouped = _grouped([["1", "a", "x"], ["2", "a", "y"]])

    async def consumer(records):
        raise OutputAccessError("read-only filesystem")

    with pytest.raises(OutputAccessError):
        await stream_records(grouped, consumer)


@pytest.mark.asyncio
async def test_consumer_stopping_early_releases_producer():
    grouped = _grouped([["1", "a", str(i)] for i in range(50)])

    async def first_only(records):
        async for record in records:
            return bytes(record.body)

    result = await asyncio.wait_for(stream_records(grouped, first_only), timeout=5)

    assert result == b"0"


@pytest.mark.asyncio
async def test_producer_failure_reaches_consumer(mocker):
    grouped = _grouped([["1", "a", str(i)] for i in range(10)])

    def failing_records(grouped):
        records = iter_records(grouped)
        yield next(records)
        yield next(records)
        raise RuntimeError("payload buffer released")

    mocker.patch("authordb.aggregate.emitter.iter_records", side_effect=failing_records)
    seen = []

    async def consumer(records):
        async for record in records:
            seen.append(bytes(record.body))
        return seen

    with pytest.raises(RuntimeError, match="payload buffer released"):
        await asyncio.wait_for(stream_records(grouped, consumer), timeout=5)

    assert seen == [b"0", b"1"]
    assert not [t for t in asyncio.all_tasks() if t.get_name() == "record-producer"]
