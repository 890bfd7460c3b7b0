"""
Tests for the Redis graph store.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError

from pkgmeta.models.errors import StoreError
from pkgmeta.models.package_key import StructuredKey
from pkgmeta.services.graph_store import (
    ADD_TO_SET_SCRIPT,
    DELETE,
    REMOVE_FROM_SET_SCRIPT,
    WRITE_WITH_PREVIOUS_SCRIPT,
    RedisGraphStore,
    StoreOutcome,
)

SERDE_KEY = StructuredKey(package_name="rust/serde", version="1.0.197")
RECORD_KEY = "PackageMetadata:{rust/serde:1.0.197}"


@pytest.fixture
def mock_redis():
    client = MagicMock(spec=redis.Redis)
    client.eval = AsyncMock()
    return client


@pytest.fixture
def graph_store(mock_redis):
    return RedisGraphStore(mock_redis, "PackageMetadata")


def _pipeline(mock_redis, results=None, error=None):
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.execute = AsyncMock(return_value=results, side_effect=error)
    mock_redis.pipeline = MagicMock(return_value=pipe)
    return pipe


async def test_conditional_add_success(graph_store, mock_redis):
    mock_redis.eval.return_value = 1

    outcome = await graph_store.conditional_add_to_set(SERDE_KEY, "consumers", "rust/widget:0.3.1")

    assert outcome is StoreOutcome.SUCCESS
    mock_redis.eval.assert_awaited_once_with(
        ADD_TO_SET_SCRIPT,
        2,
        RECORD_KEY,
        f"{RECORD_KEY}:consumers",
        "rust/widget:0.3.1",
        "1",
    )


async def test_conditional_add_condition_failed(graph_store, mock_redis):
    mock_redis.eval.return_value = 0

    outcome = await graph_store.conditional_add_to_set(SERDE_KEY, "consumers", "rust/widget:0.3.1")

    assert outcome is StoreOutcome.CONDITION_FAILED


async def test_conditional_add_without_precondition(graph_store, mock_redis):
    mock_redis.eval.return_value = 1

    await graph_store.conditional_add_to_set(SERDE_KEY, "consumers", "rust/widget:0.3.1", require_exists=False)

    assert mock_redis.eval.await_args.args[-1] == "0"


async def test_conditional_remove_uses_remove_script(graph_store, mock_redis):
    mock_redis.eval.return_value = 0

    outcome = await graph_store.conditional_remove_from_set(SERDE_KEY, "consumers", "rust/widget:0.3.1")

    assert outcome is StoreOutcome.CONDITION_FAILED
    assert mock_redis.eval.await_args.args[0] == REMOVE_FROM_SET_SCRIPT


async def test_conditional_set_op_wraps_redis_errors(graph_store, mock_redis):
    mock_redis.eval.side_effect = RedisConnectionError("connection refused")

    with pytest.raises(StoreError) as exc_info:
        await graph_store.conditional_add_to_set(SERDE_KEY, "consumers", "rust/widget:0.3.1")

    assert exc_info.value.operation == "set add"
    assert "connection refused" in exc_info.value.msg


async def test_conditional_set_op_rejects_scalar_field(graph_store):
    with pytest.raises(ValueError):
        await graph_store.conditional_add_to_set(SERDE_KEY, "build_project_name", "x")


async def test_write_with_previous_sends_payload_and_parses_previous(graph_store, mock_redis):
    mock_redis.eval.return_value = json.dumps(
        {
            "exists": 1,
            "attributes": {"package_name": "rust/serde", "version": "1.0.197", "build_project_name": "old"},
            "sets": {"dependencies": ["rust/itoa:1.0.10"], "consumers": ["rust/widget:0.3.1"]},
        }
    )

    previous = await graph_store.write_with_previous(
        SERDE_KEY,
        {"build_project_name": "serde-build", "dependencies": frozenset({"rust/ryu:1.0.17", "rust/itoa:1.0.10"})},
    )

    assert previous.exists is True
    assert previous.build_project_name == "old"
    assert previous.dependencies == frozenset({"rust/itoa:1.0.10"})
    assert previous.consumers == frozenset({"rust/widget:0.3.1"})

    args = mock_redis.eval.await_args.args
    assert args[0] == WRITE_WITH_PREVIOUS_SCRIPT
    assert args[1] == 3
    assert args[2:5] == (RECORD_KEY, f"{RECORD_KEY}:dependencies", f"{RECORD_KEY}:consumers")
    assert args[6:] == ("dependencies", "consumers")
    payload = json.loads(args[5])
    assert payload == {
        "hash": {"package_name": "rust/serde", "version": "1.0.197", "build_project_name": "serde-build"},
        "hash_deletes": [],
        "sets": {"dependencies": ["rust/itoa:1.0.10", "rust/ryu:1.0.17"]},
    }


async def test_write_with_previous_delete_clears_set(graph_store, mock_redis):
    mock_redis.eval.return_value = json.dumps({"exists": 0, "attributes": {}, "sets": {"dependencies": {}, "consumers": {}}})

    previous = await graph_store.write_with_previous(SERDE_KEY, {"dependencies": DELETE, "build_project_name": DELETE})

    assert previous.exists is False
    assert previous.dependencies == frozenset()
    assert previous.consumers == frozenset()
    payload = json.loads(mock_redis.eval.await_args.args[5])
    assert payload["sets"] == {"dependencies": []}
    assert payload["hash_deletes"] == ["build_project_name"]


@pytest.mark.parametrize(
    "updates",
    [
        {"dependencies": frozenset()},
        {"dependencies": "rust/itoa:1.0.10"},
        {"package_name": "rust/other"},
        {"build_project_name": 42},
    ],
)
async def test_write_with_previous_rejects_invalid_updates(graph_store, mock_redis, updates):
    with pytest.raises(ValueError):
        await graph_store.write_with_previous(SERDE_KEY, updates)

    mock_redis.eval.assert_not_awaited()


async def test_write_with_previous_wraps_malformed_reply(graph_store, mock_redis):
    mock_redis.eval.return_value = "not json"

    with pytest.raises(StoreError):
        await graph_store.write_with_previous(SERDE_KEY, {"build_project_name": "serde-build"})


async def test_write_with_previous_wraps_redis_errors(graph_store, mock_redis):
    mock_redis.eval.side_effect = RedisConnectionError("connection reset")

    with pytest.raises(StoreError) as exc_info:
        await graph_store.write_with_previous(SERDE_KEY, {"build_project_name": "serde-build"})

    assert exc_info.value.operation == "write"


async def test_read_returns_record(graph_store, mock_redis):
    pipe = _pipeline(
        mock_redis,
        results=[
            1,
            {"package_name": "rust/serde", "version": "1.0.197", "build_project_name": "serde-build"},
            {"rust/itoa:1.0.10"},
            set(),
        ],
    )

    record = await graph_store.read(SERDE_KEY)

    mock_redis.pipeline.assert_called_once_with(transaction=True)
    pipe.exists.assert_called_once_with(RECORD_KEY)
    pipe.hgetall.assert_called_once_with(RECORD_KEY)
    assert [c.args[0] for c in pipe.smembers.call_args_list] == [
        f"{RECORD_KEY}:dependencies",
        f"{RECORD_KEY}:consumers",
    ]
    assert record.build_project_name == "serde-build"
    assert record.dependencies == frozenset({"rust/itoa:1.0.10"})
    assert record.consumers == frozenset()


async def test_read_missing_record_returns_none(graph_store, mock_redis):
    _pipeline(mock_redis, results=[0, {}, set(), set()])

    assert await graph_store.read(SERDE_KEY) is None


async def test_read_wraps_redis_errors(graph_store, mock_redis):
    _pipeline(mock_redis, error=RedisConnectionError("connection reset"))

    with pytest.raises(StoreError):
        await graph_store.read(SERDE_KEY)
