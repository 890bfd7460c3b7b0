"""Graph store contract and its Redis implementation.

The update protocol talks to the store through four primitives only:
conditional set-add, conditional set-remove, write-returning-previous-state
and point read. Each primitive is atomic for the one record it addresses;
nothing spans records.
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from pkgmeta.constants.graph_fields import (
    BUILD_PROJECT_NAME_FIELD,
    CONSUMERS_FIELD,
    DEPENDENCIES_FIELD,
    PACKAGE_NAME_FIELD,
    SET_FIELDS,
    VERSION_FIELD,
)
from pkgmeta.models.errors import StoreError
from pkgmeta.models.package_key import StructuredKey
from pkgmeta.models.package_models import PackageRecord

logger = structlog.get_logger(__name__)


class StoreOutcome(Enum):
    """Result of a conditional store write.

    Failures other than an unmet condition are raised as StoreError.
    """

    SUCCESS = "success"
    CONDITION_FAILED = "condition_failed"


class AttributeAction(Enum):
    DELETE = "delete"


DELETE = AttributeAction.DELETE

AttributeUpdate = Union[str, FrozenSet[str], AttributeAction]


class GraphStore(ABC):
    """Key-value store of package records addressed by structured key."""

    @abstractmethod
    async def conditional_add_to_set(
        self, key: StructuredKey, field: str, value: str, require_exists: bool = True
    ) -> StoreOutcome:
        """Add ``value`` to the set attribute ``field`` of the record at ``key``."""

    @abstractmethod
    async def conditional_remove_from_set(
        self, key: StructuredKey, field: str, value: str, require_exists: bool = True
    ) -> StoreOutcome:
        """Remove ``value`` from the set attribute ``field`` of the record at ``key``."""

    @abstractmethod
    async def write_with_previous(
        self, key: StructuredKey, updates: Mapping[str, AttributeUpdate]
    ) -> PackageRecord:
        """Apply ``updates`` to the record at ``key`` and return the state before the write.

        A str value sets a scalar attribute, a frozenset replaces a set
        attribute and DELETE removes the attribute. The record is created if
        absent.
        """

    @abstractmethod
    async def read(self, key: StructuredKey) -> Optional[PackageRecord]:
        """Return the record at ``key`` or None if it does not exist."""


# KEYS[1] record hash, KEYS[2] set key; ARGV[1] member, ARGV[2] require-exists flag
_CONDITIONAL_SET_SCRIPT = """
if ARGV[2] == '1' and redis.call('EXISTS', KEYS[1]) == 0 then
  return 0
end
redis.call('{command}', KEYS[2], ARGV[1])
return 1
"""

ADD_TO_SET_SCRIPT = _CONDITIONAL_SET_SCRIPT.format(command="SADD")
REMOVE_FROM_SET_SCRIPT = _CONDITIONAL_SET_SCRIPT.format(command="SREM")

# KEYS[1] record hash, KEYS[2..n] set keys; ARGV[1] JSON payload,
# ARGV[2..n] set field names aligned with KEYS[2..n]
WRITE_WITH_PREVIOUS_SCRIPT = """
local record = KEYS[1]
local payload = cjson.decode(ARGV[1])
local previous = {exists = redis.call('EXISTS', record), attributes = {}, sets = {}}

local flat = redis.call('HGETALL', record)
for i = 1, #flat, 2 do
  previous.attributes[flat[i]] = flat[i + 1]
end
for i = 2, #KEYS do
  previous.sets[ARGV[i]] = redis.call('SMEMBERS', KEYS[i])
end

for field, value in pairs(payload.hash) do
  redis.call('HSET', record, field, value)
end
for _, field in ipairs(payload.hash_deletes) do
  redis.call('HDEL', record, field)
end
for i = 2, #KEYS do
  local members = payload.sets[ARGV[i]]
  if members ~= nil then
    redis.call('DEL', KEYS[i])
    for _, member in ipairs(members) do
      redis.call('SADD', KEYS[i], member)
    end
  end
end

return cjson.encode(previous)
"""


class RedisGraphStore(GraphStore):
    """Graph store on Redis.

    A record is a hash holding the key fields and scalar attributes, plus one
    Redis set per set attribute. The record exists when its hash exists.
    Every operation runs as a single Lua script or MULTI block, so the
    existence check and the mutation of one record are atomic.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str):
        """
        Initialize the store.

        Args:
            redis_client: Configured asyncio Redis client
            namespace: Metadata table name, prefixed to every key
        """
        self.redis = redis_client
        self.namespace = namespace

    def _record_key(self, key: StructuredKey) -> str:
        # Hash tag keeps a record's hash and sets in one cluster slot
        return f"{self.namespace}:{{{key.package_name}:{key.version}}}"

    def _set_key(self, key: StructuredKey, field: str) -> str:
        return f"{self._record_key(key)}:{field}"

    async def conditional_add_to_set(
        self, key: StructuredKey, field: str, value: str, require_exists: bool = True
    ) -> StoreOutcome:
        return await self._conditional_set_op("add", ADD_TO_SET_SCRIPT, key, field, value, require_exists)

    async def conditional_remove_from_set(
        self, key: StructuredKey, field: str, value: str, require_exists: bool = True
    ) -> StoreOutcome:
        return await self._conditional_set_op("remove", REMOVE_FROM_SET_SCRIPT, key, field, value, require_exists)

    async def _conditional_set_op(
        self,
        operation: str,
        script: str,
        key: StructuredKey,
        field: str,
        value: str,
        require_exists: bool,
    ) -> StoreOutcome:
        self._check_set_field(field)
        try:
            reply = await self.redis.eval(
                script,
                2,
                self._record_key(key),
                self._set_key(key, field),
                value,
                "1" if require_exists else "0",
            )
        except RedisError as e:
            raise StoreError(f"set {operation}", key, str(e)) from e

        if int(reply) == 0:
            logger.debug("Store condition failed", operation=operation, key=str(key), field=field)
            return StoreOutcome.CONDITION_FAILED
        return StoreOutcome.SUCCESS

    async def write_with_previous(
        self, key: StructuredKey, updates: Mapping[str, AttributeUpdate]
    ) -> PackageRecord:
        payload = self._build_write_payload(key, updates)
        set_keys = [self._set_key(key, field) for field in SET_FIELDS]
        try:
            reply = await self.redis.eval(
                WRITE_WITH_PREVIOUS_SCRIPT,
                1 + len(set_keys),
                self._record_key(key),
                *set_keys,
                json.dumps(payload),
                *SET_FIELDS,
            )
        except RedisError as e:
            raise StoreError("write", key, str(e)) from e

        try:
            previous = json.loads(reply)
        except (TypeError, ValueError) as e:
            raise StoreError("write", key, f"malformed reply: {e}") from e
        return self._record_from_reply(key, previous)

    def _build_write_payload(self, key: StructuredKey, updates: Mapping[str, AttributeUpdate]) -> Dict[str, Any]:
        hash_values: Dict[str, str] = {PACKAGE_NAME_FIELD: key.package_name, VERSION_FIELD: key.version}
        hash_deletes: List[str] = []
        sets: Dict[str, List[str]] = {}

        for field, value in updates.items():
            if field in (PACKAGE_NAME_FIELD, VERSION_FIELD):
                raise ValueError(f"Key field {field!r} cannot be updated")
            if field in SET_FIELDS:
                if value is DELETE:
                    sets[field] = []
                elif isinstance(value, (set, frozenset)):
                    if not value:
                        raise ValueError(f"Empty set for {field!r}; use DELETE instead")
                    sets[field] = sorted(value)
                else:
                    raise ValueError(f"Set attribute {field!r} requires a set or DELETE")
            elif value is DELETE:
                hash_deletes.append(field)
            elif isinstance(value, str):
                hash_values[field] = value
            else:
                raise ValueError(f"Scalar attribute {field!r} requires a str or DELETE")

        return {"hash": hash_values, "hash_deletes": hash_deletes, "sets": sets}

    async def read(self, key: StructuredKey) -> Optional[PackageRecord]:
        record_key = self._record_key(key)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.exists(record_key)
                pipe.hgetall(record_key)
                for field in SET_FIELDS:
                    pipe.smembers(self._set_key(key, field))
                exists, attributes, *members = await pipe.execute()
        except RedisError as e:
            raise StoreError("read", key, str(e)) from e

        if not exists:
            return None
        return self._record_from_reply(
            key,
            {
                "exists": exists,
                "attributes": attributes,
                "sets": dict(zip(SET_FIELDS, members)),
            },
        )

    def _record_from_reply(self, key: StructuredKey, reply: Any) -> PackageRecord:
        if not isinstance(reply, dict):
            raise StoreError("decode", key, f"unexpected reply type {type(reply).__name__}")
        # cjson encodes empty Lua tables as objects, so empty sets may arrive as {}
        attributes = reply.get("attributes") or {}
        sets = reply.get("sets") or {}
        if not isinstance(attributes, dict) or not isinstance(sets, dict):
            raise StoreError("decode", key, "unexpected reply shape")

        return PackageRecord(
            build_project_name=attributes.get(BUILD_PROJECT_NAME_FIELD),
            dependencies=frozenset(sets.get(DEPENDENCIES_FIELD) or ()),
            consumers=frozenset(sets.get(CONSUMERS_FIELD) or ()),
            exists=bool(reply.get("exists")),
        )

    @staticmethod
    def _check_set_field(field: str) -> None:
        if field not in SET_FIELDS:
            raise ValueError(f"{field!r} is not a set attribute")
