"""
Shared fixtures for metadata updater tests.
"""

import textwrap
from typing import Dict, List, Mapping, Optional, Set

import pytest
import structlog

from pkgmeta.clients.build_trigger_client import BuildTrigger
from pkgmeta.constants.graph_fields import BUILD_PROJECT_NAME_FIELD, SET_FIELDS
from pkgmeta.models.errors import TriggerError
from pkgmeta.models.package_key import StructuredKey, decode
from pkgmeta.models.package_models import PackageRecord
from pkgmeta.services.graph_store import DELETE, AttributeUpdate, GraphStore, StoreOutcome


class InMemoryGraphStore(GraphStore):
    """Dict-backed graph store with the same semantics as the Redis store.

    ``records`` maps a structured key to its attributes; set attributes are
    Python sets and are absent rather than empty once deleted.
    """

    def __init__(self):
        self.records: Dict[StructuredKey, Dict[str, object]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[tuple, Exception] = {}

    def seed(self, fq_key: str, build_project_name: Optional[str] = None, **sets: Set[str]) -> StructuredKey:
        key = decode(fq_key).structured_key
        record: Dict[str, object] = {}
        if build_project_name is not None:
            record[BUILD_PROJECT_NAME_FIELD] = build_project_name
        for field, members in sets.items():
            if members:
                record[field] = set(members)
        self.records[key] = record
        return key

    def attributes(self, fq_key: str) -> Optional[Dict[str, object]]:
        return self.records.get(decode(fq_key).structured_key)

    def _maybe_fail(self, operation: str, key: StructuredKey) -> None:
        self.calls.append((operation, key))
        error = self.fail_on.get((operation, key)) or self.fail_on.get((operation, None))
        if error is not None:
            raise error

    async def conditional_add_to_set(self, key, field, value, require_exists=True):
        self._maybe_fail("add", key)
        if require_exists and key not in self.records:
            return StoreOutcome.CONDITION_FAILED
        record = self.records.setdefault(key, {})
        record.setdefault(field, set()).add(value)
        return StoreOutcome.SUCCESS

    async def conditional_remove_from_set(self, key, field, value, require_exists=True):
        self._maybe_fail("remove", key)
        if require_exists and key not in self.records:
            return StoreOutcome.CONDITION_FAILED
        record = self.records.get(key, {})
        members = record.get(field)
        if members is not None:
            members.discard(value)
            if not members:
                del record[field]
        return StoreOutcome.SUCCESS

    async def write_with_previous(self, key, updates: Mapping[str, AttributeUpdate]):
        self._maybe_fail("write", key)
        previous = self._snapshot(key)
        record = self.records.setdefault(key, {})
        for field, value in updates.items():
            if value is DELETE:
                record.pop(field, None)
            elif field in SET_FIELDS:
                assert value, "empty sets are not storable"
                record[field] = set(value)
            else:
                record[field] = value
        return previous

    async def read(self, key):
        self._maybe_fail("read", key)
        if key not in self.records:
            return None
        return self._snapshot(key)

    def _snapshot(self, key: StructuredKey) -> PackageRecord:
        if key not in self.records:
            return PackageRecord.missing()
        record = self.records[key]
        return PackageRecord(
            build_project_name=record.get(BUILD_PROJECT_NAME_FIELD),
            dependencies=frozenset(record.get("dependencies", ())),
            consumers=frozenset(record.get("consumers", ())),
        )


class RecordingBuildTrigger(BuildTrigger):
    """Build trigger that records started projects."""

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.started: List[str] = []
        self.fail_for = fail_for or set()

    async def start_build(self, project: str) -> None:
        if project in self.fail_for:
            raise TriggerError(project, "HTTP 500", status_code=500)
        self.started.append(project)


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def build_trigger():
    return RecordingBuildTrigger()


@pytest.fixture
def write_manifest(tmp_path):
    """Write a Cargo.toml into a temporary directory and return its path."""

    def _write(content: str, name: str = "Cargo.toml"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_structlog_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
