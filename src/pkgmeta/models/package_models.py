"""Data models for manifests, graph records and run results."""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional


@dataclass(frozen=True)
class Dependency:
    """A dependency declared in a package manifest.

    ``version`` is the literal requirement string from the manifest. It is
    not resolved against published versions.
    """

    name: str
    version: Optional[str] = None


@dataclass
class PackageManifest:
    name: str
    version: str
    dependencies: List[Dependency] = field(default_factory=list)


@dataclass(frozen=True)
class PackageRecord:
    """State of one package record in the graph store.

    ``exists`` is False for the empty record returned when nothing was
    stored under the key.
    """

    build_project_name: Optional[str] = None
    dependencies: FrozenSet[str] = frozenset()
    consumers: FrozenSet[str] = frozenset()
    exists: bool = True

    @classmethod
    def missing(cls) -> "PackageRecord":
        return cls(exists=False)


@dataclass
class ReconcileResult:
    removed_edges: List[str] = field(default_factory=list)
    triggered_builds: List[str] = field(default_factory=list)


@dataclass
class UpdateSummary:
    """Outcome of one successful ``update_metadata`` run."""

    package: str
    build_project_name: str
    tracked_dependencies: FrozenSet[str] = frozenset()
    removed_edges: List[str] = field(default_factory=list)
    triggered_builds: List[str] = field(default_factory=list)
