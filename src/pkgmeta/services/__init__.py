"""Graph update protocol services."""

from pkgmeta.services.graph_store import (
    GraphStore,
    RedisGraphStore,
    StoreOutcome,
    DELETE,
)
from pkgmeta.services.dependency_linker import DependencyLinker
from pkgmeta.services.project_record_updater import ProjectRecordUpdater
from pkgmeta.services.graph_reconciler import GraphReconciler
from pkgmeta.services.metadata_updater import MetadataUpdater
