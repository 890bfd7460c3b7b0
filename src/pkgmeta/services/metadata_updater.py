"""Package metadata update: the single entry point of the update protocol.

One run links the package to its tracked dependencies, commits its own
record, then reconciles the graph against the record it replaced:

    LINK_DEPENDENCIES -> COMMIT_OWN_RECORD -> {REMOVE_STALE_EDGES, CASCADE_REBUILDS}

Any fatal error aborts the remaining stages. Side effects already applied
(store writes, started builds) are not rolled back; re-running the update is
safe because every store mutation is idempotent.
"""

from pathlib import Path
from typing import Union

import structlog

from pkgmeta.clients.build_trigger_client import BuildTrigger
from pkgmeta.constants.graph_fields import DEFAULT_ECOSYSTEM
from pkgmeta.models.package_key import PackageKey
from pkgmeta.models.package_models import UpdateSummary
from pkgmeta.services.dependency_linker import DependencyLinker
from pkgmeta.services.graph_reconciler import GraphReconciler
from pkgmeta.services.graph_store import GraphStore
from pkgmeta.services.project_record_updater import ProjectRecordUpdater
from pkgmeta.utils.manifest_reader import read_manifest

logger = structlog.get_logger(__name__)


class MetadataUpdater:
    """Runs the graph update and rebuild cascade for one package."""

    def __init__(
        self,
        store: GraphStore,
        build_trigger: BuildTrigger,
        ecosystem: str = DEFAULT_ECOSYSTEM,
        concurrency: int = 0,
    ):
        """
        Initialize the updater.

        Args:
            store: Graph store holding the package records
            build_trigger: Gateway used to start consumer rebuilds
            ecosystem: Ecosystem tag of the packages this updater handles
            concurrency: Maximum concurrent calls per fan-out stage, 0 for unbounded
        """
        self.ecosystem = ecosystem
        self.linker = DependencyLinker(store, concurrency=concurrency)
        self.record_updater = ProjectRecordUpdater(store)
        self.reconciler = GraphReconciler(store, build_trigger, concurrency=concurrency)

    async def update_metadata(self, build_project_name: str, manifest_path: Union[str, Path]) -> UpdateSummary:
        """
        Update the graph for the package described by a manifest.

        Args:
            build_project_name: Build project that produced this package
            manifest_path: Filesystem path of the package manifest

        Returns:
            UpdateSummary: Tracked dependencies, removed edges and started builds

        Raises:
            ManifestError: If the manifest cannot be read; no store call is made
            StoreError: On any store failure other than an unmet condition
            KeyDecodeError: If a stored package key is malformed
            TriggerError: If a consumer rebuild cannot be started
        """
        manifest = read_manifest(manifest_path)
        pkg_key = PackageKey(ecosystem=self.ecosystem, name=manifest.name, version=manifest.version)

        with structlog.contextvars.bound_contextvars(package=pkg_key.fq_key):
            logger.info("Metadata update started", build_project_name=build_project_name)

            tracked_deps = await self.linker.link_all(pkg_key, manifest.dependencies)
            previous = await self.record_updater.commit(pkg_key, build_project_name, tracked_deps)
            result = await self.reconciler.reconcile(pkg_key, previous, tracked_deps)

            summary = UpdateSummary(
                package=pkg_key.fq_key,
                build_project_name=build_project_name,
                tracked_dependencies=tracked_deps,
                removed_edges=result.removed_edges,
                triggered_builds=result.triggered_builds,
            )
            logger.info(
                "Metadata update completed",
                tracked_dependencies=sorted(tracked_deps),
                removed_edges=summary.removed_edges,
                triggered_builds=summary.triggered_builds,
            )
            return summary
