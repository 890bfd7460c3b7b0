"""Reconciles the graph after a package record has been rewritten.

Both passes work from the record state returned by the commit:

- stale edge removal drops this package from the consumer sets of
  dependencies it no longer declares;
- the rebuild cascade re-reads each previously recorded consumer and starts
  its build when it still depends on this package.
"""

from typing import AbstractSet, List, Optional

import structlog

from pkgmeta.clients.build_trigger_client import BuildTrigger
from pkgmeta.constants.graph_fields import CONSUMERS_FIELD
from pkgmeta.models.package_key import PackageKey, decode
from pkgmeta.models.package_models import PackageRecord, ReconcileResult
from pkgmeta.services.graph_store import GraphStore, StoreOutcome
from pkgmeta.utils.fan_out import gather_fail_fast

logger = structlog.get_logger(__name__)


class GraphReconciler:

    def __init__(self, store: GraphStore, build_trigger: BuildTrigger, concurrency: int = 0):
        """
        Initialize the reconciler.

        Args:
            store: Graph store holding the package records
            build_trigger: Gateway used to start consumer rebuilds
            concurrency: Maximum concurrent calls per pass, 0 for unbounded
        """
        self.store = store
        self.build_trigger = build_trigger
        self.concurrency = concurrency

    async def reconcile(
        self,
        pkg_key: PackageKey,
        previous: PackageRecord,
        tracked_deps: AbstractSet[str],
    ) -> ReconcileResult:
        """Run stale edge removal and the rebuild cascade concurrently."""
        removed_edges, triggered_builds = await gather_fail_fast(
            [
                self.remove_stale_edges(pkg_key, previous.dependencies, tracked_deps),
                self.cascade_rebuilds(pkg_key, previous.consumers),
            ]
        )
        return ReconcileResult(removed_edges=removed_edges, triggered_builds=triggered_builds)

    async def remove_stale_edges(
        self,
        pkg_key: PackageKey,
        old_deps: AbstractSet[str],
        new_deps: AbstractSet[str],
    ) -> List[str]:
        """
        Remove this package from the consumers of dependencies it dropped.

        Returns:
            List[str]: Fully-qualified keys of the dependencies unlinked

        Raises:
            KeyDecodeError: If a recorded dependency key is malformed
            StoreError: On any store failure other than an unmet condition
        """
        stale = sorted(set(old_deps) - set(new_deps))
        if not stale:
            return []

        # Malformed keys fail the pass before any write
        stale_keys = [decode(dep) for dep in stale]
        await gather_fail_fast(
            (self._remove_edge(pkg_key, dep_key) for dep_key in stale_keys),
            concurrency=self.concurrency,
        )
        return stale

    async def _remove_edge(self, pkg_key: PackageKey, dep_key: PackageKey) -> None:
        outcome = await self.store.conditional_remove_from_set(
            dep_key.structured_key,
            CONSUMERS_FIELD,
            pkg_key.fq_key,
            require_exists=True,
        )
        if outcome is StoreOutcome.CONDITION_FAILED:
            logger.info("Stale dependency no longer tracked", dependency=dep_key.fq_key)
        else:
            logger.info("Stale dependency edge removed", dependency=dep_key.fq_key)

    async def cascade_rebuilds(self, pkg_key: PackageKey, old_consumers: AbstractSet[str]) -> List[str]:
        """
        Start rebuilds of consumers that still depend on this package.

        Returns:
            List[str]: Build project names that were started

        Raises:
            KeyDecodeError: If a recorded consumer key is malformed
            StoreError: If a consumer record cannot be read
            TriggerError: If a build cannot be started
        """
        consumer_keys = [decode(consumer) for consumer in sorted(old_consumers)]
        results = await gather_fail_fast(
            (self._rebuild_consumer(pkg_key, consumer_key) for consumer_key in consumer_keys),
            concurrency=self.concurrency,
        )
        return [project for project in results if project is not None]

    async def _rebuild_consumer(self, pkg_key: PackageKey, consumer_key: PackageKey) -> Optional[str]:
        # The consumer may have dropped this dependency since the edge was recorded
        record = await self.store.read(consumer_key.structured_key)
        if record is None or pkg_key.fq_key not in record.dependencies:
            logger.info("Consumer no longer depends on package, skipping", consumer=consumer_key.fq_key)
            return None

        if not record.build_project_name:
            logger.info("Consumer has no build project, skipping", consumer=consumer_key.fq_key)
            return None

        await self.build_trigger.start_build(record.build_project_name)
        logger.info(
            "Consumer rebuild triggered",
            consumer=consumer_key.fq_key,
            build_project_name=record.build_project_name,
        )
        return record.build_project_name
