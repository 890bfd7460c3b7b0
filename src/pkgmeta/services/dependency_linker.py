"""Registers a package as a consumer of each of its tracked dependencies."""

from typing import FrozenSet, Iterable, Optional

import structlog

from pkgmeta.constants.graph_fields import CONSUMERS_FIELD
from pkgmeta.models.package_key import PackageKey
from pkgmeta.models.package_models import Dependency
from pkgmeta.services.graph_store import GraphStore, StoreOutcome
from pkgmeta.utils.fan_out import gather_fail_fast

logger = structlog.get_logger(__name__)


class DependencyLinker:
    """Adds consumer edges at dependency records that already exist."""

    def __init__(self, store: GraphStore, concurrency: int = 0):
        """
        Initialize the linker.

        Args:
            store: Graph store holding the package records
            concurrency: Maximum concurrent store calls, 0 for unbounded
        """
        self.store = store
        self.concurrency = concurrency

    async def link(self, consumer_key: PackageKey, dep: Dependency) -> Optional[str]:
        """
        Register ``consumer_key`` as a consumer of ``dep``.

        Args:
            consumer_key: Package being updated
            dep: One of its declared dependencies

        Returns:
            Optional[str]: Fully-qualified key of the dependency if it is
            tracked, None if it has no version or no record

        Raises:
            StoreError: On any store failure other than an unmet condition
        """
        if dep.version is None:
            logger.warning("Dependency has no version specified", package=consumer_key.fq_key, dependency=dep.name)
            return None

        dep_key = PackageKey(ecosystem=consumer_key.ecosystem, name=dep.name, version=dep.version)
        outcome = await self.store.conditional_add_to_set(
            dep_key.structured_key,
            CONSUMERS_FIELD,
            consumer_key.fq_key,
            require_exists=True,
        )

        if outcome is StoreOutcome.CONDITION_FAILED:
            logger.info("Dependency not being tracked, skipping", dependency=dep_key.fq_key)
            return None

        logger.info("Dependency linked", dependency=dep_key.fq_key)
        return dep_key.fq_key

    async def link_all(self, consumer_key: PackageKey, deps: Iterable[Dependency]) -> FrozenSet[str]:
        """Link every dependency concurrently and return the tracked ones."""
        results = await gather_fail_fast(
            (self.link(consumer_key, dep) for dep in deps),
            concurrency=self.concurrency,
        )
        return frozenset(result for result in results if result is not None)
