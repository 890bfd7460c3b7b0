"""Writes a package's own record and hands back what it replaced."""

from typing import AbstractSet, Dict

import structlog

from pkgmeta.constants.graph_fields import BUILD_PROJECT_NAME_FIELD, DEPENDENCIES_FIELD
from pkgmeta.models.package_key import PackageKey
from pkgmeta.models.package_models import PackageRecord
from pkgmeta.services.graph_store import DELETE, AttributeUpdate, GraphStore

logger = structlog.get_logger(__name__)


class ProjectRecordUpdater:

    def __init__(self, store: GraphStore):
        self.store = store

    async def commit(
        self,
        pkg_key: PackageKey,
        build_project_name: str,
        tracked_deps: AbstractSet[str],
    ) -> PackageRecord:
        """
        Record the package's build project and tracked dependencies.

        The record is created when absent. An empty dependency set deletes the
        ``dependencies`` attribute rather than storing an empty set.

        Returns:
            PackageRecord: Record state immediately before this write

        Raises:
            StoreError: On any store failure
        """
        updates: Dict[str, AttributeUpdate] = {
            BUILD_PROJECT_NAME_FIELD: build_project_name,
            DEPENDENCIES_FIELD: frozenset(tracked_deps) if tracked_deps else DELETE,
        }
        previous = await self.store.write_with_previous(pkg_key.structured_key, updates)

        logger.info(
            "Package record committed",
            package=pkg_key.fq_key,
            build_project_name=build_project_name,
            dependency_count=len(tracked_deps),
            created=not previous.exists,
        )
        return previous
