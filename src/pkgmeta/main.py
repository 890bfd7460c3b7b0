"""
Package metadata updater command line entry point.

Runs one metadata update for the package built in the current directory:
records its tracked dependencies in the graph store and starts rebuilds of
its consumers.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from pkgmeta.clients.build_trigger_client import BuildTriggerClient
from pkgmeta.configuration.common_config import AppSettings, get_app_settings
from pkgmeta.configuration.logging_config import configure_logging
from pkgmeta.models.errors import PackageMetadataError
from pkgmeta.models.package_models import UpdateSummary
from pkgmeta.services.graph_store import RedisGraphStore
from pkgmeta.services.metadata_updater import MetadataUpdater
from pkgmeta.utils.redis_client import create_redis_client

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgmeta",
        description="Record a package build in the dependency graph and rebuild its consumers.",
    )
    parser.add_argument("--manifest-path", help="Path of the Cargo.toml (defaults to PKG_MANIFEST_PATH or ./Cargo.toml)")
    parser.add_argument("--build-id", help="Build identifier 'ProjectName:UUID' (defaults to PKG_BUILD_ID)")
    parser.add_argument("--table", help="Package metadata table name (defaults to PKG_METADATA_TABLE)")
    parser.add_argument("--log-level", help="Log level (defaults to LOG_LEVEL or INFO)")
    return parser


def apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """Return settings with command line flags taking precedence over the environment."""
    overrides = {}
    if args.manifest_path:
        overrides["PKG_MANIFEST_PATH"] = args.manifest_path
    if args.build_id:
        overrides["PKG_BUILD_ID"] = args.build_id
    if args.table:
        overrides["PKG_METADATA_TABLE"] = args.table
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level
    if not overrides:
        return settings
    execution = settings.execution.model_copy(update=overrides)
    return settings.model_copy(update={"execution": execution})


async def run_update(settings: AppSettings) -> UpdateSummary:
    """Wire the store and build trigger from settings and run one update."""
    execution = settings.execution
    build_project_name = execution.build_project_name()
    table_name = execution.table_name()
    logger.info("Writing changes to metadata table", table=table_name)

    redis_client = create_redis_client(settings.redis)
    try:
        async with BuildTriggerClient(settings.build_trigger) as build_trigger:
            updater = MetadataUpdater(
                RedisGraphStore(redis_client, table_name),
                build_trigger,
                ecosystem=execution.PKG_ECOSYSTEM,
                concurrency=execution.FAN_OUT_CONCURRENCY,
            )
            return await asyncio.wait_for(
                updater.update_metadata(build_project_name, execution.PKG_MANIFEST_PATH),
                timeout=execution.RUN_TIMEOUT_SECONDS,
            )
    finally:
        await redis_client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_app_settings(), args)
    configure_logging(log_level=settings.execution.LOG_LEVEL)

    try:
        asyncio.run(run_update(settings))
    except PackageMetadataError as e:
        logger.error("Metadata update failed", error=e.msg, **e.to_dict())
        return 1
    except asyncio.TimeoutError:
        logger.error(
            "Metadata update failed",
            error=f"Run exceeded {settings.execution.RUN_TIMEOUT_SECONDS} seconds",
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
