"""Cargo manifest reader.

Extracts the package name, version and declared dependencies from a
``Cargo.toml``. Dependency versions are kept as the literal requirement
strings written in the manifest.
"""

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Union

import structlog

from pkgmeta.models.errors import ManifestError
from pkgmeta.models.package_models import Dependency, PackageManifest

logger = structlog.get_logger(__name__)


def read_manifest(path: Union[str, Path]) -> PackageManifest:
    """
    Read a package manifest from disk.

    Args:
        path: Filesystem path of the Cargo.toml

    Returns:
        PackageManifest: Package identity and declared dependencies

    Raises:
        ManifestError: If the file is missing, unparsable, or has no package section
    """
    manifest_path = Path(path)
    try:
        with manifest_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ManifestError(
            f"Can't find Cargo.toml at {manifest_path}",
            details={"path": str(manifest_path), "reason": str(e)},
        ) from e
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(
            f"Unable to parse {manifest_path}: {e}",
            details={"path": str(manifest_path)},
        ) from e

    manifest = parse_manifest(data)
    logger.info(
        "Manifest loaded",
        path=str(manifest_path),
        package=manifest.name,
        version=manifest.version,
        dependency_count=len(manifest.dependencies),
    )
    return manifest


def parse_manifest(data: Dict[str, Any]) -> PackageManifest:
    """Build a PackageManifest from decoded Cargo.toml content."""
    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestError("No package section present in Cargo.toml")

    name = package.get("name")
    version = package.get("version")
    if not isinstance(name, str) or not name:
        raise ManifestError("Package section of Cargo.toml has no name")
    # Workspace-inherited versions ({ workspace = true }) are not concrete
    if not isinstance(version, str) or not version:
        raise ManifestError(f"Package {name} in Cargo.toml has no concrete version")

    return PackageManifest(
        name=name,
        version=version,
        dependencies=_parse_dependencies(data.get("dependencies") or {}),
    )


def _parse_dependencies(table: Dict[str, Any]) -> List[Dependency]:
    if not isinstance(table, dict):
        raise ManifestError("Dependencies section of Cargo.toml is not a table")

    dependencies: List[Dependency] = []
    for name, spec in table.items():
        if isinstance(spec, str):
            dependencies.append(Dependency(name=name, version=spec))
        elif isinstance(spec, dict):
            # Tracked under the table key even when `package` renames the crate
            version = spec.get("version")
            dependencies.append(Dependency(name=name, version=version if isinstance(version, str) else None))
        else:
            raise ManifestError(
                f"Dependency {name} in Cargo.toml has an unsupported specification",
                details={"dependency": name},
            )
    return dependencies
