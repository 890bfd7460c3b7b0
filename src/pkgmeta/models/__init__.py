"""Domain models for the package dependency graph."""

from pkgmeta.models.errors import (
    PackageMetadataError,
    ConfigurationError,
    ManifestError,
    KeyDecodeError,
    StoreError,
    TriggerError,
)
from pkgmeta.models.package_key import PackageKey, StructuredKey, encode, decode, structured_key
from pkgmeta.models.package_models import (
    Dependency,
    PackageManifest,
    PackageRecord,
    ReconcileResult,
    UpdateSummary,
)
