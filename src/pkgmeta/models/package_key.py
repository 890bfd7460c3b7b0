"""Package key codec.

A package key names one concrete built artifact. It has two forms:

- the fully-qualified string ``"<ecosystem>/<name>:<version>"`` stored inside
  dependency and consumer sets and written to logs;
- the structured key ``(package_name="<ecosystem>/<name>", version)`` used to
  address the package's record in the graph store.
"""

from dataclasses import dataclass
from typing import NamedTuple

from pkgmeta.constants.graph_fields import ECOSYSTEM_SEPARATOR, VERSION_SEPARATOR
from pkgmeta.models.errors import KeyDecodeError


class StructuredKey(NamedTuple):
    """Store lookup key of a package record."""

    package_name: str
    version: str

    def __str__(self) -> str:
        return f"{self.package_name}{VERSION_SEPARATOR}{self.version}"


@dataclass(frozen=True)
class PackageKey:
    """Identity of one concrete package build."""

    ecosystem: str
    name: str
    version: str

    @property
    def fq_key(self) -> str:
        return encode(self.ecosystem, self.name, self.version)

    @property
    def structured_key(self) -> StructuredKey:
        return structured_key(self)

    @classmethod
    def from_structured_key(cls, key: StructuredKey) -> "PackageKey":
        """Rebuild a package key from its store lookup key."""
        return decode(str(key))

    def __str__(self) -> str:
        return self.fq_key


def encode(ecosystem: str, name: str, version: str) -> str:
    """Format a fully-qualified package key."""
    return f"{ecosystem}{ECOSYSTEM_SEPARATOR}{name}{VERSION_SEPARATOR}{version}"


def decode(value: str) -> PackageKey:
    """
    Parse a fully-qualified package key.

    Args:
        value: String of the form ``ecosystem/name:version``

    Returns:
        PackageKey: Parsed key

    Raises:
        KeyDecodeError: If the string does not hold exactly one ``/`` followed
            by exactly one ``:``, or if ecosystem or name is empty
    """
    if not isinstance(value, str):
        raise KeyDecodeError(repr(value))
    if value.count(ECOSYSTEM_SEPARATOR) != 1 or value.count(VERSION_SEPARATOR) != 1:
        raise KeyDecodeError(value)

    package_name, version = value.split(VERSION_SEPARATOR)
    if ECOSYSTEM_SEPARATOR not in package_name:
        raise KeyDecodeError(value)

    ecosystem, name = package_name.split(ECOSYSTEM_SEPARATOR)
    if not ecosystem or not name:
        raise KeyDecodeError(value)

    return PackageKey(ecosystem=ecosystem, name=name, version=version)


def structured_key(key: PackageKey) -> StructuredKey:
    """Build the store lookup key for a package."""
    return StructuredKey(
        package_name=f"{key.ecosystem}{ECOSYSTEM_SEPARATOR}{key.name}",
        version=key.version,
    )
