"""Record field names shared by the graph store and the update protocol."""

PACKAGE_NAME_FIELD = "package_name"
VERSION_FIELD = "version"

BUILD_PROJECT_NAME_FIELD = "build_project_name"
DEPENDENCIES_FIELD = "dependencies"
CONSUMERS_FIELD = "consumers"

SET_FIELDS = (DEPENDENCIES_FIELD, CONSUMERS_FIELD)

ECOSYSTEM_SEPARATOR = "/"
VERSION_SEPARATOR = ":"

DEFAULT_ECOSYSTEM = "rust"
