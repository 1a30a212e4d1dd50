"""Resource identity resolution for discovery catalog entries."""

from typing import Any

from kubeinventory.core.exceptions import MalformedIdentity
from kubeinventory.models import APIResourceEntry, ResourceKind
from kubeinventory.models.inventory_models import SUBRESOURCE_SEPARATOR

# The legacy core group is served as GroupVersion "v1" with no group segment.
LEGACY_CORE_VERSION = "v1"


def is_subresource(name: str) -> bool:
    """Sub-resources (``pods/log``, ``deployments/scale``) are not listable collections."""
    return SUBRESOURCE_SEPARATOR in name


def resolve_kind(group_version: Any, entry: APIResourceEntry) -> ResourceKind:
    """Resolve the (group, version, resource) identity of a catalog entry.

    The group is the GroupVersion segment before ``/`` (empty when there is
    no separator) and the version is the entry's declared version, falling
    back to the GroupVersion's own version segment. A group token equal to
    ``v1`` is the legacy core group and resolves to ``("", "v1")``.
    """
    if not isinstance(group_version, str) or not group_version:
        raise MalformedIdentity(group_version, entry.name, "empty group/version")

    group_token, separator, gv_version = group_version.partition(SUBRESOURCE_SEPARATOR)

    if group_token == LEGACY_CORE_VERSION:
        return ResourceKind(
            group="",
            version=LEGACY_CORE_VERSION,
            name=entry.name,
            namespaced=entry.namespaced,
        )

    if not separator:
        group = ""
        version = entry.version or group_token
    else:
        if not group_token or not gv_version or SUBRESOURCE_SEPARATOR in gv_version:
            raise MalformedIdentity(group_version, entry.name, "expected 'group/version'")
        group = group_token
        version = entry.version or gv_version

    if not version:
        raise MalformedIdentity(group_version, entry.name, "no version")

    return ResourceKind(group=group, version=version, name=entry.name, namespaced=entry.namespaced)
