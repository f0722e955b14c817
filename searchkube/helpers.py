"""Version handling, role mapping and small collection helpers."""

from __future__ import annotations

import itertools
import os
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from searchkube.model import ComponentStatus

DASHBOARD_CONFIG_NAME = "opensearch_dashboards.yml"
DASHBOARD_CHECKSUM_NAME = "checksum/dashboards.yml"
OS_USER_NAME_ANNOTATION = "opensearchuser/name"
OS_USER_NAMESPACE_ANNOTATION = "opensearchuser/namespace"
DNS_BASE_ENV_VARIABLE = "DNS_BASE"

_DEFAULT_DNS_BASE = "cluster.local"

_VERSION_RE = re.compile(
    r"^v?([0-9]+(?:\.[0-9]+)*?)"
    r"(?:-([0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|(?:-?([A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)))?"
    r"(?:\+([0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?$"
)


def _compare_part(left: str, right: str) -> int:
    if left == right:
        return 0
    left_numeric = left.isdigit()
    right_numeric = right.isdigit()
    if left == "":
        return -1 if right_numeric else 1
    if right == "":
        return 1 if left_numeric else -1
    if left_numeric and not right_numeric:
        return -1
    if not left_numeric and right_numeric:
        return 1
    if not left_numeric:
        return 1 if left > right else -1
    return 1 if int(left) > int(right) else -1


def _compare_prerelease(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return 1
    if not right:
        return -1
    for a, b in itertools.zip_longest(left.split("."), right.split("."), fillvalue=""):
        result = _compare_part(a, b)
        if result:
            return result
    return 0


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A dotted version number with optional pre-release and build metadata."""

    segments: tuple[int, ...]
    prerelease: str = ""
    metadata: str = ""
    original: str = ""

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse a version string; raise ValueError when it is malformed."""
        match = _VERSION_RE.match(text)
        if match is None:
            raise ValueError(f"malformed version: {text!r}")
        segments = [int(part) for part in match.group(1).split(".")]
        segments.extend([0] * (3 - len(segments)))
        prerelease = match.group(2) or match.group(3) or ""
        return cls(tuple(segments), prerelease, match.group(4) or "", text)

    def _compare(self, other: "Version") -> int:
        width = max(len(self.segments), len(other.segments))
        mine = self.segments + (0,) * (width - len(self.segments))
        theirs = other.segments + (0,) * (width - len(other.segments))
        if mine != theirs:
            return 1 if mine > theirs else -1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self) -> int:
        segments = list(self.segments)
        while segments and segments[-1] == 0:
            segments.pop()
        return hash((tuple(segments), self.prerelease))

    def __str__(self) -> str:
        return self.original or ".".join(map(str, self.segments))


_CLUSTER_MANAGER_VERSION = Version.parse("2.0.0")


def _is_2x(version: Version) -> bool:
    return version >= _CLUSTER_MANAGER_VERSION


def cluster_dns_base() -> str:
    """The cluster DNS suffix, from DNS_BASE or the Kubernetes default."""
    return os.environ.get(DNS_BASE_ENV_VARIABLE) or _DEFAULT_DNS_BASE


def remove_status(
    status: ComponentStatus, statuses: Sequence[ComponentStatus]
) -> list[ComponentStatus]:
    """Return the statuses without the first entry equal to ``status``."""
    result = list(statuses)
    if status in result:
        result.remove(status)
    return result


def replace_status(
    remove: ComponentStatus, add: ComponentStatus, statuses: Sequence[ComponentStatus]
) -> list[ComponentStatus]:
    """Drop ``remove`` from the statuses and append ``add``."""
    return [*remove_status(remove, statuses), add]


def find_first_partial(
    statuses: Iterable[ComponentStatus],
    item: ComponentStatus,
    predicate: Callable[[ComponentStatus, ComponentStatus], bool],
) -> Optional[ComponentStatus]:
    """Return the first status that the predicate matches against ``item``."""
    return next((status for status in statuses if predicate(status, item)), None)


def same_description_and_component(left: ComponentStatus, right: ComponentStatus) -> bool:
    """Match statuses on component and description, ignoring the status text."""
    return left.description == right.description and left.component == right.component


def find_by_path(obj: Any, keys: Sequence[str]) -> Any:
    """Look up a value in nested mappings; raise KeyError when it is absent.

    Intermediate keys that are missing are skipped, so the lookup continues
    at the current level.
    """
    if not keys:
        raise ValueError("empty key path")
    if not isinstance(obj, Mapping):
        raise KeyError(keys[0])
    current: Mapping[str, Any] = obj
    for key in keys[:-1]:
        if key in current:
            value = current[key]
            if not isinstance(value, Mapping):
                raise KeyError(key)
            current = value
    return current[keys[-1]]


def merge_configs(
    left: Optional[Mapping[str, str]], right: Optional[Mapping[str, str]]
) -> Optional[dict[str, str]]:
    """Merge two config maps, values from ``right`` winning."""
    if left is None:
        return None if right is None else dict(right)
    return {**left, **(right or {})}


def resolve_cluster_manager_role(version: str) -> str:
    """Name of the manager role for an OpenSearch version."""
    try:
        parsed = Version.parse(version)
    except ValueError:
        return "master"
    return "cluster_manager" if _is_2x(parsed) else "master"


def map_cluster_role(role: str, version: str) -> str:
    """Translate a role that was renamed between major OpenSearch versions."""
    try:
        parsed = Version.parse(version)
    except ValueError:
        return role
    is_2x = _is_2x(parsed)
    if role == "master" and is_2x:
        return "cluster_manager"
    if role == "cluster_manager" and not is_2x:
        return "master"
    return role


def map_cluster_roles(roles: Iterable[str], version: str) -> list[str]:
    """Translate every role for the given version."""
    return [map_cluster_role(role, version) for role in roles]


def diff_slice(left: Iterable[str], right: Iterable[str]) -> list[str]:
    """Items of ``left`` that are not in ``right``, in order."""
    excluded = set(right)
    return [item for item in left if item not in excluded]


def check_volume_exists(
    volumes: Iterable[Mapping[str, Any]],
    volume_mounts: Iterable[Mapping[str, Any]],
    secret_name: str,
    volume_name: str,
) -> bool:
    """True when a mounted volume of that name is backed by the named secret or config map."""
    volume = next((v for v in volumes if v.get("name") == volume_name), None)
    if volume is None:
        return False
    if not any(mount.get("name") == volume_name for mount in volume_mounts):
        return False
    if volume.get("secret") is not None:
        return volume["secret"].get("secretName") == secret_name
    if volume.get("configMap") is not None:
        return volume["configMap"].get("name") == secret_name
    return False


def has_key_with_bytes(data: Mapping[str, bytes], key: str) -> bool:
    """True when the secret data holds the key."""
    return key in data