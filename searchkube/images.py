"""Resolution of the container images and ports a cluster runs with."""

from __future__ import annotations

import posixpath
from typing import Optional

from searchkube.helpers import Version, find_first_partial, same_description_and_component
from searchkube.model import ComponentStatus, ImageSpec, NodePool, OpenSearchCluster

_OPENSEARCH_REPO = "docker.io/opensearchproject"
_INIT_HELPER_REPO = "public.ecr.aws/opsterio"
_INIT_HELPER_IMAGE = "busybox"
_INIT_HELPER_VERSION = "1.27.2-buildx"

_SECURITYCONFIG_PATH_V2 = "/usr/share/opensearch/config/opensearch-security"
_SECURITYCONFIG_PATH_V1 = "/usr/share/opensearch/plugins/opensearch-security/securityconfig"


def _from_custom(custom: Optional[ImageSpec]) -> ImageSpec:
    """Copy pull settings and image from a custom spec; image stays None if unset."""
    result = ImageSpec()
    if custom is None:
        return result
    if custom.image_pull_policy is not None:
        result.image_pull_policy = custom.image_pull_policy
    if custom.image_pull_secrets:
        result.image_pull_secrets = list(custom.image_pull_secrets)
    if custom.image is not None:
        result.image = custom.image
    return result


def _image_ref(repo: str, name: str, tag: str) -> str:
    return f"{posixpath.normpath(posixpath.join(repo, name))}:{tag}"


def resolve_init_helper_image(cluster: OpenSearchCluster) -> ImageSpec:
    """Image for the helper init containers."""
    result = _from_custom(cluster.init_helper.image_spec)
    if result.image is not None:
        return result
    repo = cluster.general.default_repo if cluster.general.default_repo is not None else _INIT_HELPER_REPO
    tag = cluster.init_helper.version if cluster.init_helper.version is not None else _INIT_HELPER_VERSION
    result.image = _image_ref(repo, _INIT_HELPER_IMAGE, tag)
    return result


def resolve_image(cluster: OpenSearchCluster, node_pool: Optional[NodePool] = None) -> ImageSpec:
    """OpenSearch image for a node pool, or for the bootstrap pod when none is given.

    During an upgrade a node pool keeps the running version until the
    upgrader has recorded that it is working on that pool.
    """
    result = _from_custom(cluster.general.image_spec)
    if result.image is not None:
        return result

    version = cluster.general.version
    if node_pool is not None and cluster.upgrade_in_progress():
        probe = ComponentStatus(component="Upgrader", description=node_pool.component)
        upgrading = find_first_partial(
            cluster.status.components_status, probe, same_description_and_component
        )
        if upgrading is None:
            version = cluster.status.version

    repo = cluster.general.default_repo if cluster.general.default_repo is not None else _OPENSEARCH_REPO
    result.image = _image_ref(repo, "opensearch", version)
    return result


def resolve_dashboards_image(cluster: OpenSearchCluster) -> ImageSpec:
    """Image for the dashboards deployment."""
    result = _from_custom(cluster.dashboards.image_spec)
    if result.image is not None:
        return result
    repo = cluster.general.default_repo if cluster.general.default_repo is not None else _OPENSEARCH_REPO
    result.image = _image_ref(repo, "opensearch-dashboards", cluster.dashboards.version)
    return result


def version_check(cluster: OpenSearchCluster) -> tuple[int, str]:
    """Port and security config path that the security admin tool must use.

    Raises ValueError when the cluster version cannot be parsed.
    """
    version = Version.parse(cluster.general.version)
    if not version.prerelease and version >= Version.parse("2.0"):
        port = cluster.general.http_port if cluster.general.http_port > 0 else 9200
        return port, _SECURITYCONFIG_PATH_V2
    return 9300, _SECURITYCONFIG_PATH_V1