"""The opensearch.yml config map and the per-node-pool configuration hash."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Mapping

from searchkube.model import OpenSearchCluster

CONFIG_FILE_NAME = "opensearch.yml"
CONFIG_MOUNT_PATH = "/usr/share/opensearch/config/opensearch.yml"


def add_security_defaults(config: Mapping[str, str], system_indices: Iterable[str]) -> dict[str, str]:
    """Config with the security plugin defaults added.

    Defaults are only added to a config that already holds settings.
    """
    result = dict(config)
    if not result:
        return result
    result.update(
        {
            "plugins.security.audit.type": "internal_opensearch",
            "plugins.security.enable_snapshot_restore_privilege": "true",
            "plugins.security.check_snapshot_restore_write_privileges": "true",
            "plugins.security.restapi.roles_enabled": '["all_access", "security_rest_api_access"]',
            "plugins.security.system_indices.enabled": "true",
            "plugins.security.system_indices.indices": json.dumps(
                list(system_indices), separators=(",", ":")
            ),
        }
    )
    return result


def render_config(config: Mapping[str, str]) -> str:
    """Render settings as ``key: value`` lines sorted by key."""
    return "".join(f"{key}: {config[key]}\n" for key in sorted(config))


def generate_hash(data: bytes) -> str:
    """Hex SHA-1 digest of the data."""
    return hashlib.sha1(data).hexdigest()


def build_config_map(cluster: OpenSearchCluster, data: str) -> dict[str, Any]:
    """Config map carrying the rendered opensearch.yml."""
    return {
        "metadata": {"name": f"{cluster.name}-config", "namespace": cluster.namespace},
        "data": {CONFIG_FILE_NAME: data},
    }


def config_volume(config_map_name: str) -> dict[str, Any]:
    """Volume backed by the config map."""
    return {"name": "config", "configMap": {"name": config_map_name}}


def config_volume_mount() -> dict[str, Any]:
    """Mount placing opensearch.yml into the node's config directory."""
    return {"name": "config", "mountPath": CONFIG_MOUNT_PATH, "subPath": CONFIG_FILE_NAME}


def node_pool_config_hash(data: str, volume_data: bytes = b"") -> str:
    """Checksum over the rendered config and the additional volume data."""
    return generate_hash(data.encode() + volume_data)