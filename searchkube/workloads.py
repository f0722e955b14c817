"""Stateful sets, the bootstrap pod and the security config job of a cluster."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from searchkube.helpers import (
    cluster_dns_base,
    map_cluster_role,
    resolve_cluster_manager_role,
)
from searchkube.images import resolve_image, resolve_init_helper_image, version_check
from searchkube.model import ImageSpec, NodePool, OpenSearchCluster
from searchkube.services import (
    CLUSTER_LABEL,
    CONFIGURATION_CHECKSUM_ANNOTATION,
    NODE_POOL_LABEL,
    SECURITYCONFIG_CHECKSUM_ANNOTATION,
    TRANSPORT_PORT,
    bootstrap_pod_name,
    discovery_service_name,
    dns_of_service,
    port_for_cluster,
)

DATA_PATH = "/usr/share/opensearch/data"
DEFAULT_DISK_SIZE = "30Gi"
DEFAULT_JVM = "-Xmx512M -Xms512M"
PUBLISH_ADDRESS_OPTION = " -Dopensearch.transport.cname_in_publish_address=true"

AVAILABLE_ROLES = (
    "master",
    "data",
    "data_content",
    "data_hot",
    "data_warm",
    "data_cold",
    "data_frozen",
    "ingest",
    "ml",
    "remote_cluster_client",
    "transform",
    "cluster_manager",
)

_SUPPORTED_VENDORS = frozenset({"Op", "OP", "Opensearch", "opensearch", ""})

_QUANTITY_RE = re.compile(
    r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)"
    r"(?:[eE][+-]?[0-9]+|Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E)?$"
)

_KEYSTORE_SCRIPT = """
#!/usr/bin/env bash
set -euo pipefail

/usr/share/opensearch/bin/opensearch-keystore create

for i in /tmp/keystoreSecrets/*/*; do
  key=$(basename $i)
  echo "Adding file $i to keystore key $key"
  /usr/share/opensearch/bin/opensearch-keystore add-file "$key" "$i"
done

# Add the bootstrap password since otherwise the opensearch entrypoint tries to do this on startup
if [ ! -z ${PASSWORD+x} ]; then
  echo 'Adding env $PASSWORD to keystore as key bootstrap.password'
  echo "$PASSWORD" | /usr/share/opensearch/bin/opensearch-keystore add -x bootstrap.password
fi

cp -a /usr/share/opensearch/config/opensearch.keystore /tmp/keystore/
"""


class UnsupportedVendorError(ValueError):
    """Raised when the cluster asks for a vendor other than OpenSearch."""


def _check_quantity(text: str) -> str:
    if not _QUANTITY_RE.match(text):
        raise ValueError(f"invalid resource quantity: {text!r}")
    return text


def _mount(name: str, path: str, sub_path: str = "") -> dict[str, Any]:
    mount = {"name": name, "mountPath": path}
    if sub_path:
        mount["subPath"] = sub_path
    return mount


def _secret_volume(name: str, source_name: str) -> dict[str, Any]:
    """Volume backed by the Kubernetes secret called ``source_name``."""
    volume: dict[str, Any] = {"name": name}
    volume["secret"] = dict(secretName=source_name)
    return volume


def _tcp_probe(port: int) -> dict[str, Any]:
    return {
        "periodSeconds": 20,
        "timeoutSeconds": 5,
        "failureThreshold": 10,
        "successThreshold": 1,
        "initialDelaySeconds": 10,
        "tcpSocket": {"port": port},
    }


def _base_env(cluster: OpenSearchCluster, jvm: str, roles: str) -> list[dict[str, Any]]:
    return [
        {"name": "cluster.initial_master_nodes", "value": bootstrap_pod_name(cluster)},
        {"name": "discovery.seed_hosts", "value": discovery_service_name(cluster)},
        {"name": "cluster.name", "value": cluster.name},
        {"name": "network.bind_host", "value": "0.0.0.0"},
        {
            # Announce the hostname so certificates issued for it can be verified.
            "name": "network.publish_host",
            "valueFrom": {"fieldRef": {"apiVersion": "v1", "fieldPath": "metadata.name"}},
        },
        {"name": "OPENSEARCH_JAVA_OPTS", "value": jvm},
        {"name": "node.roles", "value": roles},
        {"name": "http.port", "value": str(cluster.general.http_port)},
    ]


def _sorted_env(config: Optional[Mapping[str, str]]) -> list[dict[str, str]]:
    config = config or {}
    return [{"name": key, "value": config[key]} for key in sorted(config)]


def _ports(cluster: OpenSearchCluster) -> list[dict[str, Any]]:
    return [
        {"name": "http", "containerPort": cluster.general.http_port},
        {"name": "transport", "containerPort": TRANSPORT_PORT},
    ]


def _chown_container(init_image: ImageSpec) -> dict[str, Any]:
    return {
        "name": "init",
        "image": init_image.image or "",
        "imagePullPolicy": init_image.image_pull_policy or "",
        "command": ["sh", "-c"],
        "args": [f"chown -R 1000:1000 {DATA_PATH}"],
        "securityContext": {"runAsUser": 0},
        "volumeMounts": [_mount("data", DATA_PATH)],
    }


def _sysctl_container(init_image: ImageSpec) -> dict[str, Any]:
    return {
        "name": "init-sysctl",
        "image": init_image.image or "",
        "imagePullPolicy": init_image.image_pull_policy or "",
        "command": ["sysctl", "-w", "vm.max_map_count=262144"],
        "securityContext": {"privileged": True},
    }


def _main_command(plugins: list[str]) -> list[str]:
    if not plugins:
        return ["/bin/bash", "-c", "./opensearch-docker-entrypoint.sh"]
    quoted = "".join(" '" + plugin.replace("'", "\\'") + "'" for plugin in plugins)
    command = (
        "./bin/opensearch-plugin install --batch"
        + quoted
        + " && ./opensearch-docker-entrypoint.sh"
    )
    return ["/bin/bash", "-c", command]


def _selected_roles(cluster: OpenSearchCluster, node_pool: NodePool) -> list[str]:
    return [
        map_cluster_role(role, cluster.general.version)
        for role in node_pool.roles
        if role in AVAILABLE_ROLES
    ]


def _volume_claim(node_pool: NodePool, disk_size: str) -> dict[str, Any]:
    persistence = node_pool.persistence
    if persistence is None:
        access_modes = ["ReadWriteOnce"]
        storage_class: Optional[str] = None
    else:
        access_modes = list(persistence.pvc.access_modes)
        storage_class = persistence.pvc.storage_class_name
    return {
        "metadata": {"name": "data"},
        "spec": {
            "accessModes": access_modes,
            "resources": {"requests": {"storage": disk_size}},
            "storageClassName": storage_class,
            "volumeMode": "Filesystem",
        },
    }


def _keystore_parts(
    cluster: OpenSearchCluster, image: ImageSpec
) -> tuple[list[dict[str, Any]], dict[str, Any], dict[str, Any]]:
    """Volumes, main-container mount and init container for the keystore."""
    volumes: list[dict[str, Any]] = [{"name": "keystore", "emptyDir": {}}]
    init_mounts = [_mount("keystore", "/tmp/keystore")]
    for value in cluster.general.keystore:
        source_name = value.secret_name
        volume_name = f"keystore-{source_name}"
        mount_path = f"/tmp/keystoreSecrets/{source_name}"
        volumes.append(_secret_volume(volume_name, source_name))
        if not value.key_mappings:
            init_mounts.append(_mount(volume_name, mount_path))
        else:
            init_mounts.extend(
                _mount(volume_name, f"{mount_path}/{new_key}", old_key)
                for old_key, new_key in value.key_mappings.items()
            )
    main_mount = _mount(
        "keystore",
        "/usr/share/opensearch/config/opensearch.keystore",
        "opensearch.keystore",
    )
    init_container = {
        "name": "keystore",
        "image": image.image or "",
        "imagePullPolicy": image.image_pull_policy or "",
        "command": ["sh", "-c", _KEYSTORE_SCRIPT],
        "volumeMounts": init_mounts,
    }
    return volumes, main_mount, init_container


def new_sts_for_node_pool(
    username: str,
    cluster: OpenSearchCluster,
    node_pool: NodePool,
    config_checksum: str,
    volumes: Optional[Iterable[Mapping[str, Any]]] = None,
    volume_mounts: Optional[Iterable[Mapping[str, Any]]] = None,
    extra_config: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Stateful set running the nodes of one node pool.

    Raises UnsupportedVendorError for a vendor other than OpenSearch and
    ValueError for a disk size that is not a valid quantity.
    """
    disk_size = _check_quantity(node_pool.disk_size or DEFAULT_DISK_SIZE)
    roles = _selected_roles(cluster, node_pool)
    volumes = [dict(v) for v in volumes or ()]
    volume_mounts = [dict(m) for m in volume_mounts or ()]

    persistence = node_pool.persistence
    uses_pvc = persistence is None or persistence.uses_pvc()
    if persistence is not None:
        if persistence.host_path is not None:
            volumes.append({"name": "data", "hostPath": persistence.host_path})
        if persistence.empty_dir is not None:
            volumes.append({"name": "data", "emptyDir": persistence.empty_dir})
    volume_mounts.append(_mount("data", DATA_PATH))

    labels = {CLUSTER_LABEL: cluster.name, NODE_POOL_LABEL: node_pool.component}
    match_labels = dict(labels)
    annotations = {CONFIGURATION_CHECKSUM_ANNOTATION: config_checksum}
    if "master" in roles:
        labels["opensearch.role"] = "master"
    if "cluster_manager" in roles:
        labels["opensearch.role"] = "cluster_manager"
    labels.update(node_pool.labels)
    annotations.update(node_pool.annotations)

    if cluster.general.vendor not in _SUPPORTED_VENDORS:
        raise UnsupportedVendorError(f"vendor {cluster.general.vendor!r} is not supported")

    jvm = (node_pool.jvm or DEFAULT_JVM) + PUBLISH_ADDRESS_OPTION
    probe = _tcp_probe(cluster.general.http_port)
    # The HTTP endpoint requires authentication, so readiness is checked with curl.
    curl_cmd = (
        'curl -k -u "$(cat /mnt/admin-credentials/username):'
        '$(cat /mnt/admin-credentials/password)" --silent --fail '
        f"https://localhost:{port_for_cluster(cluster)}"
    )
    readiness_probe = {
        "initialDelaySeconds": 60,
        "periodSeconds": 30,
        "failureThreshold": 5,
        "timeoutSeconds": 30,
        "exec": {"command": ["/bin/bash", "-c", curl_cmd]},
    }

    credentials_name = f"{cluster.name}-admin-password"
    volumes.append(_secret_volume("admin-credentials", credentials_name))
    volume_mounts.append(_mount("admin-credentials", "/mnt/admin-credentials"))

    image = resolve_image(cluster, node_pool)
    init_image = resolve_init_helper_image(cluster)
    init_containers = [_chown_container(init_image)]

    if cluster.general.keystore:
        keystore_volumes, keystore_mount, keystore_container = _keystore_parts(cluster, image)
        volumes.extend(keystore_volumes)
        volume_mounts.append(keystore_mount)
        init_containers.append(keystore_container)

    env = _base_env(cluster, jvm, ",".join(roles))
    env.extend(_sorted_env(extra_config))
    env.extend(dict(item) for item in node_pool.env)

    if cluster.general.set_vm_max_map_count:
        init_containers.append(_sysctl_container(init_image))

    container = {
        "env": env,
        "name": "opensearch",
        "command": _main_command(cluster.general.plugins_list),
        "image": image.image or "",
        "imagePullPolicy": image.image_pull_policy or "",
        "resources": node_pool.resources,
        "ports": _ports(cluster),
        "startupProbe": probe,
        "livenessProbe": probe,
        "readinessProbe": readiness_probe,
        "volumeMounts": volume_mounts,
    }

    return {
        "metadata": {
            "name": f"{cluster.name}-{node_pool.component}",
            "namespace": cluster.namespace,
            "labels": labels,
        },
        "spec": {
            "replicas": node_pool.replicas,
            "selector": {"matchLabels": match_labels},
            "podManagementPolicy": "OrderedReady",
            "updateStrategy": {"type": "OnDelete" if "data" in roles else "RollingUpdate"},
            "template": {
                "metadata": {"labels": dict(labels), "annotations": annotations},
                "spec": {
                    "containers": [container],
                    "initContainers": init_containers,
                    "volumes": volumes,
                    "serviceAccountName": cluster.general.service_account,
                    "nodeSelector": node_pool.node_selector,
                    "tolerations": node_pool.tolerations,
                    "affinity": node_pool.affinity,
                    "topologySpreadConstraints": node_pool.topology_spread_constraints,
                    "imagePullSecrets": image.image_pull_secrets,
                    "priorityClassName": node_pool.priority_class_name,
                },
            },
            "volumeClaimTemplates": [_volume_claim(node_pool, disk_size)] if uses_pvc else [],
            "serviceName": cluster.general.service_name,
        },
    }


def new_bootstrap_pod(
    cluster: OpenSearchCluster,
    volumes: Optional[Iterable[Mapping[str, Any]]] = None,
    volume_mounts: Optional[Iterable[Mapping[str, Any]]] = None,
) -> dict[str, Any]:
    """Single manager pod that forms a new cluster."""
    bootstrap = cluster.bootstrap
    jvm = bootstrap.jvm or DEFAULT_JVM
    image = resolve_image(cluster, None)
    init_image = resolve_init_helper_image(cluster)
    manager_role = resolve_cluster_manager_role(cluster.general.version)
    probe = _tcp_probe(cluster.general.http_port)

    volumes = [dict(v) for v in volumes or ()]
    volume_mounts = [dict(m) for m in volume_mounts or ()]
    volumes.append({"name": "data", "emptyDir": {}})
    volume_mounts.append(_mount("data", DATA_PATH))

    extra_config = cluster.general.additional_config
    if bootstrap.additional_config is not None:
        extra_config = bootstrap.additional_config
    env = _base_env(cluster, jvm, manager_role)
    env.extend(_sorted_env(extra_config))

    init_containers = [_chown_container(init_image)]
    if cluster.general.set_vm_max_map_count:
        init_containers.append(_sysctl_container(init_image))

    return {
        "metadata": {
            "name": bootstrap_pod_name(cluster),
            "namespace": cluster.namespace,
            "labels": {CLUSTER_LABEL: cluster.name},
        },
        "spec": {
            "containers": [
                {
                    "env": env,
                    "name": "opensearch",
                    "image": image.image or "",
                    "imagePullPolicy": image.image_pull_policy or "",
                    "resources": bootstrap.resources,
                    "ports": _ports(cluster),
                    "startupProbe": probe,
                    "livenessProbe": probe,
                    "volumeMounts": volume_mounts,
                }
            ],
            "initContainers": init_containers,
            "volumes": volumes,
            "serviceAccountName": cluster.general.service_account,
            "nodeSelector": bootstrap.node_selector,
            "tolerations": bootstrap.tolerations,
            "affinity": bootstrap.affinity,
            "imagePullSecrets": image.image_pull_secrets,
        },
    }


def new_securityconfig_update_job(
    cluster: OpenSearchCluster,
    job_name: str,
    namespace: str,
    checksum: str,
    admin_cert_name: str,
    cluster_name: str,
    volumes: Optional[Iterable[Mapping[str, Any]]] = None,
    volume_mounts: Optional[Iterable[Mapping[str, Any]]] = None,
) -> dict[str, Any]:
    """Job that applies the security configuration with the security admin tool.

    Raises ValueError when the cluster version cannot be parsed.
    """
    dns = dns_of_service(cluster)
    dns_base = cluster_dns_base()
    admin_cert = "/certs/tls.crt"
    admin_key = "/certs/tls.key"
    ca_cert = "/certs/ca.crt"

    volumes = [dict(v) for v in volumes or ()]
    volume_mounts = [dict(m) for m in volume_mounts or ()]
    volumes.append(_secret_volume("admin-cert", admin_cert_name))
    volume_mounts.append(_mount("admin-cert", "/certs"))

    http_port, securityconfig_path = version_check(cluster)
    # Wait until the cluster answers before the security index is created.
    arg = (
        "ADMIN=/usr/share/opensearch/plugins/opensearch-security/tools/securityadmin.sh;"
        "chmod +x $ADMIN;"
        f"until curl -k --silent https://{dns}.svc.{dns_base}:{cluster.general.http_port}; do"
        " echo 'Waiting to connect to the cluster'; sleep 120; "
        "done; "
        "count=0;"
        f"until $ADMIN -cacert {ca_cert} -cert {admin_cert} -key {admin_key} "
        f"-cd {securityconfig_path} -icl -nhnv -h {dns}.svc.{dns_base} -p {http_port} "
        "|| (( count++ >= 20 )); do"
        "  sleep 20; "
        "done"
    )

    image = resolve_image(cluster, NodePool(component="securityconfig"))

    return {
        "metadata": {
            "name": job_name,
            "namespace": namespace,
            "annotations": {SECURITYCONFIG_CHECKSUM_ANNOTATION: checksum},
        },
        "spec": {
            "backoffLimit": 0,
            "template": {
                "metadata": {"name": job_name},
                "spec": {
                    "terminationGracePeriodSeconds": 5,
                    "containers": [
                        {
                            "name": "updater",
                            "image": image.image or "",
                            "imagePullPolicy": image.image_pull_policy or "",
                            "command": ["/bin/bash", "-c"],
                            "args": [arg],
                            "volumeMounts": volume_mounts,
                        }
                    ],
                    "volumes": volumes,
                    "restartPolicy": "Never",
                    "imagePullSecrets": image.image_pull_secrets,
                },
            },
        },
    }