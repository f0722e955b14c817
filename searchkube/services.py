"""Names, addresses, services and secrets that belong to a cluster."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from searchkube.helpers import cluster_dns_base, map_cluster_roles, resolve_cluster_manager_role
from searchkube.model import NodePool, OpenSearchCluster

CLUSTER_LABEL = "opster.io/opensearch-cluster"
NODE_POOL_LABEL = "opster.io/opensearch-nodepool"
CONFIGURATION_CHECKSUM_ANNOTATION = "opster.io/config"
SECURITYCONFIG_CHECKSUM_ANNOTATION = "securityconfig/checksum"

DEFAULT_HTTP_PORT = 9200
TRANSPORT_PORT = 9300
METRICS_PORT = 9600
RCA_PORT = 9650

StatefulSetFetcher = Callable[[str, str], Optional[Mapping[str, Any]]]


def _port(name: str, port: int) -> dict[str, Any]:
    return {"name": name, "protocol": "TCP", "port": port, "targetPort": port}


def _cluster_labels(cluster: OpenSearchCluster) -> dict[str, str]:
    return {CLUSTER_LABEL: cluster.name}


def _replicas(statefulset: Mapping[str, Any]) -> int:
    replicas = statefulset.get("spec", {}).get("replicas")
    return 1 if replicas is None else replicas


def port_for_cluster(cluster: OpenSearchCluster) -> int:
    """The HTTP listener number of the cluster, 9200 when none is set."""
    return cluster.general.http_port if cluster.general.http_port > 0 else DEFAULT_HTTP_PORT


def dns_of_service(cluster: OpenSearchCluster) -> str:
    """Service name qualified with the namespace."""
    return f"{cluster.general.service_name}.{cluster.namespace}"


def url_for_cluster(cluster: OpenSearchCluster) -> str:
    """HTTPS URL of the cluster service inside the Kubernetes cluster."""
    return f"https://{dns_of_service(cluster)}.svc.{cluster_dns_base()}:{port_for_cluster(cluster)}"


def sts_name(cluster: OpenSearchCluster, node_pool: NodePool) -> str:
    """Name of the stateful set that runs a node pool."""
    return f"{cluster.name}-{node_pool.component}"


def replica_host_name(statefulset: Mapping[str, Any], ordinal: int) -> str:
    """Pod name of one replica of a stateful set."""
    return f"{statefulset['metadata']['name']}-{ordinal}"


def discovery_service_name(cluster: OpenSearchCluster) -> str:
    """Name of the headless service used for node discovery."""
    return f"{cluster.name}-discovery"


def bootstrap_pod_name(cluster: OpenSearchCluster) -> str:
    """Name of the pod that bootstraps the cluster."""
    return f"{cluster.name}-bootstrap-0"


def working_pod_for_rolling_restart(statefulset: Mapping[str, Any]) -> str:
    """The highest-ordinal pod not yet restarted onto the new revision."""
    updated = statefulset.get("status", {}).get("updatedReplicas", 0)
    return replica_host_name(statefulset, _replicas(statefulset) - 1 - updated)


def sts_in_node_pools(statefulset: Mapping[str, Any], node_pools: Iterable[NodePool]) -> bool:
    """True when the stateful set belongs to one of the node pools."""
    pool = statefulset.get("metadata", {}).get("labels", {}).get(NODE_POOL_LABEL, "")
    return any(pool == node_pool.component for node_pool in node_pools)


def password_secret(cluster: OpenSearchCluster, username: str, password: str) -> dict[str, Any]:
    """Secret holding the admin credentials mounted into the nodes."""
    return {
        "metadata": {"name": f"{cluster.name}-admin-password", "namespace": cluster.namespace},
        "stringData": {"username": username, "password": password},
    }


def new_headless_service_for_node_pool(
    cluster: OpenSearchCluster, node_pool: NodePool
) -> dict[str, Any]:
    """Headless service addressing the pods of one node pool."""
    labels = {CLUSTER_LABEL: cluster.name, NODE_POOL_LABEL: node_pool.component}
    return {
        "kind": "Service",
        "apiVersion": "v1",
        "metadata": {
            "name": f"{cluster.general.service_name}-{node_pool.component}",
            "namespace": cluster.namespace,
            "labels": dict(labels),
        },
        "spec": {
            "clusterIP": "None",
            "ports": [
                _port("http", cluster.general.http_port),
                _port("transport", TRANSPORT_PORT),
            ],
            "selector": dict(labels),
        },
    }


def new_service_for_cr(cluster: OpenSearchCluster) -> dict[str, Any]:
    """Main service in front of every node of the cluster."""
    return {
        "kind": "Service",
        "apiVersion": "v1",
        "metadata": {
            "name": cluster.general.service_name,
            "namespace": cluster.namespace,
            "labels": _cluster_labels(cluster),
        },
        "spec": {
            "ports": [
                _port("http", cluster.general.http_port),
                _port("transport", TRANSPORT_PORT),
                _port("metrics", METRICS_PORT),
                _port("rca", RCA_PORT),
            ],
            "selector": _cluster_labels(cluster),
        },
    }


def new_discovery_service_for_cr(cluster: OpenSearchCluster) -> dict[str, Any]:
    """Headless transport service that publishes pods before they are ready."""
    return {
        "metadata": {
            "name": discovery_service_name(cluster),
            "namespace": cluster.namespace,
            "labels": _cluster_labels(cluster),
        },
        "spec": {
            "publishNotReadyAddresses": True,
            "ports": [_port("transport", TRANSPORT_PORT)],
            "clusterIP": "None",
            "selector": _cluster_labels(cluster),
        },
    }


def new_node_port_service(cluster: OpenSearchCluster) -> dict[str, Any]:
    """NodePort service exposing HTTP access outside the cluster."""
    return {
        "kind": "Service",
        "apiVersion": "v1",
        "metadata": {
            "name": f"{cluster.general.service_name}-exposed",
            "namespace": cluster.namespace,
            "labels": _cluster_labels(cluster),
        },
        "spec": {
            "ports": [_port("http", cluster.general.http_port)],
            "selector": _cluster_labels(cluster),
            "type": "NodePort",
        },
    }


def all_masters_ready(cluster: OpenSearchCluster, fetch_statefulset: StatefulSetFetcher) -> bool:
    """True when every manager node pool has all its replicas ready.

    ``fetch_statefulset(name, namespace)`` returns the stateful set, or None
    when it cannot be found; a missing manager stateful set counts as not ready.
    """
    version = cluster.general.version
    manager_role = resolve_cluster_manager_role(version)
    for node_pool in cluster.node_pools:
        if manager_role not in map_cluster_roles(node_pool.roles, version):
            continue
        statefulset = fetch_statefulset(sts_name(cluster, node_pool), cluster.namespace)
        if statefulset is None:
            return False
        ready = statefulset.get("status", {}).get("readyReplicas", 0)
        if ready != _replicas(statefulset):
            return False
    return True


def data_nodes_count(cluster: OpenSearchCluster, fetch_statefulset: StatefulSetFetcher) -> int:
    """Desired replicas summed over the data node pools that exist."""
    total = 0
    for node_pool in cluster.node_pools:
        if "data" not in node_pool.roles:
            continue
        statefulset = fetch_statefulset(sts_name(cluster, node_pool), cluster.namespace)
        if statefulset is not None:
            total += _replicas(statefulset)
    return total