# searchkube

`searchkube` takes a description of an OpenSearch cluster and builds the
Kubernetes objects that run it. It uses only the standard library. Every
manifest is returned as a plain `dict`, so you can serialise it to YAML or JSON
yourself.

## The cluster description (`searchkube.model`)

A cluster is described with dataclasses. `OpenSearchCluster` holds the name,
the namespace, a `GeneralConfig`, a `BootstrapConfig`, an `InitHelperConfig`, a
`DashboardsConfig`, a list of `NodePool`s and a `ClusterStatus`. A node pool
can carry `Persistence` with a `PvcSource`, a host path or an empty dir.
Keystore secrets are given as `KeystoreValue`s. Custom images are given as
`ImageSpec`s. Component progress is recorded as `ComponentStatus`.

`OpenSearchCluster.upgrade_in_progress()` is true while `status.version` is set
and differs from `general.version`. `Persistence.uses_pvc()` is true when the
data lives on a claim.

## Workloads (`searchkube.workloads`)

- `new_sts_for_node_pool(username, cluster, node_pool, config_checksum, volumes, volume_mounts, extra_config)`
  builds the StatefulSet for a node pool. It does the following:
  - Keeps only known roles and maps them for the cluster version.
  - Adds a volume claim template, sized `30Gi` by default, unless the pool uses
    a host path or an empty dir.
  - Mounts the admin credentials.
  - Adds the keystore init container when keystore secrets are given.
  - Installs the listed plugins before the entrypoint.
  - Appends `extra_config`, sorted by key, and the pool's own env entries to
    the container's environment.
  - Uses the `OnDelete` update strategy for data pools and `RollingUpdate`
    for all others.
  - Raises `UnsupportedVendorError` when the vendor is anything other than
    `""`, `opensearch`, `Opensearch`, `Op` or `OP`.
  - Raises `ValueError` when the disk size is not a valid quantity.
- `new_bootstrap_pod(cluster, volumes, volume_mounts)` builds the single
  manager pod that forms a new cluster. Its environment gets
  `bootstrap.additional_config` when that is set, and
  `general.additional_config` otherwise.
- `new_securityconfig_update_job(cluster, job_name, namespace, checksum, admin_cert_name, cluster_name, volumes, volume_mounts)`
  builds the Job that runs the security admin tool against the cluster.

When `general.set_vm_max_map_count` is set, the stateful set and the bootstrap
pod both get a privileged `init-sysctl` container.

## Services and names (`searchkube.services`)

- Services: `new_service_for_cr`, `new_headless_service_for_node_pool`,
  `new_discovery_service_for_cr` and `new_node_port_service`.
- The admin credentials secret: `password_secret`.
- Names and addresses: `port_for_cluster` (9200 when unset),
  `dns_of_service`, `url_for_cluster`, `sts_name`, `replica_host_name`,
  `discovery_service_name`, `bootstrap_pod_name` and
  `working_pod_for_rolling_restart`.
- Checks on existing stateful sets:
  - `sts_in_node_pools` tells whether a stateful set belongs to one of the
    node pools.
  - `all_masters_ready` and `data_nodes_count` take a
    `fetch_statefulset(name, namespace)` callable. It must return the
    stateful set as a mapping, or `None` when there is none.

## Configuration (`searchkube.configuration`)

- `render_config` writes settings as `key: value` lines, sorted by key.
- `add_security_defaults` adds the security plugin settings. It only does so
  when the config is not empty.
- `build_config_map`, `config_volume` and `config_volume_mount` place
  `opensearch.yml` into the nodes.
- `generate_hash` and `node_pool_config_hash` give the SHA-1 checksum that goes
  into the pod annotation.

## Images (`searchkube.images`)

- `resolve_image`, `resolve_init_helper_image` and `resolve_dashboards_image`
  pick the image to use. A custom `ImageSpec` wins. If there is none, the
  image comes from the default repository, which `general.default_repo` can
  override.
- While an upgrade is in progress, a node pool keeps the running version until
  an `Upgrader` status has been recorded for that pool.
- `version_check` returns the port and the security config path for the
  security admin tool. It raises `ValueError` when the version cannot be
  parsed.

## Helpers (`searchkube.helpers`)

- `Version.parse` parses and compares versions.
- Role mapping between `master` and `cluster_manager`:
  `resolve_cluster_manager_role`, `map_cluster_role` and `map_cluster_roles`.
- Component statuses: `remove_status`, `replace_status`, `find_first_partial`
  and `same_description_and_component`.
- Other helpers: `find_by_path`, `merge_configs`, `diff_slice`,
  `check_volume_exists`, `has_key_with_bytes` and `cluster_dns_base`.

## Example

```python
from searchkube.model import GeneralConfig, NodePool, OpenSearchCluster
from searchkube.services import url_for_cluster
from searchkube.workloads import new_sts_for_node_pool

cluster = OpenSearchCluster(
    name="logs",
    namespace="search",
    general=GeneralConfig(version="2.2.1", service_name="logs", http_port=9200),
)
pool = NodePool(component="masters", replicas=3, roles=["master", "data"])

sts = new_sts_for_node_pool("admin", cluster, pool, "checksum", [], [], {})
env = sts["spec"]["template"]["spec"]["containers"][0]["env"]
# node.roles is "cluster_manager,data" for version 2.x

print(url_for_cluster(cluster))
# https://logs.search.svc.cluster.local:9200
```

The cluster DNS suffix is `cluster.local` by default. Set the `DNS_BASE`
environment variable to use a different one.

## What it does not do

`searchkube` only builds manifests and works out names. It does not do the
following:

- Talk to the Kubernetes API or apply, update or delete objects.
- Watch resources or run a reconcile loop.
- Call the OpenSearch REST API, for example to exclude or drain nodes or to
  manage roles.
- Provide a command-line tool.

Sending the objects to a cluster is up to you.

## Running the tests

```
pip install -e ".[test]"
pytest
```