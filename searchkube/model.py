"""Data model of an OpenSearch cluster resource and the parts it is made of."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ComponentStatus:
    """Progress marker that an operator component records for a node pool."""

    component: str = ""
    status: str = ""
    description: str = ""


@dataclass
class ImageSpec:
    """Container image, pull policy and pull secrets."""

    image: Optional[str] = None
    image_pull_policy: Optional[str] = None
    image_pull_secrets: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class PvcSource:
    """Persistent volume claim settings for a node pool's data volume."""

    storage_class_name: str = ""
    access_modes: list[str] = field(default_factory=lambda: ["ReadWriteOnce"])


@dataclass
class Persistence:
    """Where a node pool keeps its data: a claim, a host path or an empty dir."""

    pvc: Optional[PvcSource] = None
    host_path: Optional[dict[str, Any]] = None
    empty_dir: Optional[dict[str, Any]] = None

    def uses_pvc(self) -> bool:
        """True when data lives on a persistent volume claim."""
        return self.pvc is not None


@dataclass
class KeystoreValue:
    """A secret whose keys are loaded into the OpenSearch keystore."""

    secret_name: str
    key_mappings: dict[str, str] = field(default_factory=dict)


@dataclass
class NodePool:
    """A group of identical OpenSearch nodes run as one stateful set."""

    component: str = ""
    replicas: int = 0
    disk_size: str = ""
    jvm: str = ""
    roles: list[str] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)
    persistence: Optional[Persistence] = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    env: list[dict[str, Any]] = field(default_factory=list)
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    affinity: Optional[dict[str, Any]] = None
    topology_spread_constraints: list[dict[str, Any]] = field(default_factory=list)
    priority_class_name: str = ""
    additional_config: Optional[dict[str, str]] = None


@dataclass
class GeneralConfig:
    """Settings shared by every node of the cluster."""

    version: str = ""
    http_port: int = 0
    vendor: str = ""
    service_name: str = ""
    service_account: str = ""
    set_vm_max_map_count: bool = False
    plugins_list: list[str] = field(default_factory=list)
    keystore: list[KeystoreValue] = field(default_factory=list)
    additional_config: Optional[dict[str, str]] = None
    additional_volumes: list[dict[str, Any]] = field(default_factory=list)
    default_repo: Optional[str] = None
    image_spec: Optional[ImageSpec] = None
    drain_data_nodes: bool = False


@dataclass
class BootstrapConfig:
    """Settings of the single pod that bootstraps a new cluster."""

    resources: dict[str, Any] = field(default_factory=dict)
    jvm: str = ""
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    affinity: Optional[dict[str, Any]] = None
    additional_config: Optional[dict[str, str]] = None


@dataclass
class InitHelperConfig:
    """Image used by the helper init containers."""

    image_spec: Optional[ImageSpec] = None
    version: Optional[str] = None


@dataclass
class DashboardsConfig:
    """Settings of the dashboards deployment."""

    enable: bool = False
    version: str = ""
    image_spec: Optional[ImageSpec] = None


@dataclass
class ClusterStatus:
    """Observed state of a cluster."""

    version: str = ""
    phase: str = ""
    initialized: bool = False
    components_status: list[ComponentStatus] = field(default_factory=list)


@dataclass
class OpenSearchCluster:
    """A cluster resource: its identity, desired spec and observed status."""

    name: str = ""
    namespace: str = ""
    general: GeneralConfig = field(default_factory=GeneralConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    init_helper: InitHelperConfig = field(default_factory=InitHelperConfig)
    dashboards: DashboardsConfig = field(default_factory=DashboardsConfig)
    node_pools: list[NodePool] = field(default_factory=list)
    status: ClusterStatus = field(default_factory=ClusterStatus)

    def upgrade_in_progress(self) -> bool:
        """True while the running version differs from the requested one."""
        return bool(self.status.version) and self.status.version != self.general.version