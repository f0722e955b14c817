from searchkube.model import (
    BootstrapConfig,
    ClusterStatus,
    ComponentStatus,
    DashboardsConfig,
    GeneralConfig,
    ImageSpec,
    InitHelperConfig,
    KeystoreValue,
    NodePool,
    OpenSearchCluster,
    Persistence,
    PvcSource,
)


def test_persistence_with_pvc_uses_pvc():
    assert Persistence(pvc=PvcSource()).uses_pvc() is True


def test_persistence_without_pvc_does_not_use_pvc():
    assert Persistence(empty_dir={}).uses_pvc() is False
    assert Persistence(host_path={"path": "/data"}).uses_pvc() is False


def test_pvc_default_access_mode():
    assert PvcSource().access_modes == ["ReadWriteOnce"]


def test_no_upgrade_when_status_version_empty():
    cluster = OpenSearchCluster(general=GeneralConfig(version="2.2.1"))
    assert cluster.upgrade_in_progress() is False


def test_no_upgrade_when_versions_match():
    cluster = OpenSearchCluster(
        general=GeneralConfig(version="2.2.1"),
        status=ClusterStatus(version="2.2.1"),
    )
    assert cluster.upgrade_in_progress() is False


def test_upgrade_when_versions_differ():
    cluster = OpenSearchCluster(
        general=GeneralConfig(version="2.2.1"),
        status=ClusterStatus(version="1.3.0"),
    )
    assert cluster.upgrade_in_progress() is True


def test_defaults_are_not_shared():
    first = OpenSearchCluster()
    second = OpenSearchCluster()
    first.node_pools.append(NodePool(component="masters"))
    first.status.components_status.append(ComponentStatus(component="Scaler"))
    assert second.node_pools == []
    assert second.status.components_status == []


def test_component_status_equality_and_hash():
    a = ComponentStatus(component="Scaler", status="Excluded", description="nodes")
    b = ComponentStatus(component="Scaler", status="Excluded", description="nodes")
    assert a == b
    assert len({a, b}) == 1


def test_sub_configs_default_empty():
    cluster = OpenSearchCluster()
    assert cluster.bootstrap == BootstrapConfig()
    assert cluster.init_helper == InitHelperConfig()
    assert cluster.dashboards == DashboardsConfig()
    assert cluster.general.image_spec is None
    assert ImageSpec().image is None


def test_keystore_value_holds_mappings():
    value = KeystoreValue(secret_name="some-secret", key_mappings={"old-key": "new-key"})
    assert value.key_mappings["old-key"] == "new-key"
    assert KeystoreValue(secret_name="x").key_mappings == {}