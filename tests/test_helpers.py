import pytest

from searchkube.helpers import (
    DNS_BASE_ENV_VARIABLE,
    Version,
    check_volume_exists,
    cluster_dns_base,
    diff_slice,
    find_by_path,
    find_first_partial,
    has_key_with_bytes,
    map_cluster_role,
    map_cluster_roles,
    merge_configs,
    remove_status,
    replace_status,
    resolve_cluster_manager_role,
    same_description_and_component,
)
from searchkube.model import ComponentStatus


def test_version_parse_segments():
    assert Version.parse("2.2.1").segments == (2, 2, 1)


def test_version_short_form_pads():
    assert Version.parse("2") == Version.parse("2.0.0")
    assert Version.parse("v1.3.0") == Version.parse("1.3.0")


def test_version_prerelease_sorts_before_release():
    pre = Version.parse("2.0.0-rc1")
    assert pre.prerelease == "rc1"
    assert pre < Version.parse("2.0.0")
    assert Version.parse("1.3.0") < pre


def test_version_ordering():
    texts = ["2.2.1", "1.3.0", "2.0.0", "2.10.0"]
    ordered = sorted(Version.parse(t) for t in texts)
    assert [str(v) for v in ordered] == ["1.3.0", "2.0.0", "2.2.1", "2.10.0"]


def test_version_metadata_ignored_in_comparison():
    assert Version.parse("2.0.0+build5") == Version.parse("2.0.0")


@pytest.mark.parametrize("text", ["", "abc", "1..2", "1.2.3 "])
def test_version_parse_rejects_malformed(text):
    with pytest.raises(ValueError):
        Version.parse(text)


def test_cluster_dns_base_default(monkeypatch):
    monkeypatch.delenv(DNS_BASE_ENV_VARIABLE, raising=False)
    assert cluster_dns_base() == "cluster.local"


def test_cluster_dns_base_empty_env(monkeypatch):
    monkeypatch.setenv(DNS_BASE_ENV_VARIABLE, "")
    assert cluster_dns_base() == "cluster.local"


def test_cluster_dns_base_custom(monkeypatch):
    monkeypatch.setenv(DNS_BASE_ENV_VARIABLE, "custom.domain")
    assert cluster_dns_base() == "custom.domain"


def test_remove_status_removes_first_match_only():
    a = ComponentStatus("Scaler", "Excluded", "nodes")
    b = ComponentStatus("Upgrader", "Running", "masters")
    assert remove_status(a, [a, b, a]) == [b, a]


def test_remove_status_missing_keeps_all():
    a = ComponentStatus("Scaler", "Excluded", "nodes")
    b = ComponentStatus("Upgrader", "Running", "masters")
    statuses = [b]
    assert remove_status(a, statuses) == [b]
    assert statuses == [b]


def test_replace_status_appends():
    old = ComponentStatus("Scaler", "Running", "nodes")
    new = ComponentStatus("Scaler", "Excluded", "nodes")
    other = ComponentStatus("Upgrader", "Running", "masters")
    assert replace_status(old, new, [old, other]) == [other, new]


def test_find_first_partial_matches_ignoring_status():
    stored = ComponentStatus("Scaler", "Excluded", "nodes")
    probe = ComponentStatus(component="Scaler", description="nodes")
    found = find_first_partial([stored], probe, same_description_and_component)
    assert found == stored


def test_find_first_partial_none_when_absent():
    stored = ComponentStatus("Scaler", "Excluded", "nodes")
    probe = ComponentStatus(component="Upgrader", description="nodes")
    assert find_first_partial([stored], probe, same_description_and_component) is None


def test_same_description_and_component():
    left = ComponentStatus("Scaler", "Drained", "nodes")
    assert same_description_and_component(left, ComponentStatus("Scaler", "", "nodes"))
    assert not same_description_and_component(left, ComponentStatus("Scaler", "", "data"))


def test_find_by_path_nested():
    obj = {"a": {"b": {"c": 7}}}
    assert find_by_path(obj, ["a", "b", "c"]) == 7


def test_find_by_path_skips_missing_intermediate_key():
    obj = {"a": {"b": 1}}
    assert find_by_path(obj, ["x", "a", "b"]) == 1


def test_find_by_path_missing_leaf():
    with pytest.raises(KeyError):
        find_by_path({"a": {}}, ["a", "b"])


def test_find_by_path_non_mapping_intermediate():
    with pytest.raises(KeyError):
        find_by_path({"a": 5}, ["a", "b"])


def test_find_by_path_non_mapping_root():
    with pytest.raises(KeyError):
        find_by_path([1, 2], ["a"])


def test_merge_configs_right_wins_and_left_untouched():
    left = {"a": "1", "b": "2"}
    right = {"b": "3"}
    merged = merge_configs(left, right)
    assert merged == {"a": "1", "b": "3"}
    assert left == {"a": "1", "b": "2"}


def test_merge_configs_none_left_returns_right():
    assert merge_configs(None, {"k": "v"}) == {"k": "v"}
    assert merge_configs(None, None) is None
    assert merge_configs({"k": "v"}, None) == {"k": "v"}


@pytest.mark.parametrize(
    "version, expected",
    [("2.2.1", "cluster_manager"), ("1.3.0", "master"), ("", "master"), ("2.0.0-rc1", "master")],
)
def test_resolve_cluster_manager_role(version, expected):
    assert resolve_cluster_manager_role(version) == expected


def test_map_cluster_role_converts_master_on_v2():
    assert map_cluster_role("master", "2.2.1") == "cluster_manager"


def test_map_cluster_role_converts_cluster_manager_on_v1():
    assert map_cluster_role("cluster_manager", "1.3.0") == "master"


def test_map_cluster_role_keeps_others_and_bad_versions():
    assert map_cluster_role("ingest", "2.2.1") == "ingest"
    assert map_cluster_role("master", "not a version") == "master"


def test_map_cluster_roles():
    assert map_cluster_roles(["master", "data"], "2.2.1") == ["cluster_manager", "data"]


def test_diff_slice_keeps_order():
    assert diff_slice(["a", "b", "c"], ["b"]) == ["a", "c"]
    assert diff_slice([], ["b"]) == []


def test_check_volume_exists_with_secret():
    volume_source = {"secretName": "secret"}
    volumes = [{"name": "tls-cert", "secret": volume_source}]
    mounts = [{"name": "tls-cert", "mountPath": "/certs"}]
    assert check_volume_exists(volumes, mounts, "secret", "tls-cert") is True
    assert check_volume_exists(volumes, mounts, "placeholder", "tls-cert") is False


def test_check_volume_exists_with_config_map():
    volumes = [{"name": "cfg", "configMap": {"name": "my-cm"}}]
    mounts = [{"name": "cfg", "mountPath": "/cfg"}]
    assert check_volume_exists(volumes, mounts, "my-cm", "cfg") is True


def test_check_volume_exists_requires_mount():
    volume_source = {"secretName": "secret"}
    volumes = [{"name": "tls-cert", "secret": volume_source}]
    assert check_volume_exists(volumes, [], "secret", "tls-cert") is False
    assert check_volume_exists([], [], "secret", "tls-cert") is False


def test_has_key_with_bytes():
    data = {"tls.key": b"tls.key"}
    assert has_key_with_bytes(data, "tls.key") is True
    assert has_key_with_bytes(data, "tls.crt") is False