from searchkube.configuration import (
    add_security_defaults,
    build_config_map,
    config_volume,
    config_volume_mount,
    generate_hash,
    node_pool_config_hash,
    render_config,
)
from searchkube.helpers import check_volume_exists
from searchkube.model import OpenSearchCluster


def make_cluster():
    return OpenSearchCluster(name="configuration-test", namespace="configuration-test")


def test_snippets_end_up_in_config_map():
    config = {}
    config["foo"] = "bar"
    config["bar"] = "something"
    config["bar"] = "baz"
    data = render_config(add_security_defaults(config, []))
    config_map = build_config_map(make_cluster(), data)
    assert config_map["metadata"]["name"] == "configuration-test-config"
    rendered = config_map["data"]["opensearch.yml"]
    assert "foo: bar\n" in rendered
    assert "bar: baz\n" in rendered
    assert "bar: something\n" not in rendered


def test_no_snippets_gives_empty_config():
    assert add_security_defaults({}, ["idx"]) == {}
    assert render_config({}) == ""


def test_security_defaults():
    config = add_security_defaults({"foo": "bar"}, [".a", ".b"])
    assert config["foo"] == "bar"
    assert config["plugins.security.audit.type"] == "internal_opensearch"
    assert config["plugins.security.system_indices.indices"] == '[".a",".b"]'
    assert config["plugins.security.restapi.roles_enabled"] == '["all_access", "security_rest_api_access"]'


def test_render_sorted():
    assert render_config({"b": "2", "a": "1"}) == "a: 1\nb: 2\n"


def test_generate_hash_known_values():
    assert generate_hash(b"") == "da39a3ee5e6b4b0d3255bfef95601890afd80709"
    assert generate_hash(b"abc") == "a9993e364706816aba3e25717850c26c9cd0d89d"


def test_node_pool_config_hash_concatenates():
    assert node_pool_config_hash("ab", b"c") == generate_hash(b"abc")
    assert node_pool_config_hash("a: 1\n") != node_pool_config_hash("a: 2\n")


def test_config_volume_is_mounted():
    volume = config_volume("configuration-test-config")
    mount = config_volume_mount()
    assert mount["mountPath"] == "/usr/share/opensearch/config/opensearch.yml"
    assert mount["subPath"] == "opensearch.yml"
    assert check_volume_exists([volume], [mount], "configuration-test-config", "config")