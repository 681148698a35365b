import json
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses
import yaml

from opskit.k8s.client import (
    Client,
    KubeError,
    is_cluster_scoped,
    load_kubeconfig,
    resource_name,
)

SERVER = "https://cluster.example.com:6443"


def _write_config(path, current="dev"):
    config = {
        "apiVersion": "v1",
        "kind": "Config",
        "current-context": current,
        "clusters": [
            {"name": "dev-cluster", "cluster": {"server": SERVER, "insecure-skip-tls-verify": True}}
        ],
        "contexts": [
            {"name": "dev", "context": {"cluster": "dev-cluster", "user": "dev-user"}},
            {"name": "prod", "context": {"cluster": "dev-cluster", "user": "dev-user"}},
        ],
        "users": [{"name": "dev-user", "user": {"token": "token"}}],
    }
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


@pytest.fixture
def kubeconfig(tmp_path):
    return _write_config(tmp_path / "config")


@pytest.fixture
def client(kubeconfig):
    return Client(str(kubeconfig))


@pytest.fixture
def api():
    with responses.RequestsMock() as mock:
        yield mock


@pytest.mark.parametrize(
    "kind", ["Namespace", "Node", "PersistentVolume", "ClusterRole", "ClusterRoleBinding", "StorageClass"]
)
def test_cluster_scoped_kinds(kind):
    assert is_cluster_scoped(kind) is True


@pytest.mark.parametrize("kind", ["Pod", "Deployment", "Service"])
def test_namespaced_kinds(kind):
    assert is_cluster_scoped(kind) is False


@pytest.mark.parametrize(
    "kind,expected",
    [
        ("Pod", "pods"),
        ("Deployment", "deployments"),
        ("Service", "services"),
        ("ConfigMap", "configmaps"),
        ("Secret", "secrets"),
        ("Namespace", "namespaces"),
        ("Job", "jobs"),
        ("Ingress", "ingresss"),
    ],
)
def test_resource_name(kind, expected):
    assert resource_name(kind) == expected


def test_load_kubeconfig_reads_file(kubeconfig):
    data = load_kubeconfig(str(kubeconfig))
    assert data["current-context"] == "dev"


def test_load_kubeconfig_missing_file(tmp_path):
    with pytest.raises(KubeError):
        load_kubeconfig(str(tmp_path / "absent"))


def test_contexts_and_current(client):
    assert client.current_context() == "dev"
    assert client.contexts() == ["dev", "prod"]


def test_client_without_current_context(tmp_path):
    path = _write_config(tmp_path / "config", current="")
    with pytest.raises(KubeError, match="ошибка создания конфигурации"):
        Client(str(path))


def test_set_context_persists(client, kubeconfig):
    client.set_context("prod", str(kubeconfig))
    data = load_kubeconfig(str(kubeconfig))
    assert data["current-context"] == "prod"
    assert [entry["name"] for entry in data["contexts"]] == ["dev", "prod"]


def test_set_context_unknown(client, kubeconfig):
    with pytest.raises(KubeError, match="missing"):
        client.set_context("missing", str(kubeconfig))
    assert load_kubeconfig(str(kubeconfig))["current-context"] == "dev"


def test_list_pods_sends_selector_and_token(client, api):
    items = [{"metadata": {"name": "web"}}]
    api.add(responses.GET, SERVER + "/api/v1/namespaces/default/pods", json={"items": items})
    assert client.list_pods("default", "app=web") == items
    request = api.calls[0].request
    assert request.headers["Authorization"] == "Bearer token"
    assert parse_qs(urlparse(request.url).query)["labelSelector"] == ["app=web"]


def test_list_pods_all_namespaces(client, api):
    items = [{"metadata": {"name": "a"}}, {"metadata": {"name": "b"}}]
    api.add(responses.GET, SERVER + "/api/v1/pods", json={"items": items})
    assert client.list_pods("", "") == items
    assert urlparse(api.calls[0].request.url).query == ""


def test_list_deployments(client, api):
    items = [{"metadata": {"name": "api"}}]
    api.add(responses.GET, SERVER + "/apis/apps/v1/namespaces/prod/deployments", json={"items": items})
    assert client.list_deployments("prod", "") == items


def test_list_services_and_namespaces(client, api):
    services = [{"metadata": {"name": "svc"}}]
    namespaces = [{"metadata": {"name": "kube-system"}}]
    api.add(responses.GET, SERVER + "/api/v1/namespaces/prod/services", json={"items": services})
    api.add(responses.GET, SERVER + "/api/v1/namespaces", json={"items": namespaces})
    assert client.list_services("prod", "") == services
    assert client.list_namespaces() == namespaces


def test_list_with_null_items(client, api):
    api.add(responses.GET, SERVER + "/api/v1/namespaces", json={"items": None})
    assert client.list_namespaces() == []


def test_create_sets_namespace(client, api):
    created = {"kind": "Deployment", "metadata": {"name": "api"}}
    api.add(responses.POST, SERVER + "/apis/apps/v1/namespaces/my-app/deployments", json=created, status=201)
    manifest = b"apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: api\n"
    assert client.create_from_yaml(manifest, "my-app") == created
    body = json.loads(api.calls[0].request.body)
    assert body["metadata"]["namespace"] == "my-app"
    assert body["metadata"]["name"] == "api"


def test_create_keeps_explicit_namespace(client, api):
    created = {"kind": "Pod", "metadata": {"name": "p", "namespace": "team"}}
    api.add(responses.POST, SERVER + "/api/v1/namespaces/team/pods", json=created, status=201)
    manifest = "apiVersion: v1\nkind: Pod\nmetadata:\n  name: p\n  namespace: team\n"
    assert client.create_from_yaml(manifest, "other") == created
    body = json.loads(api.calls[0].request.body)
    assert body["metadata"]["namespace"] == "team"


def test_create_cluster_scoped(client, api):
    api.add(responses.POST, SERVER + "/api/v1/namespaces", json={"ok": True}, status=201)
    manifest = "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: fresh\n"
    assert client.create_from_yaml(manifest, "default") == {"ok": True}
    body = json.loads(api.calls[0].request.body)
    assert "namespace" not in body["metadata"]


def test_create_invalid_yaml(client):
    with pytest.raises(KubeError, match="ошибка декодирования YAML"):
        client.create_from_yaml("kind: [", "default")


def test_create_missing_kind(client):
    with pytest.raises(KubeError, match="Kind"):
        client.create_from_yaml("apiVersion: v1\nmetadata:\n  name: x\n", "default")


def test_create_reports_server_message(client, api):
    api.add(
        responses.POST,
        SERVER + "/api/v1/namespaces/default/pods",
        json={"kind": "Status", "message": "pods \"p\" already exists"},
        status=409,
    )
    with pytest.raises(KubeError, match="already exists"):
        client.create_from_yaml("apiVersion: v1\nkind: Pod\nmetadata:\n  name: p\n", "default")


def test_connection_ok(client, api):
    api.add(responses.GET, SERVER + "/version", json={"gitVersion": "v1.29.0"})
    assert client.test_connection() is None
    assert len(api.calls) == 1
    assert urlparse(api.calls[0].request.url).path == "/version"
    assert api.calls[0].request.headers["Authorization"] == "Bearer token"


def test_connection_failure(client, api):
    api.add(responses.GET, SERVER + "/version", body=requests.ConnectionError("refused"))
    with pytest.raises(KubeError, match="не удается подключиться к кластеру"):
        client.test_connection()