"""Kubernetes API client configured from a kubeconfig file."""

from __future__ import annotations

import base64
import os
import tempfile
from pathlib import Path
from typing import Any
from urllib.parse import quote

import requests
import yaml

CLUSTER_SCOPED_KINDS = frozenset(
    {
        "Namespace",
        "Node",
        "PersistentVolume",
        "ClusterRole",
        "ClusterRoleBinding",
        "StorageClass",
    }
)

_KNOWN_KINDS = (
    "Pod",
    "Deployment",
    "Service",
    "ConfigMap",
    "Secret",
    "Namespace",
)

_KNOWN_RESOURCES = {kind: kind.lower() + "s" for kind in _KNOWN_KINDS}

_REQUEST_TIMEOUT = 30


class KubeError(Exception):
    """Raised when the kubeconfig or the Kubernetes API reports a failure."""


def _default_kubeconfig_path() -> str:
    return str(Path.home() / ".kube" / "config")


def load_kubeconfig(path: str | os.PathLike[str] | None) -> dict[str, Any]:
    """Read a kubeconfig file and return it as a mapping."""
    path = path or _default_kubeconfig_path()
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise KubeError(f"не удалось прочитать {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise KubeError(f"некорректный YAML в {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise KubeError(f"некорректный kubeconfig {path}: ожидался объект")
    return data


def is_cluster_scoped(kind: str) -> bool:
    """Tell whether resources of this kind live outside namespaces."""
    return kind in CLUSTER_SCOPED_KINDS


def resource_name(kind: str) -> str:
    """Return the plural resource name used in API paths for a kind."""
    return _KNOWN_RESOURCES.get(kind, kind.lower() + "s")


def _named(entries: Any, name: str | None, key: str) -> dict[str, Any] | None:
    if not name or not isinstance(entries, list):
        return None
    for entry in entries:
        if isinstance(entry, dict) and entry.get("name") == name:
            value = entry.get(key)
            return value if isinstance(value, dict) else {}
    return None


def _collection_path(prefix: str, resource: str, namespace: str) -> str:
    if namespace:
        return f"{prefix}/namespaces/{quote(namespace, safe='')}/{resource}"
    return f"{prefix}/{resource}"


def _status_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"{response.status_code} {response.reason}".strip()


class Client:
    """A session against the cluster selected by a kubeconfig's current context."""

    def __init__(self, kubeconfig_path: str | None) -> None:
        self._path = kubeconfig_path or _default_kubeconfig_path()
        self._tempdir: tempfile.TemporaryDirectory[str] | None = None
        try:
            self._config = load_kubeconfig(self._path)
            self._server, self._session = self._build_session()
        except KubeError as exc:
            raise KubeError(f"ошибка создания конфигурации: {exc}") from exc

    def _resolve(self, value: str) -> str:
        candidate = Path(os.path.expanduser(value))
        if not candidate.is_absolute():
            candidate = Path(self._path).resolve().parent / candidate
        return str(candidate)

    def _material(self, section: dict[str, Any], key: str) -> str | None:
        data = section.get(f"{key}-data")
        if data:
            if self._tempdir is None:
                self._tempdir = tempfile.TemporaryDirectory(prefix="kube-")
            target = Path(self._tempdir.name) / key
            try:
                target.write_bytes(base64.b64decode(data))
            except (ValueError, TypeError) as exc:
                raise KubeError(f"некорректное поле {key}-data: {exc}") from exc
            return str(target)
        value = section.get(key)
        return self._resolve(value) if value else None

    def _build_session(self) -> tuple[str, requests.Session]:
        name = self._config.get("current-context") or ""
        if not name:
            raise KubeError("в kubeconfig не задан текущий контекст")
        context = _named(self._config.get("contexts"), name, "context")
        if context is None:
            raise KubeError(f"контекст '{name}' не найден")
        cluster = _named(self._config.get("clusters"), context.get("cluster"), "cluster")
        if not cluster or not cluster.get("server"):
            raise KubeError(f"кластер для контекста '{name}' не найден")
        user = _named(self._config.get("users"), context.get("user"), "user") or {}

        session = requests.Session()
        if cluster.get("insecure-skip-tls-verify"):
            session.verify = False
        else:
            session.verify = self._material(cluster, "certificate-authority") or True

        cert = self._material(user, "client-certificate")
        key = self._material(user, "client-key")
        if cert and key:
            session.cert = (cert, key)
        elif cert:
            session.cert = cert

        bearer = user.get("token")
        if not bearer and user.get("tokenFile"):
            try:
                bearer = Path(self._resolve(user["tokenFile"])).read_text(encoding="utf-8").strip()
            except OSError as exc:
                raise KubeError(f"не удалось прочитать tokenFile: {exc}") from exc
        if bearer:
            session.headers["Authorization"] = f"Bearer {bearer}"
        elif user.get("username"):
            session.auth = (user["username"], user.get("password") or "")

        session.headers["Accept"] = "application/json"
        return str(cluster["server"]).rstrip("/"), session

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = self._session.request(
                method,
                self._server + path,
                params=params,
                json=body,
                timeout=_REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise KubeError(str(exc)) from exc
        if not response.ok:
            raise KubeError(_status_message(response))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise KubeError(f"некорректный ответ сервера: {exc}") from exc

    def _list(self, prefix: str, resource: str, namespace: str, selector: str) -> list[dict[str, Any]]:
        params = {"labelSelector": selector} if selector else None
        result = self._request("GET", _collection_path(prefix, resource, namespace), params=params)
        return list(result.get("items") or [])

    def current_context(self) -> str:
        """Return the name of the kubeconfig's current context."""
        return self._config.get("current-context") or ""

    def contexts(self) -> list[str]:
        """Return the names of all contexts in the kubeconfig."""
        entries = self._config.get("contexts") or []
        return [entry["name"] for entry in entries if isinstance(entry, dict) and entry.get("name")]

    def set_context(self, context_name: str, kubeconfig_path: str | None) -> None:
        """Make a context current and write the kubeconfig back."""
        path = kubeconfig_path or self._path
        try:
            config = load_kubeconfig(path)
        except KubeError as exc:
            raise KubeError(f"ошибка загрузки kubeconfig: {exc}") from exc
        if _named(config.get("contexts"), context_name, "context") is None:
            raise KubeError(f"контекст '{context_name}' не найден")
        config["current-context"] = context_name
        try:
            Path(path).write_text(
                yaml.safe_dump(config, sort_keys=False, allow_unicode=True), encoding="utf-8"
            )
        except OSError as exc:
            raise KubeError(f"ошибка записи kubeconfig: {exc}") from exc

    def test_connection(self) -> None:
        """Check that the cluster answers a version request."""
        try:
            self._request("GET", "/version")
        except KubeError as exc:
            raise KubeError(f"не удается подключиться к кластеру: {exc}") from exc

    def list_pods(self, namespace: str, selector: str = "") -> list[dict[str, Any]]:
        """List pods; an empty namespace means all namespaces."""
        return self._list("/api/v1", "pods", namespace, selector)

    def list_deployments(self, namespace: str, selector: str = "") -> list[dict[str, Any]]:
        """List deployments; an empty namespace means all namespaces."""
        return self._list("/apis/apps/v1", "deployments", namespace, selector)

    def list_services(self, namespace: str, selector: str = "") -> list[dict[str, Any]]:
        """List services; an empty namespace means all namespaces."""
        return self._list("/api/v1", "services", namespace, selector)

    def list_namespaces(self) -> list[dict[str, Any]]:
        """List all namespaces in the cluster."""
        return self._list("/api/v1", "namespaces", "", "")

    def create_from_yaml(self, yaml_data: bytes | str, namespace: str) -> dict[str, Any]:
        """Create the resource described by the first YAML document."""
        try:
            if isinstance(yaml_data, bytes):
                yaml_data = yaml_data.decode("utf-8")
            obj = next(iter(yaml.safe_load_all(yaml_data)), None)
        except (yaml.YAMLError, UnicodeDecodeError) as exc:
            raise KubeError(f"ошибка декодирования YAML: {exc}") from exc
        if not isinstance(obj, dict):
            raise KubeError("ошибка декодирования YAML: ожидался объект")
        kind = obj.get("kind")
        if not isinstance(kind, str) or not kind:
            raise KubeError("ошибка декодирования YAML: Object 'Kind' is missing")

        group, _, version = str(obj.get("apiVersion") or "").rpartition("/")
        metadata = obj.get("metadata")
        if not isinstance(metadata, dict):
            metadata = obj["metadata"] = {}

        cluster_scoped = is_cluster_scoped(kind)
        if not metadata.get("namespace") and namespace and not cluster_scoped:
            metadata["namespace"] = namespace

        prefix = f"/apis/{group}/{version}" if group else f"/api/{version}"
        target_namespace = "" if cluster_scoped else str(metadata.get("namespace") or "")
        path = _collection_path(prefix, resource_name(kind), target_namespace)
        try:
            return self._request("POST", path, body=obj)
        except KubeError as exc:
            raise KubeError(f"ошибка создания ресурса: {exc}") from exc