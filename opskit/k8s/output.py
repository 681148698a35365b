"""Rendering of Kubernetes resource lists as tables, JSON or YAML."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, TextIO

import yaml

NONE = "<none>"


def _emit(
    items: Sequence[dict[str, Any]],
    output_format: str,
    stream: TextIO | None,
    table: Callable[[Sequence[dict[str, Any]]], str],
) -> None:
    stream = stream if stream is not None else sys.stdout
    if output_format == "json":
        stream.write(json.dumps(list(items), indent=2, ensure_ascii=False) + "\n")
    elif output_format == "yaml":
        stream.write(
            yaml.safe_dump(list(items), sort_keys=True, allow_unicode=True, default_flow_style=False)
        )
    else:
        stream.write(table(items))


def print_pods(pods: Sequence[dict[str, Any]], output_format: str = "table", stream: TextIO | None = None) -> None:
    """Write pods in the given format: json, yaml or a table."""
    _emit(pods, output_format, stream, _pods_table)


def print_deployments(
    deployments: Sequence[dict[str, Any]], output_format: str = "table", stream: TextIO | None = None
) -> None:
    """Write deployments in the given format: json, yaml or a table."""
    _emit(deployments, output_format, stream, _deployments_table)


def print_services(
    services: Sequence[dict[str, Any]], output_format: str = "table", stream: TextIO | None = None
) -> None:
    """Write services in the given format: json, yaml or a table."""
    _emit(services, output_format, stream, _services_table)


def render_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Lay out left-aligned columns, each cell followed by a tab."""
    lines = [[str(cell) for cell in headers]] + [[str(cell) for cell in row] for row in rows]
    columns = max(len(line) for line in lines)
    for line in lines:
        line.extend([""] * (columns - len(line)))
    widths = [max(len(line[index]) for line in lines) for index in range(columns)]
    return "".join(
        "".join(cell.ljust(width) + "\t" for cell, width in zip(line, widths)) + "\n" for line in lines
    )


def _parse_timestamp(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def format_age(timestamp: datetime | str | None, now: datetime | None = None) -> str:
    """Express the time since a timestamp in days, hours, minutes or seconds."""
    if timestamp is None or timestamp == "":
        return "<unknown>"
    created = _parse_timestamp(timestamp)
    current = _parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    seconds = (current - created).total_seconds()
    hours = seconds / 3600
    if hours >= 24:
        return f"{int(hours / 24)}d"
    if hours >= 1:
        return f"{int(hours)}h"
    if seconds / 60 >= 1:
        return f"{int(seconds / 60)}m"
    return f"{int(seconds)}s"


def _container_statuses(pod: dict[str, Any]) -> list[dict[str, Any]]:
    return (pod.get("status") or {}).get("containerStatuses") or []


def ready_containers(pod: dict[str, Any]) -> int:
    """Count the pod's containers that report ready."""
    return sum(1 for status in _container_statuses(pod) if status.get("ready"))


def restart_count(pod: dict[str, Any]) -> int:
    """Sum the restart counts of the pod's containers."""
    return sum(int(status.get("restartCount") or 0) for status in _container_statuses(pod))


def external_ip(service: dict[str, Any]) -> str:
    """Return the first load-balancer address or external IP of a service."""
    ingress = ((service.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    if ingress:
        first = ingress[0]
        if first.get("ip"):
            return first["ip"]
        if first.get("hostname"):
            return first["hostname"]
    external_ips = (service.get("spec") or {}).get("externalIPs") or []
    if external_ips:
        return external_ips[0]
    return NONE


def service_ports(service: dict[str, Any]) -> str:
    """Describe a service's ports as port[:nodePort]/protocol, comma separated."""
    ports = (service.get("spec") or {}).get("ports") or []
    if not ports:
        return NONE
    described = []
    for port in ports:
        protocol = port.get("protocol", "TCP")
        if port.get("nodePort"):
            described.append(f"{port.get('port', 0)}:{port['nodePort']}/{protocol}")
        else:
            described.append(f"{port.get('port', 0)}/{protocol}")
    return ",".join(described)


def _name(item: dict[str, Any]) -> str:
    return (item.get("metadata") or {}).get("name", "")


def _created(item: dict[str, Any]) -> Any:
    return (item.get("metadata") or {}).get("creationTimestamp")


def _pods_table(pods: Sequence[dict[str, Any]]) -> str:
    rows = []
    for pod in pods:
        containers = (pod.get("spec") or {}).get("containers") or []
        rows.append(
            [
                _name(pod),
                f"{ready_containers(pod)}/{len(containers)}",
                (pod.get("status") or {}).get("phase", ""),
                str(restart_count(pod)),
                format_age(_created(pod)),
            ]
        )
    return render_table(["NAME", "READY", "STATUS", "RESTARTS", "AGE"], rows)


def _deployments_table(deployments: Sequence[dict[str, Any]]) -> str:
    rows = []
    for deployment in deployments:
        spec = deployment.get("spec") or {}
        status = deployment.get("status") or {}
        replicas = spec.get("replicas") or 0
        rows.append(
            [
                _name(deployment),
                f"{status.get('readyReplicas') or 0}/{replicas}",
                str(status.get("updatedReplicas") or 0),
                str(status.get("availableReplicas") or 0),
                format_age(_created(deployment)),
            ]
        )
    return render_table(["NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE"], rows)


def _services_table(services: Sequence[dict[str, Any]]) -> str:
    rows = []
    for service in services:
        spec = service.get("spec") or {}
        rows.append(
            [
                _name(service),
                spec.get("type", ""),
                spec.get("clusterIP", ""),
                external_ip(service),
                service_ports(service),
                format_age(_created(service)),
            ]
        )
    return render_table(["NAME", "TYPE", "CLUSTER-IP", "EXTERNAL-IP", "PORT(S)", "AGE"], rows)