import io
import json
from datetime import datetime, timedelta, timezone

import pytest
import yaml

from opskit.k8s.output import (
    external_ip,
    format_age,
    print_deployments,
    print_pods,
    print_services,
    ready_containers,
    render_table,
    restart_count,
    service_ports,
)

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _pod(name="web", phase="Running"):
    return {
        "metadata": {"name": name, "creationTimestamp": "2024-01-01T00:00:00Z"},
        "spec": {"containers": [{"name": "a"}, {"name": "b"}]},
        "status": {
            "phase": phase,
            "containerStatuses": [
                {"ready": True, "restartCount": 0},
                {"ready": False, "restartCount": 5},
            ],
        },
    }


def _cells(line):
    return [cell.strip() for cell in line.split("\t")[:-1]]


@pytest.mark.parametrize(
    "delta,unit,amount",
    [
        (timedelta(days=3, hours=5), "d", 3),
        (timedelta(hours=7, minutes=10), "h", 7),
        (timedelta(minutes=12, seconds=30), "m", 12),
        (timedelta(seconds=42), "s", 42),
    ],
)
def test_format_age_units(delta, unit, amount):
    assert format_age(CREATED, CREATED + delta) == f"{amount}{unit}"


def test_format_age_accepts_rfc3339_string():
    now = CREATED + timedelta(days=2)
    assert format_age("2024-01-01T00:00:00Z", now) == format_age(CREATED, now)


def test_format_age_missing_timestamp():
    assert format_age(None) == "<unknown>"


def test_ready_and_restarts():
    pod = _pod()
    assert ready_containers(pod) == 1
    assert restart_count(pod) == 5


def test_ready_without_statuses():
    assert ready_containers({"status": {}}) == 0
    assert restart_count({}) == 0


def test_external_ip_prefers_ingress_ip():
    service = {
        "status": {"loadBalancer": {"ingress": [{"ip": "10.0.0.9", "hostname": "lb.example.com"}]}},
        "spec": {"externalIPs": ["192.0.2.1"]},
    }
    assert external_ip(service) == "10.0.0.9"


def test_external_ip_hostname_then_external_ips():
    assert external_ip({"status": {"loadBalancer": {"ingress": [{"hostname": "lb.example.com"}]}}}) == "lb.example.com"
    assert external_ip({"spec": {"externalIPs": ["192.0.2.1", "192.0.2.2"]}}) == "192.0.2.1"
    assert external_ip({"spec": {}}) == "<none>"


def test_service_ports():
    service = {
        "spec": {
            "ports": [
                {"port": 80, "nodePort": 30080, "protocol": "TCP"},
                {"port": 53, "protocol": "UDP"},
            ]
        }
    }
    assert service_ports(service).split(",") == ["80:30080/TCP", "53/UDP"]
    assert service_ports({"spec": {"ports": []}}) == "<none>"


def test_render_table_layout():
    text = render_table(["NAME", "X"], [["a", "bbbb"], ["ccc", "d"]])
    lines = text.splitlines()
    assert len(lines) == 3
    assert _cells(lines[0]) == ["NAME", "X"]
    assert _cells(lines[1]) == ["a", "bbbb"]
    assert _cells(lines[2]) == ["ccc", "d"]
    assert len({len(line) for line in lines}) == 1
    assert all(line.endswith("\t") for line in lines)


def test_print_pods_table():
    pod = _pod()
    stream = io.StringIO()
    print_pods([pod], "table", stream)
    header, row = stream.getvalue().splitlines()
    assert _cells(header) == ["NAME", "READY", "STATUS", "RESTARTS", "AGE"]
    cells = _cells(row)
    assert cells[0] == "web"
    assert cells[1] == f"{ready_containers(pod)}/2"
    assert cells[2] == "Running"
    assert cells[3] == str(restart_count(pod))
    assert cells[4].endswith("d")


def test_print_pods_json_round_trip():
    pods = [_pod("a"), _pod("b", "Pending")]
    stream = io.StringIO()
    print_pods(pods, "json", stream)
    assert json.loads(stream.getvalue()) == pods


def test_print_pods_yaml_round_trip():
    pods = [_pod()]
    stream = io.StringIO()
    print_pods(pods, "yaml", stream)
    assert yaml.safe_load(stream.getvalue()) == pods


def test_print_deployments_table():
    deployment = {
        "metadata": {"name": "api", "creationTimestamp": "2024-01-01T00:00:00Z"},
        "spec": {"replicas": 3},
        "status": {"readyReplicas": 2, "updatedReplicas": 3, "availableReplicas": 2},
    }
    stream = io.StringIO()
    print_deployments([deployment], "table", stream)
    header, row = stream.getvalue().splitlines()
    assert _cells(header) == ["NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE"]
    assert _cells(row)[:4] == ["api", "2/3", "3", "2"]


def test_print_services_table_and_json():
    service = {
        "metadata": {"name": "svc", "creationTimestamp": "2024-01-01T00:00:00Z"},
        "spec": {"type": "ClusterIP", "clusterIP": "10.96.0.10", "ports": [{"port": 443, "protocol": "TCP"}]},
    }
    stream = io.StringIO()
    print_services([service], "table", stream)
    header, row = stream.getvalue().splitlines()
    assert _cells(header) == ["NAME", "TYPE", "CLUSTER-IP", "EXTERNAL-IP", "PORT(S)", "AGE"]
    assert _cells(row)[:5] == ["svc", "ClusterIP", "10.96.0.10", "<none>", service_ports(service)]

    json_stream = io.StringIO()
    print_services([service], "json", json_stream)
    assert json.loads(json_stream.getvalue()) == [service]


def test_unknown_format_falls_back_to_table():
    pods = [_pod()]
    table, other = io.StringIO(), io.StringIO()
    print_pods(pods, "table", table)
    print_pods(pods, "wide", other)
    assert other.getvalue() == table.getvalue()