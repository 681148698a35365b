"""Command line for inspecting and changing a Kubernetes cluster."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

import yaml

from opskit.k8s.client import Client, KubeError
from opskit.k8s.output import print_deployments, print_pods, print_services

VERSION = "1.0.0"
ENV_PREFIX = "K8S_CLI_"
CONFIG_NAME = ".k8s-cli"
DEFAULT_NAMESPACE = "default"
DEFAULT_OUTPUT = "table"

_DESCRIPTION = """k8s-cli - это простой инструмент командной строки для работы с Kubernetes кластерами.

Возможности:
• Переключение между контекстами Kubernetes
• Просмотр списка различных ресурсов (pods, deployments, services)
• Создание ресурсов из YAML файлов"""


@dataclass(frozen=True)
class Settings:
    """Options shared by every command, after flags, environment and config are merged."""

    kubeconfig: str
    namespace: str = DEFAULT_NAMESPACE
    output: str = DEFAULT_OUTPUT
    config_file: str | None = None


def _add_global_options(parser: argparse.ArgumentParser, default: Any) -> None:
    parser.add_argument("--kubeconfig", default=default, help="путь к kubeconfig файлу")
    parser.add_argument("-n", "--namespace", default=default, help="namespace для операций")
    parser.add_argument("-o", "--output", default=default, help="формат вывода (table, json, yaml)")


def _leaf(subparsers: Any, name: str, help_text: str, **kwargs: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help_text, description=help_text, **kwargs)
    _add_global_options(parser, argparse.SUPPRESS)
    return parser


def _group(subparsers: Any, name: str, help_text: str, description: str) -> tuple[argparse.ArgumentParser, Any]:
    parser = subparsers.add_parser(name, help=help_text, description=description)
    parser.set_defaults(handler=None, help_parser=parser)
    return parser, parser.add_subparsers(title="команды")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all commands and their options."""
    parser = argparse.ArgumentParser(
        prog="k8s-cli",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"k8s-cli version {VERSION}")
    _add_global_options(parser, None)
    parser.set_defaults(handler=None, help_parser=parser)
    commands = parser.add_subparsers(title="команды")

    _, apply_commands = _group(
        commands, "apply", "Создать ресурсы из YAML файла",
        "Создать или обновить ресурсы Kubernetes из YAML файла",
    )
    apply_file = _leaf(apply_commands, "file", "Применить YAML файл")
    apply_file.add_argument("filename")
    apply_file.set_defaults(handler=lambda s, a, out: run_apply_file(s, a.filename, out))

    _, context_commands = _group(
        commands, "context", "Управление контекстами Kubernetes",
        "Команды для работы с контекстами Kubernetes - просмотр, переключение",
    )
    _leaf(context_commands, "list", "Список всех контекстов").set_defaults(
        handler=lambda s, a, out: run_context_list(s, out)
    )
    _leaf(context_commands, "current", "Показать текущий контекст").set_defaults(
        handler=lambda s, a, out: run_context_current(s, out)
    )
    context_set = _leaf(context_commands, "set", "Переключить контекст")
    context_set.add_argument("context_name")
    context_set.set_defaults(handler=lambda s, a, out: run_context_set(s, a.context_name, out))

    _, list_commands = _group(
        commands, "list", "Список ресурсов Kubernetes",
        "Команды для получения списков различных ресурсов Kubernetes",
    )
    selectable: dict[str, tuple[str, Callable[..., None]]] = {
        "pods": ("Список подов", run_list_pods),
        "deployments": ("Список деплойментов", run_list_deployments),
        "services": ("Список сервисов", run_list_services),
    }
    for name, (help_text, runner) in selectable.items():
        leaf = _leaf(list_commands, name, help_text)
        leaf.add_argument("-l", "--selector", default="", help="селектор меток")
        leaf.set_defaults(handler=lambda s, a, out, run=runner: run(s, a.selector, out))
    _leaf(list_commands, "namespaces", "Список namespace'ов").set_defaults(
        handler=lambda s, a, out: run_list_namespaces(s, out)
    )
    return parser


def _home(environ: Mapping[str, str]) -> str:
    return environ.get("HOME") or environ.get("USERPROFILE") or ""


def _find_config(home: str) -> Path | None:
    directories = [Path.cwd()]
    if home:
        directories.append(Path(home))
    for directory in directories:
        for suffix in (".yaml", ".yml", ""):
            candidate = directory / f"{CONFIG_NAME}{suffix}"
            if candidate.is_file():
                return candidate
    return None


def _read_config(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError, UnicodeDecodeError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(key).lower(): value for key, value in data.items()}


def resolve_settings(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> Settings:
    """Merge flags, K8S_CLI_* variables and the .k8s-cli config file into settings."""
    environ = os.environ if environ is None else environ
    home = _home(environ)
    config_path = _find_config(home)
    config = _read_config(config_path)

    def pick(key: str, flag: Any, default: str) -> str:
        if flag:
            return str(flag)
        from_env = environ.get(ENV_PREFIX + key.upper())
        if from_env:
            return from_env
        if config.get(key) not in (None, ""):
            return str(config[key])
        return default

    flag_kubeconfig = getattr(args, "kubeconfig", None)
    if not flag_kubeconfig and home:
        kubeconfig = str(Path(home) / ".kube" / "config")
    else:
        kubeconfig = pick("kubeconfig", flag_kubeconfig, "")

    return Settings(
        kubeconfig=kubeconfig,
        namespace=pick("namespace", getattr(args, "namespace", None), DEFAULT_NAMESPACE),
        output=pick("output", getattr(args, "output", None), DEFAULT_OUTPUT),
        config_file=str(config_path) if config_path is not None and config else None,
    )


def _client(settings: Settings) -> Client:
    try:
        return Client(settings.kubeconfig)
    except KubeError as exc:
        raise KubeError(f"ошибка создания клиента: {exc}") from exc


def _stream(out: TextIO | None) -> TextIO:
    return out if out is not None else sys.stdout


def run_apply_file(settings: Settings, filename: str, out: TextIO | None = None) -> None:
    """Create the resource described in a YAML file."""
    try:
        yaml_data = Path(filename).read_bytes()
    except OSError as exc:
        raise KubeError(f"ошибка чтения файла {filename}: {exc}") from exc
    client = _client(settings)
    try:
        client.create_from_yaml(yaml_data, settings.namespace)
    except KubeError as exc:
        raise KubeError(f"ошибка применения YAML: {exc}") from exc
    _stream(out).write(f"✅ Ресурсы успешно созданы из файла: {filename}\n")


def run_context_list(settings: Settings, out: TextIO | None = None) -> None:
    """Print every context, marking the current one."""
    client = _client(settings)
    current = client.current_context()
    stream = _stream(out)
    stream.write("Доступные контексты:\n")
    for name in client.contexts():
        if name == current:
            stream.write(f"* {name} (текущий)\n")
        else:
            stream.write(f"  {name}\n")


def run_context_current(settings: Settings, out: TextIO | None = None) -> None:
    """Print the current context."""
    client = _client(settings)
    _stream(out).write(f"Текущий контекст: {client.current_context()}\n")


def run_context_set(settings: Settings, context_name: str, out: TextIO | None = None) -> None:
    """Switch the kubeconfig to another context."""
    client = _client(settings)
    try:
        client.set_context(context_name, settings.kubeconfig)
    except KubeError as exc:
        raise KubeError(f"ошибка переключения контекста: {exc}") from exc
    _stream(out).write(f"Контекст переключен на: {context_name}\n")


def _fetch(action: Callable[[], list[dict[str, Any]]], what: str) -> list[dict[str, Any]]:
    try:
        return action()
    except KubeError as exc:
        raise KubeError(f"ошибка получения {what}: {exc}") from exc


def run_list_pods(settings: Settings, selector: str = "", out: TextIO | None = None) -> None:
    """Print the pods of the configured namespace."""
    client = _client(settings)
    pods = _fetch(lambda: client.list_pods(settings.namespace, selector), "подов")
    stream = _stream(out)
    stream.write(f"Поды в namespace '{settings.namespace}':\n")
    print_pods(pods, settings.output, stream)


def run_list_deployments(settings: Settings, selector: str = "", out: TextIO | None = None) -> None:
    """Print the deployments of the configured namespace."""
    client = _client(settings)
    deployments = _fetch(lambda: client.list_deployments(settings.namespace, selector), "деплойментов")
    stream = _stream(out)
    stream.write(f"Деплойменты в namespace '{settings.namespace}':\n")
    print_deployments(deployments, settings.output, stream)


def run_list_services(settings: Settings, selector: str = "", out: TextIO | None = None) -> None:
    """Print the services of the configured namespace."""
    client = _client(settings)
    services = _fetch(lambda: client.list_services(settings.namespace, selector), "сервисов")
    stream = _stream(out)
    stream.write(f"Сервисы в namespace '{settings.namespace}':\n")
    print_services(services, settings.output, stream)


def run_list_namespaces(settings: Settings, out: TextIO | None = None) -> None:
    """Print the names of all namespaces."""
    client = _client(settings)
    namespaces = _fetch(client.list_namespaces, "namespace'ов")
    stream = _stream(out)
    stream.write("Namespace'ы:\n")
    for namespace in namespaces:
        stream.write(f"  {(namespace.get('metadata') or {}).get('name', '')}\n")


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.handler is None:
        args.help_parser.print_help()
        return 0
    settings = resolve_settings(args)
    if settings.config_file:
        print("Используется конфигурационный файл:", settings.config_file, file=sys.stderr)
    try:
        args.handler(settings, args, sys.stdout)
    except KubeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0