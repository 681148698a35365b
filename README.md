# opskit

Three small command-line tools in one package:

- **`opskit-k8s`** works with Kubernetes clusters. It shows and switches
  kubeconfig contexts, lists pods, deployments, services and namespaces, and
  creates a resource from a YAML file.
- **`opskit-http`** is a small JSON HTTP server. It gives every request an ID
  and logs each request to the console and to a log file.
- **`opskit-logdemo`** writes sample records with levelled, structured logging,
  in console or JSON form.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## opskit-k8s

Every subcommand accepts these options:

| option | default | meaning |
| --- | --- | --- |
| `--kubeconfig PATH` | `~/.kube/config` | kubeconfig file to use |
| `-n`, `--namespace NAME` | `default` | namespace to operate in |
| `-o`, `--output FORMAT` | `table` | `table`, `json` or `yaml` |

`--version` prints the version.

For `--namespace` and `--output`, a value set on the command line comes
first. Next come the environment variables `K8S_CLI_NAMESPACE` and
`K8S_CLI_OUTPUT`. After those comes a YAML config file named `.k8s-cli.yaml`,
`.k8s-cli.yml` or `.k8s-cli`, looked for in the current directory and then in
the home directory. When a config file is used, its path is printed to
standard error. When no `--kubeconfig` is given and a home directory is known,
`~/.kube/config` is used.

### Contexts

```
opskit-k8s context list          # all contexts; the current one is marked with *
opskit-k8s context current       # show the active context
opskit-k8s context set my-cluster
```

`context set` writes a new `current-context` into the kubeconfig file. It
fails if no context of that name exists.

### Listing resources

```
opskit-k8s list pods
opskit-k8s list pods -n kube-system -o json
opskit-k8s list deployments -l app=web
opskit-k8s list services -n production
opskit-k8s list namespaces
```

`pods`, `deployments` and `services` take `-l`/`--selector` to filter by
label. Tables use these columns:

- pods: `NAME READY STATUS RESTARTS AGE`
- deployments: `NAME READY UP-TO-DATE AVAILABLE AGE`
- services: `NAME TYPE CLUSTER-IP EXTERNAL-IP PORT(S) AGE`

Ages are shown as `Nd`, `Nh`, `Nm` or `Ns`. The `json` and `yaml` formats
print the objects exactly as the API returned them.

### Creating resources

```
opskit-k8s apply file pod.yaml
opskit-k8s apply file deployment.yaml -n my-app
```

This reads the first object in the file and sends it to the API as a new
resource. If the object has no namespace, the `--namespace` value is used.
Cluster-scoped kinds are the exception: `Namespace`, `Node`,
`PersistentVolume`, `ClusterRole`, `ClusterRoleBinding` and `StorageClass`.

When a command fails, it prints `Error: ...` to standard error and exits
with status 1.

### Authentication

The client connects to the cluster of the current context. It can
authenticate with any of these:

- `token` or `tokenFile` (sent as a bearer token)
- `username` and `password`
- client certificates

Certificates and keys may be given as file paths or as `*-data` fields.
`insecure-skip-tls-verify` is honoured.

## opskit-http

```
opskit-http server --port 8080 --log-level info
```

| path | response |
| --- | --- |
| `/` | welcome message, request ID, timestamp, version |
| `/health` | `{"status": "healthy", ...}` |
| `/api/v1/status` | server name, uptime, request ID, timestamp, Python version |
| anything else | `404` with a JSON error body |

Every response has an `X-Request-ID` header. Each request is logged twice:
once when it arrives, and again when it completes. The second entry records
the method, URI, status, duration, client IP, user agent and response size.
Logs go to standard output and to `logs/server_<YYYY-MM-DD_HH-MM-SS>.log` in
the current directory. A request body larger than 10 MiB gets a 500 response.
If a handler fails, the request gets a 500 response. On SIGINT or SIGTERM the
server shuts down and logs its total uptime. `--log-level` is recorded in the
startup log but does not filter messages.

## opskit-logdemo

```
opskit-logdemo --log-level=trace --prettify
opskit-logdemo --log-level=warn
opskit-logdemo --log-format=json
```

- `--log-level`: `trace`, `debug`, `info` (the default), `warn` or `error`.
  Any other value prints a notice and falls back to `info`.
- `--log-format`: `console` (the default) or `json`.
- `--prettify`: coloured console output. It selects console format even when
  `--log-format=json` is given.

The demo writes one record at each level. It then writes records with typed
fields (strings, numbers, booleans, times, durations in milliseconds, lists
and errors). Last, it uses loggers with bound context for a request, an order,
a database, a cache and an external API.

## Library use

```python
from opskit.k8s.client import Client, resource_name
from opskit.k8s.output import print_pods
from opskit.logdemo.logger import ConsoleFormatter, Logger, parse_level

client = Client("/path/to/kubeconfig")
print(client.current_context())
print_pods(client.list_pods("default"), "table")
print(resource_name("Deployment"))  # "deployments"
```

`opskit.httpserver.handlers.Application.handle(method, uri, remote_ip,
user_agent)` returns a `Response` without any network involved.

## What it does not do

- `apply file` only creates. It does not update or patch a resource that
  already exists; the API's conflict error is reported instead. It also reads
  only the first document in a multi-document file.
- Kubeconfig `exec` and `auth-provider` credentials are not supported.
- `opskit-http` serves plain HTTP only, with no TLS.