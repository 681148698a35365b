[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opskit"
version = "1.0.0"
description = "Small operations tools: a Kubernetes command line, a traced JSON HTTP server and a structured logging demo"
requires-python = ">=3.10"
keywords = ["kubernetes", "kubeconfig", "cli", "http-server", "request-tracing", "structured-logging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Logging",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
opskit-k8s = "opskit.k8s.cli:main"
opskit-http = "opskit.httpserver.server:main"
opskit-logdemo = "opskit.logdemo.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["opskit"]

[tool.hatch.build.targets.sdist]
include = ["opskit", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
