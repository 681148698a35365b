"""Kubernetes client, output formatting and command line."""