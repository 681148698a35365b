"""Operations tools: Kubernetes CLI, traced HTTP server and logging demo."""

__version__ = "1.0.0"