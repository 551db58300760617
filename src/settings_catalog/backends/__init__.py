"""Backends for reading and writing policy settings."""
from dataclasses import fields

from .base import (
    BackendConfig,
    BackendError,
    GraphError,
    PolicyNotFoundError,
    SettingsBackend,
)
from .graph import GraphSettingsBackend
from .memory import InMemoryBackend

__all__ = [
    "BackendConfig",
    "BackendError",
    "GraphError",
    "PolicyNotFoundError",
    "SettingsBackend",
    "GraphSettingsBackend",
    "InMemoryBackend",
    "create_backend",
]

# Backend type registry
BACKEND_TYPES = {
    "graph": GraphSettingsBackend,
    "memory": InMemoryBackend,
}


def create_backend(backend_id: str, config: dict) -> SettingsBackend:
    """Factory function to create backend instances."""
    backend_type = config.get("type", "graph").lower()
    if backend_type not in BACKEND_TYPES:
        raise ValueError(f"Unknown backend type: {backend_type}")

    known = {f.name for f in fields(BackendConfig)}
    unknown = set(config) - known
    if unknown:
        raise ValueError(f"Unknown backend options: {', '.join(sorted(unknown))}")

    backend_class = BACKEND_TYPES[backend_type]
    return backend_class(backend_id, BackendConfig(**{**config, "type": backend_type}))
