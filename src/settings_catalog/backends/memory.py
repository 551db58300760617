"""In-memory backend.

Holds setting envelopes per policy in a dict. Used for offline dry runs
and tests; every read and write deep-copies so callers cannot alias the
stored state.
"""
import copy
import logging
from typing import Any, Optional

from .base import BackendConfig, PolicyNotFoundError, SettingsBackend

logger = logging.getLogger(__name__)


class InMemoryBackend(SettingsBackend):
    """Settings backend that keeps policies in process memory."""

    def __init__(
        self,
        backend_id: str = "memory",
        config: Optional[BackendConfig] = None,
        policies: Optional[dict[str, list[dict[str, Any]]]] = None,
    ):
        super().__init__(backend_id, config or BackendConfig(type="memory"))
        self._policies: dict[str, list[dict[str, Any]]] = copy.deepcopy(policies or {})
        self.writes: list[tuple[str, list[dict[str, Any]]]] = []

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self._connected = False

    def create_policy(self, policy_id: str, settings: Optional[list[dict[str, Any]]] = None) -> None:
        """Create an (optionally pre-populated) policy."""
        self._policies[policy_id] = copy.deepcopy(settings or [])

    def delete_policy(self, policy_id: str) -> None:
        self._policies.pop(policy_id, None)

    async def get_settings(self, policy_id: str) -> list[dict[str, Any]]:
        if policy_id not in self._policies:
            raise PolicyNotFoundError(policy_id)
        return copy.deepcopy(self._policies[policy_id])

    async def replace_settings(self, policy_id: str, settings: list[dict[str, Any]]) -> None:
        if policy_id not in self._policies:
            raise PolicyNotFoundError(policy_id)
        self._policies[policy_id] = copy.deepcopy(settings)
        self.writes.append((policy_id, copy.deepcopy(settings)))
        logger.debug(f"Stored {len(settings)} settings for policy {policy_id}")
