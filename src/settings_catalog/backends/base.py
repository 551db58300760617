"""Base backend abstraction for the settings service."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_ENDPOINT = "https://graph.microsoft.com"
DEFAULT_API_VERSION = "beta"


@dataclass
class BackendConfig:
    """Configuration for a settings backend."""
    type: str = "graph"
    endpoint: str = DEFAULT_GRAPH_ENDPOINT
    api_version: str = DEFAULT_API_VERSION
    token: Optional[str] = None
    token_env: str = "SETTINGS_CATALOG_TOKEN"
    timeout: float = 60
    verify_ssl: bool = True
    user_agent: str = "settings-catalog"

    def get_token(self) -> str:
        """Get bearer token from config or environment variable."""
        if self.token:
            return self.token
        return os.environ.get(self.token_env, "")

    @property
    def base_url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/{self.api_version}"


class BackendError(Exception):
    """A call to the settings service failed."""
    pass


class GraphError(BackendError):
    """Error body returned by the service."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        inner: Optional["GraphError"] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.inner = inner
        text = f"{code}: {message}"
        if inner is not None:
            text += f" (inner: {inner})"
        super().__init__(text)

    @classmethod
    def from_body(cls, body: dict[str, Any], status_code: Optional[int] = None) -> "GraphError":
        inner_body = body.get("innerError")
        inner = cls.from_body(inner_body) if isinstance(inner_body, dict) and inner_body.get("code") else None
        return cls(
            code=body.get("code", "Unknown"),
            message=body.get("message", ""),
            status_code=status_code,
            inner=inner,
        )


class PolicyNotFoundError(BackendError):
    """The target policy does not exist."""

    def __init__(self, policy_id: str):
        self.policy_id = policy_id
        super().__init__(f"Policy not found: {policy_id}")


class SettingsBackend(ABC):
    """Abstract base class for the settings service transport.

    Settings travel as JSON setting envelopes (see config_engine.wire).
    """

    def __init__(self, backend_id: str, config: BackendConfig):
        self.backend_id = backend_id
        self.config = config
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> bool:
        """Open the session to the service."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session."""
        pass

    # Settings
    @abstractmethod
    async def get_settings(self, policy_id: str) -> list[dict[str, Any]]:
        """Read the current setting envelopes of a policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
        """
        pass

    @abstractmethod
    async def replace_settings(self, policy_id: str, settings: list[dict[str, Any]]) -> None:
        """Replace the whole setting list of a policy in one call.

        Raises:
            PolicyNotFoundError: If the policy does not exist
        """
        pass

    # Context manager support
    async def __aenter__(self):
        if not self._connected:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
