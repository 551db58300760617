"""Graph API backend for Settings Catalog policies.

Only the two calls the reconciler needs are implemented:

    GET  /deviceManagement/configurationPolicies('{id}')?$expand=settings
    PUT  /deviceManagement/configurationPolicies('{id}')/settings

Token acquisition, retries and pagination are left to the caller.
"""
import logging
from typing import Any, Optional

import httpx

from ..utils.logging_config import timed
from .base import (
    BackendConfig,
    BackendError,
    GraphError,
    PolicyNotFoundError,
    SettingsBackend,
)

logger = logging.getLogger(__name__)

POLICIES_PATH = "/deviceManagement/configurationPolicies"

NOT_FOUND_CODES = {"NotFound", "ResourceNotFound", "ItemNotFound"}


class GraphSettingsBackend(SettingsBackend):
    """Settings backend talking to Microsoft Graph over HTTPS."""

    def __init__(
        self,
        backend_id: str,
        config: BackendConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(backend_id, config)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def connect(self) -> bool:
        """Create the HTTP session."""
        token = self.config.get_token()
        if not token:
            logger.warning(
                f"No bearer token for {self.backend_id}; set {self.config.token_env}"
            )

        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout),
            verify=self.config.verify_ssl,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": self.config.user_agent,
            },
        )
        self._connected = True
        logger.info(f"Connected to {self.config.base_url} as {self.backend_id}")
        return True

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._http:
            await self._http.aclose()
            self._http = None
        self._connected = False
        logger.info(f"Disconnected from {self.config.base_url}")

    def _policy_path(self, policy_id: str) -> str:
        return f"{POLICIES_PATH}('{policy_id}')"

    async def _request(
        self,
        method: str,
        path: str,
        policy_id: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """Send a request and decode the JSON response."""
        if self._http is None:
            raise BackendError("Not connected")

        try:
            resp = await self._http.request(method, path, json=body, params=params)
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        data: dict[str, Any] = {}
        if resp.content:
            try:
                data = resp.json()
            except ValueError as e:
                # Non-JSON error bodies are reported by status below
                if resp.status_code < 400:
                    raise BackendError(
                        f"Failed to parse response from {method} {path}: {e} (body: {resp.text})"
                    ) from e

        if resp.status_code >= 400:
            error_body = data.get("error") if isinstance(data, dict) else None
            if isinstance(error_body, dict):
                error = GraphError.from_body(error_body, resp.status_code)
                if error.code in NOT_FOUND_CODES:
                    raise PolicyNotFoundError(policy_id) from error
                raise error
            if resp.status_code == 404:
                raise PolicyNotFoundError(policy_id)
            raise BackendError(f"Request failed with status {resp.status_code}: {resp.text}")

        return data

    @timed("get_settings")
    async def get_settings(self, policy_id: str) -> list[dict[str, Any]]:
        """Read a policy with its settings expanded."""
        data = await self._request(
            "GET",
            self._policy_path(policy_id),
            policy_id,
            params={"$expand": "settings"},
        )
        settings = data.get("settings") or []
        logger.debug(f"Read {len(settings)} settings from policy {policy_id}")
        return settings

    @timed("replace_settings")
    async def replace_settings(self, policy_id: str, settings: list[dict[str, Any]]) -> None:
        """Replace all settings of a policy."""
        await self._request(
            "PUT",
            f"{self._policy_path(policy_id)}/settings",
            policy_id,
            body={"settings": settings},
        )
        logger.debug(f"Replaced policy {policy_id} settings with {len(settings)} entries")
