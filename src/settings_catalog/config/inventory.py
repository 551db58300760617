"""Policy inventory management from YAML configuration."""
import logging
from pathlib import Path
from typing import Optional

import yaml

from ..backends import SettingsBackend, create_backend
from ..utils.logging_config import timed_section_sync
from ..config_engine.parser import SettingsParser
from ..config_engine.schema import (
    BooleanPolicy,
    CodecOptions,
    DesiredSettings,
    NestedChildPolicy,
)

logger = logging.getLogger(__name__)


class PolicyInventory:
    """Manages the policy inventory loaded from YAML config.

    ```yaml
    backend:
      type: graph
      token_env: SETTINGS_CATALOG_TOKEN

    options:
      boolean_policy: literal_true
      nested_child_policy: error

    defaults:
      mode: replace

    policies:
      defender:
        policy_id: 0f7c6a0e-...
        settings:
          - definition_id: device_vendor_msft_defender_configuration_allowrealtimemonitoring
            value_type: boolean
            value: "true"
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._backend: Optional[SettingsBackend] = None
        self.parser = SettingsParser()
        self._load_config()

    def _find_config(self) -> str:
        """Find the policies.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "policies.yaml",
            Path.cwd() / "policies.yaml",
            Path.home() / ".config" / "settings-catalog" / "policies.yaml",
            Path("/etc/settings-catalog/policies.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find policies.yaml. Create one in ./configs/policies.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with timed_section_sync("load_inventory"), open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        # Apply defaults
        defaults = self._config.get("defaults", {})
        for name, policy_config in self._config.get("policies", {}).items():
            if policy_config is None:
                logger.warning(f"Policy '{name}' has no configuration")
                self._config["policies"][name] = policy_config = {}
            for key, value in defaults.items():
                if key not in policy_config:
                    policy_config[key] = value

    def get_policy_names(self) -> list[str]:
        """Get all policy names."""
        return list(self._config.get("policies", {}).keys())

    def get_policy_config(self, name: str) -> dict:
        """Get raw config for a policy."""
        policies = self._config.get("policies", {})
        if name not in policies:
            raise KeyError(f"Unknown policy: {name}")
        return policies[name]

    def get_desired(self, name: str) -> DesiredSettings:
        """Parse the declared settings of a policy.

        Raises:
            KeyError: If the policy is unknown
            ParseError: If its settings are invalid
        """
        return self.parser.parse(self.get_policy_config(name))

    def get_codec_options(self) -> CodecOptions:
        """Codec options from the ``options`` section, with defaults."""
        options = self._config.get("options", {}) or {}
        return CodecOptions(
            boolean_policy=BooleanPolicy(
                options.get("boolean_policy", BooleanPolicy.LITERAL_TRUE.value)
            ),
            nested_child_policy=NestedChildPolicy(
                options.get("nested_child_policy", NestedChildPolicy.ERROR.value)
            ),
        )

    def get_backend(self) -> SettingsBackend:
        """Get or create the configured backend instance."""
        if self._backend is None:
            backend_config = dict(self._config.get("backend", {}) or {})
            self._backend = create_backend("default", backend_config)
        return self._backend

    async def close(self) -> None:
        """Close the backend connection."""
        if self._backend is not None and self._backend.is_connected:
            await self._backend.disconnect()
        self._backend = None
