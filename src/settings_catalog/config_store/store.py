"""State store for last-declared setting lists.

Handles:
- Reading/writing YAML state files per policy
- Directory structure initialization
- State versioning and checksums
- Latest drift report per policy
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from ..config_engine.parser import ParseError, SettingsParser, compute_checksum, settings_to_config
from ..config_engine.schema import DeclaredSetting, DriftReport

logger = logging.getLogger(__name__)

# Default state directory
DEFAULT_STATE_DIR = Path.home() / ".settings-catalog"


@dataclass
class StoredSettings:
    """A stored last-declared setting list with metadata."""
    policy_id: str
    settings: list[dict[str, Any]] = field(default_factory=list)
    version: int = 1
    checksum: str = ""
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    source: str = "apply"  # apply, import

    def to_yaml(self) -> str:
        """Convert to YAML string with metadata header."""
        data = {
            "policy_id": self.policy_id,
            "version": self.version,
            "checksum": self.checksum,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "updated_by": self.updated_by,
            "source": self.source,
            "settings": self.settings,
        }
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str, policy_id: str) -> "StoredSettings":
        """Parse from YAML string."""
        data = yaml.safe_load(yaml_str) or {}

        updated_at = None
        updated_at_str = data.get("updated_at")
        if updated_at_str:
            try:
                updated_at = datetime.fromisoformat(updated_at_str)
            except (ValueError, TypeError):
                logger.warning(f"Ignoring bad updated_at in state for {policy_id}: {updated_at_str}")

        return cls(
            policy_id=policy_id,
            settings=data.get("settings") or [],
            version=data.get("version", 1),
            checksum=data.get("checksum", ""),
            updated_at=updated_at,
            updated_by=data.get("updated_by"),
            source=data.get("source", "apply"),
        )

    def declared_settings(self) -> list[DeclaredSetting]:
        """Parse the stored entries back into declared settings."""
        return SettingsParser().parse_settings(self.settings)


class StateStore:
    """
    Manages last-declared state and drift reports.

    Directory structure:
        ~/.settings-catalog/
        └── state/
            ├── declared/         # Last-declared settings per policy
            └── drift_reports/    # Latest drift report per policy
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize the state store.

        Args:
            base_dir: Base directory (default: ~/.settings-catalog)
        """
        self.base_dir = Path(base_dir) if base_dir else DEFAULT_STATE_DIR
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create directory structure if it doesn't exist."""
        for d in (self.declared_dir, self.drift_reports_dir):
            d.mkdir(parents=True, exist_ok=True)

        logger.debug(f"State store initialized at {self.base_dir}")

    @property
    def declared_dir(self) -> Path:
        return self.base_dir / "state" / "declared"

    @property
    def drift_reports_dir(self) -> Path:
        return self.base_dir / "state" / "drift_reports"

    # === Last-declared State ===

    def get_stored(self, policy_id: str) -> Optional[StoredSettings]:
        """
        Get the stored state for a policy.

        Returns None if nothing is stored or the file is unreadable.
        """
        path = self.declared_dir / f"{policy_id}.yaml"

        if not path.exists():
            return None

        try:
            return StoredSettings.from_yaml(path.read_text(), policy_id)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to read state for {policy_id}: {e}")
            return None

    def get_declared(self, policy_id: str) -> Optional[list[DeclaredSetting]]:
        """Get the last-declared settings for a policy, if any."""
        stored = self.get_stored(policy_id)
        if stored is None:
            return None
        try:
            return stored.declared_settings()
        except ParseError as e:
            logger.error(f"Stored state for {policy_id} is invalid: {e}")
            return None

    def save_declared(
        self,
        policy_id: str,
        settings: list[DeclaredSetting],
        source: str = "apply",
        updated_by: Optional[str] = None,
    ) -> StoredSettings:
        """
        Save the last-declared settings for a policy.

        Args:
            policy_id: Policy identifier
            settings: Declared settings as submitted
            source: Source of the change (apply, import)
            updated_by: User/system that made the change

        Returns:
            StoredSettings with metadata
        """
        existing = self.get_stored(policy_id)
        version = (existing.version + 1) if existing else 1

        entries = settings_to_config(settings)

        stored = StoredSettings(
            policy_id=policy_id,
            settings=entries,
            version=version,
            checksum=compute_checksum(entries),
            updated_at=datetime.now(timezone.utc),
            updated_by=updated_by,
            source=source,
        )

        path = self.declared_dir / f"{policy_id}.yaml"
        path.write_text(stored.to_yaml())

        logger.info(f"Saved declared state for {policy_id} (v{version}, {len(entries)} settings)")
        return stored

    def list_policies(self) -> list[str]:
        """List all policy IDs with stored state."""
        return sorted(p.stem for p in self.declared_dir.glob("*.yaml"))

    def delete_declared(self, policy_id: str) -> bool:
        """Delete stored state for a policy."""
        path = self.declared_dir / f"{policy_id}.yaml"
        if path.exists():
            path.unlink()
            logger.info(f"Deleted declared state for {policy_id}")
            return True
        return False

    # === Drift Reports ===

    def save_drift_report(self, report: DriftReport) -> Path:
        """Save the latest drift report for a policy."""
        path = self.drift_reports_dir / f"{report.policy_id}.yaml"
        path.write_text(yaml.safe_dump(report.to_dict(), default_flow_style=False, sort_keys=False))
        logger.debug(f"Saved drift report for {report.policy_id}")
        return path

    def get_drift_report(self, policy_id: str) -> Optional[dict[str, Any]]:
        """Get the latest drift report for a policy as a dict."""
        path = self.drift_reports_dir / f"{policy_id}.yaml"
        if not path.exists():
            return None
        return yaml.safe_load(path.read_text())
