"""Tests for the last-declared state store."""
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from settings_catalog.config_engine import (
    ChildSetting,
    DeclaredSetting,
    DriftEngine,
    ValueKind,
)
from settings_catalog.config_store import StateStore, StoredSettings


def declared():
    return [
        DeclaredSetting.of("a", ValueKind.STRING, "x"),
        DeclaredSetting.of("c", ValueKind.CHOICE, "c_1", [ChildSetting("c_n", ValueKind.INTEGER, "5")]),
        DeclaredSetting.of("l", ValueKind.COLLECTION, ["one", "two"]),
    ]


class TestStoredSettings:
    """Tests for StoredSettings dataclass."""

    def test_to_yaml(self):
        """Test serialization to YAML."""
        stored = StoredSettings(
            policy_id="p-1",
            settings=[{"definition_id": "a", "value_type": "string", "value": "x"}],
            version=2,
            checksum="sha256:abc123",
            updated_at=datetime(2026, 1, 13, 10, 0, 0),
            updated_by="ops",
            source="import",
        )

        yaml_str = stored.to_yaml()

        assert "policy_id: p-1" in yaml_str
        assert "version: 2" in yaml_str
        assert "sha256:abc123" in yaml_str
        assert "source: import" in yaml_str
        assert "definition_id: a" in yaml_str

    def test_from_yaml(self):
        """Test parsing from YAML."""
        yaml_str = """
policy_id: p-1
version: 3
checksum: sha256:def456
updated_at: '2026-01-13T10:00:00'
updated_by: admin
source: apply
settings:
  - definition_id: a
    value_type: integer
    value: "7"
"""

        stored = StoredSettings.from_yaml(yaml_str, "p-1")

        assert stored.version == 3
        assert stored.checksum == "sha256:def456"
        assert stored.updated_at == datetime(2026, 1, 13, 10, 0, 0)
        assert stored.updated_by == "admin"
        assert stored.declared_settings() == [DeclaredSetting.of("a", ValueKind.INTEGER, "7")]

    def test_from_yaml_bad_timestamp(self):
        stored = StoredSettings.from_yaml("updated_at: yesterday\n", "p-1")
        assert stored.updated_at is None
        assert stored.settings == []


class TestStateStore:
    """Tests for StateStore."""

    @pytest.fixture
    def store(self):
        """Create a temporary state store."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield StateStore(Path(tmpdir))

    def test_directories_created(self, store):
        assert store.declared_dir.is_dir()
        assert store.drift_reports_dir.is_dir()

    def test_save_and_get(self, store):
        stored = store.save_declared("p-1", declared(), updated_by="ops")

        assert stored.version == 1
        assert stored.checksum.startswith("sha256:")
        assert store.get_declared("p-1") == declared()
        assert store.get_stored("p-1").updated_by == "ops"

    def test_version_increments(self, store):
        store.save_declared("p-1", declared())
        stored = store.save_declared("p-1", declared()[:1])

        assert stored.version == 2
        assert store.get_declared("p-1") == declared()[:1]

    def test_empty_list_is_stored(self, store):
        """An empty declared list is state, not absence of state."""
        store.save_declared("p-1", [])
        assert store.get_declared("p-1") == []

    def test_get_missing(self, store):
        assert store.get_stored("nope") is None
        assert store.get_declared("nope") is None

    def test_invalid_stored_settings(self, store):
        (store.declared_dir / "p-1.yaml").write_text(
            "settings:\n  - definition_id: a\n    value_type: float\n"
        )
        assert store.get_declared("p-1") is None

    def test_list_and_delete(self, store):
        store.save_declared("b", declared())
        store.save_declared("a", declared())

        assert store.list_policies() == ["a", "b"]
        assert store.delete_declared("a")
        assert not store.delete_declared("a")
        assert store.list_policies() == ["b"]

    def test_drift_report(self, store):
        report = DriftEngine().compare("p-1", declared(), [])

        path = store.save_drift_report(report)

        assert path.exists()
        data = store.get_drift_report("p-1")
        assert data["policy_id"] == "p-1"
        assert data["in_sync"] is False
        assert len(data["items"]) == 3

    def test_drift_report_missing(self, store):
        assert store.get_drift_report("p-1") is None

    def test_updated_at_is_utc(self, store):
        stored = store.save_declared("p-1", declared())
        reloaded = store.get_stored("p-1")

        assert stored.updated_at.tzinfo == timezone.utc
        assert reloaded.updated_at == stored.updated_at
