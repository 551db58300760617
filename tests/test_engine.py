"""Tests for the settings reconciler workflow.

Uses the in-memory backend so no service is required.
"""
import pytest
from settings_catalog.backends import InMemoryBackend
from settings_catalog.config_engine import (
    ApplyOptions,
    ChildSetting,
    DeclaredSetting,
    ResourceState,
    SettingCodec,
    SettingsReconciler,
    ValueKind,
    settings_to_graph,
)
from settings_catalog.config_engine.wire import GROUP_INSTANCE_TYPE, SETTING_TYPE
from settings_catalog.config_store import StateStore

POLICY = "0f7c6a0e-1111-4b0e-9c1d-000000000001"


def declared():
    return [
        DeclaredSetting.of("av_cpuload", ValueKind.INTEGER, "50"),
        DeclaredSetting.of("av_realtime", ValueKind.BOOLEAN, "true"),
        DeclaredSetting.of("av_cloud", ValueKind.CHOICE, "av_cloud_1", [
            ChildSetting("av_cloud_timeout", ValueKind.INTEGER, "30"),
        ]),
        DeclaredSetting.of("av_paths", ValueKind.COLLECTION, ["C:\\a", "C:\\b"]),
    ]


def as_graph(settings):
    return settings_to_graph(SettingCodec().encode_all(settings))


@pytest.fixture
def backend():
    backend = InMemoryBackend()
    backend.create_policy(POLICY)
    return backend


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path)


@pytest.fixture
def reconciler(backend, store):
    return SettingsReconciler(backend, store=store)


class TestApply:
    """Bulk replace of the whole setting list."""

    @pytest.mark.asyncio
    async def test_apply_replaces_settings(self, reconciler, backend):
        result = await reconciler.apply(POLICY, declared())

        assert result.success, result.error
        assert result.state == ResourceState.APPLIED
        assert result.settings_submitted == 4
        assert len(backend.writes) == 1
        assert backend.writes[0] == (POLICY, as_graph(declared()))

    @pytest.mark.asyncio
    async def test_apply_records_state(self, reconciler, store):
        await reconciler.apply(POLICY, declared(), ApplyOptions(user="ops"))

        stored = store.get_stored(POLICY)
        assert stored.version == 1
        assert stored.updated_by == "ops"
        assert store.get_declared(POLICY) == declared()

    @pytest.mark.asyncio
    async def test_apply_without_recording(self, reconciler, store):
        await reconciler.apply(POLICY, declared(), ApplyOptions(record_state=False))
        assert store.get_stored(POLICY) is None

    @pytest.mark.asyncio
    async def test_apply_then_read_round_trip(self, reconciler):
        await reconciler.apply(POLICY, declared())

        result = await reconciler.read(POLICY)

        assert result.state == ResourceState.APPLIED
        assert result.settings == declared()

    @pytest.mark.asyncio
    async def test_apply_shrinks_list(self, reconciler, backend):
        """Removed settings disappear; there is no merge with remote state."""
        await reconciler.apply(POLICY, declared())
        await reconciler.apply(POLICY, declared()[:1])

        assert backend.writes[-1][1] == as_graph(declared()[:1])

    @pytest.mark.asyncio
    async def test_apply_empty_group_omits_children(self, reconciler, backend):
        await reconciler.apply(POLICY, [DeclaredSetting.of("grp", ValueKind.GROUP)])

        envelope = backend.writes[0][1][0]
        assert envelope["@odata.type"] == SETTING_TYPE
        assert envelope["settingInstance"]["@odata.type"] == GROUP_INSTANCE_TYPE
        assert "children" not in envelope["settingInstance"]["groupSettingValue"]

    @pytest.mark.asyncio
    async def test_validation_failure_sends_nothing(self, reconciler, backend):
        result = await reconciler.apply(POLICY, [DeclaredSetting.of("n", ValueKind.INTEGER, "abc")])

        assert not result.success
        assert result.error.startswith("Validation failed")
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_missing_policy(self, reconciler):
        result = await reconciler.apply("does-not-exist", declared())

        assert not result.success
        assert "Policy not found" in result.error

    @pytest.mark.asyncio
    async def test_lenient_boolean_warns_and_applies(self, reconciler, backend):
        result = await reconciler.apply(POLICY, [DeclaredSetting.of("b", ValueKind.BOOLEAN, "yes")])

        assert result.success
        assert result.warnings
        instance = backend.writes[0][1][0]["settingInstance"]
        assert instance["simpleSettingValue"]["value"] is False

    @pytest.mark.asyncio
    async def test_dry_run(self, reconciler, backend, store):
        result = await reconciler.apply(POLICY, declared(), ApplyOptions(dry_run=True))

        assert result.success
        assert result.dry_run
        assert result.drift.drift_count == 4
        assert backend.writes == []
        assert store.get_stored(POLICY) is None

    @pytest.mark.asyncio
    async def test_apply_config(self, reconciler, backend):
        result = await reconciler.apply_config({
            "policy_id": POLICY,
            "settings": [{"definition_id": "a", "value_type": "integer", "value": 3}],
        })

        assert result.success
        assert backend.writes[0][1][0]["settingInstance"]["simpleSettingValue"]["value"] == 3

    @pytest.mark.asyncio
    async def test_apply_config_parse_error(self, reconciler):
        result = await reconciler.apply_config({"policy_id": POLICY, "mode": "merge"})

        assert not result.success
        assert result.error.startswith("Parse error")


class TestRead:
    """Reading and importing remote settings."""

    @pytest.mark.asyncio
    async def test_read_empty_policy_is_absent(self, reconciler):
        result = await reconciler.read(POLICY)

        assert result.success
        assert result.state == ResourceState.ABSENT

    @pytest.mark.asyncio
    async def test_read_missing_policy_is_absent(self, reconciler):
        result = await reconciler.read("gone")
        assert result.state == ResourceState.ABSENT

    @pytest.mark.asyncio
    async def test_read_nested_child_fails(self, backend, store):
        backend.create_policy("nested", [{
            "@odata.type": SETTING_TYPE,
            "settingInstance": {
                "settingDefinitionId": "outer",
                "groupSettingValue": {"children": [{
                    "settingInstance": {
                        "settingDefinitionId": "inner",
                        "groupSettingValue": {},
                    },
                }]},
            },
        }])
        reconciler = SettingsReconciler(backend, store=store)

        result = await reconciler.read("nested")

        assert not result.success
        assert "inner" in result.error

    @pytest.mark.asyncio
    async def test_import(self, backend, store):
        backend.create_policy("existing", as_graph(declared()))
        reconciler = SettingsReconciler(backend, store=store)

        result = await reconciler.import_settings("existing", user="ops")

        assert result.success
        assert store.get_stored("existing").source == "import"
        assert store.get_declared("existing") == declared()


class TestDriftDetection:
    """Drift between last-declared and remote settings."""

    @pytest.mark.asyncio
    async def test_in_sync_after_apply(self, reconciler):
        await reconciler.apply(POLICY, declared())

        result = await reconciler.detect_drift(POLICY)

        assert result.success
        assert result.state == ResourceState.APPLIED
        assert result.drift.in_sync

    @pytest.mark.asyncio
    async def test_out_of_band_change(self, reconciler, backend, store):
        await reconciler.apply(POLICY, declared())
        changed = declared()
        changed[0] = DeclaredSetting.of("av_cpuload", ValueKind.INTEGER, "80")
        backend.create_policy(POLICY, as_graph(changed))

        result = await reconciler.detect_drift(POLICY)

        assert result.state == ResourceState.DRIFTED
        assert result.drift.items[0].definition_id == "av_cpuload"
        assert store.get_drift_report(POLICY)["in_sync"] is False

    @pytest.mark.asyncio
    async def test_canonical_value_is_not_drift(self, reconciler):
        """A lossy coercion that reads back stably is not drift."""
        settings = [DeclaredSetting.of("n", ValueKind.INTEGER, "007")]
        await reconciler.apply(POLICY, settings)

        result = await reconciler.detect_drift(POLICY)

        assert result.state == ResourceState.APPLIED

    @pytest.mark.asyncio
    async def test_policy_deleted(self, reconciler, backend):
        await reconciler.apply(POLICY, declared())
        backend.delete_policy(POLICY)

        result = await reconciler.detect_drift(POLICY)

        assert result.state == ResourceState.ABSENT
        assert result.drift.drift_count == 4

    @pytest.mark.asyncio
    async def test_unrepresentable_remote_child_is_not_in_sync(self, backend):
        """Remote content the declared model cannot hold fails the check."""
        expected = [DeclaredSetting.of("parent", ValueKind.CHOICE, "parent_1")]
        backend.create_policy("p3", [{
            "@odata.type": SETTING_TYPE,
            "settingInstance": {
                "settingDefinitionId": "parent",
                "choiceSettingValue": {
                    "value": "parent_1",
                    "children": [{"settingInstance": {
                        "@odata.type": "#microsoft.graph.deviceManagementConfigurationGroupSettingCollectionInstance",
                        "settingDefinitionId": "nested_gc",
                        "groupSettingCollectionValue": [],
                    }}],
                },
            },
        }])
        reconciler = SettingsReconciler(backend)

        result = await reconciler.detect_drift("p3", expected)

        assert not result.success
        assert result.state != ResourceState.APPLIED
        assert "nested_gc" in result.error

    @pytest.mark.asyncio
    async def test_explicit_declared(self, backend):
        backend.create_policy("p2", as_graph(declared()))
        reconciler = SettingsReconciler(backend)

        result = await reconciler.detect_drift("p2", declared())

        assert result.state == ResourceState.APPLIED

    @pytest.mark.asyncio
    async def test_nothing_declared(self, reconciler):
        result = await reconciler.detect_drift(POLICY)

        assert not result.success
        assert "No declared settings" in result.error

    @pytest.mark.asyncio
    async def test_preview(self, reconciler):
        summary = await reconciler.preview(POLICY, [DeclaredSetting.of("b", ValueKind.BOOLEAN, "yes")])

        assert "drift detected (1 total)" in summary
        assert "Warnings:" in summary


class TestClear:
    """Clearing a policy's settings."""

    @pytest.mark.asyncio
    async def test_clear(self, reconciler, backend, store):
        await reconciler.apply(POLICY, declared())

        result = await reconciler.clear(POLICY)

        assert result.success
        assert result.state == ResourceState.ABSENT
        assert backend.writes[-1] == (POLICY, [])
        assert store.get_stored(POLICY) is None

    @pytest.mark.asyncio
    async def test_clear_missing_policy(self, reconciler):
        result = await reconciler.clear("gone")
        assert result.success
