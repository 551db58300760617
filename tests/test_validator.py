"""Tests for pre-flight settings validation."""
import pytest
from settings_catalog.config_engine import (
    BooleanPolicy,
    ChildSetting,
    CodecOptions,
    DeclaredSetting,
    DesiredSettings,
    SettingsValidator,
    ValueKind,
)
from settings_catalog.config_engine.validator import LARGE_SETTING_COUNT


def desired(*settings):
    return DesiredSettings(policy_id="p-1", settings=list(settings))


class TestSettingsValidator:
    """Tests for SettingsValidator."""

    @pytest.fixture
    def validator(self):
        return SettingsValidator()

    def test_valid_settings(self, validator):
        result = validator.validate(desired(
            DeclaredSetting.of("a", ValueKind.INTEGER, "10"),
            DeclaredSetting.of("b", ValueKind.BOOLEAN, "true"),
            DeclaredSetting.of("c", ValueKind.CHOICE, "c_1"),
        ))

        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_invalid_integer(self, validator):
        result = validator.validate(desired(DeclaredSetting.of("a", ValueKind.INTEGER, "ten")))

        assert not result.valid
        assert "invalid integer" in result.errors[0]
        assert "not_an_integer" in result.errors[0]

    def test_invalid_child_integer(self, validator):
        result = validator.validate(desired(
            DeclaredSetting.of("g", ValueKind.GROUP, children=[ChildSetting("g_n", ValueKind.INTEGER, "9" * 30)]),
        ))

        assert not result.valid
        assert "child g_n" in result.errors[0]
        assert "out_of_range" in result.errors[0]

    def test_non_literal_boolean_warns(self, validator):
        """Under the default policy a non-literal boolean is sent as false."""
        result = validator.validate(desired(DeclaredSetting.of("b", ValueKind.BOOLEAN, "yes")))

        assert result.valid
        assert "will be sent as false" in result.warnings[0]

    def test_non_literal_boolean_strict(self):
        validator = SettingsValidator(CodecOptions(boolean_policy=BooleanPolicy.STRICT))

        result = validator.validate(desired(DeclaredSetting.of("b", ValueKind.BOOLEAN, "yes")))

        assert not result.valid
        assert "invalid boolean" in result.errors[0]

    def test_empty_choice(self, validator):
        result = validator.validate(desired(DeclaredSetting.of("c", ValueKind.CHOICE, "")))
        assert not result.valid

    def test_empty_child_choice_warns(self, validator):
        """An empty child choice is accepted with a warning."""
        result = validator.validate(desired(
            DeclaredSetting.of("c", ValueKind.CHOICE, "c_1", [ChildSetting("c_x", ValueKind.CHOICE, "")]),
        ))

        assert result.valid
        assert result.warnings == ["Setting #0 c child c_x: child choice has an empty value"]

    def test_foreign_choice_option_warns(self, validator):
        result = validator.validate(desired(DeclaredSetting.of("c", ValueKind.CHOICE, "other_1")))

        assert result.valid
        assert "does not look like an option" in result.warnings[0]

    def test_empty_group_warns(self, validator):
        result = validator.validate(desired(DeclaredSetting.of("g", ValueKind.GROUP)))

        assert result.valid
        assert "group has no children" in result.warnings[0]

    def test_empty_definition_id(self, validator):
        result = validator.validate(desired(DeclaredSetting.of("  ", ValueKind.STRING, "x")))
        assert not result.valid

    def test_duplicate_ids_warn(self, validator):
        """Repeated ids are legal, order decides, but likely a mistake."""
        result = validator.validate(desired(
            DeclaredSetting.of("a", ValueKind.STRING, "1"),
            DeclaredSetting.of("b", ValueKind.STRING, "2"),
            DeclaredSetting.of("a", ValueKind.STRING, "3"),
        ))

        assert result.valid
        assert result.warnings == ["Setting #2 a repeats setting #0"]

    def test_large_list_warns(self, validator):
        settings = [
            DeclaredSetting.of(f"s{i}", ValueKind.STRING, "x")
            for i in range(LARGE_SETTING_COUNT + 1)
        ]

        result = validator.validate(desired(*settings))

        assert result.valid
        assert any("Large setting list" in w for w in result.warnings)

    def test_empty_list_valid(self, validator):
        assert validator.validate(desired()).valid
