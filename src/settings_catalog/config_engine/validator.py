"""Pre-flight validation for declared settings.

Catches value errors before any call to the service.
"""
from typing import Optional, Union

from .coercion import CoercionError, parse_integer
from .schema import (
    BooleanPolicy,
    ChildSetting,
    CodecOptions,
    DeclaredSetting,
    DesiredSettings,
    ValidationResult,
    ValueKind,
)

# Above this many settings a single bulk replace gets hard to review
LARGE_SETTING_COUNT = 100

BOOLEAN_LITERALS = ("true", "false")


class SettingsValidator:
    """Validate declared settings for value errors before submission."""

    def __init__(self, options: Optional[CodecOptions] = None):
        """
        Initialize validator.

        Args:
            options: Codec options; the boolean policy decides whether a
                non-literal boolean is a warning or an error
        """
        self.options = options or CodecOptions()

    def validate(self, desired: DesiredSettings) -> ValidationResult:
        """
        Validate a declared setting list.

        Performs pre-flight checks:
        - Integer values parse as signed 64-bit
        - Boolean values are literal "true"/"false"
        - Choice values are present
        - Duplicate definition ids
        - Setting count

        Args:
            desired: The declared settings to validate

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        for index, setting in enumerate(desired.settings):
            self._validate_setting(index, setting, errors, warnings)

        self._check_duplicates(desired, warnings)
        self._check_change_size(desired, warnings)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _validate_setting(
        self,
        index: int,
        setting: DeclaredSetting,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        """Validate one top-level setting and its children."""
        label = f"Setting #{index} {setting.definition_id}"

        if not setting.definition_id or not setting.definition_id.strip():
            errors.append(f"Setting #{index} has an empty definition_id")
            return

        if setting.value_kind == ValueKind.GROUP and not setting.children:
            warnings.append(f"{label}: group has no children")

        self._validate_value(label, setting, errors, warnings)

        for child in setting.children:
            self._validate_value(f"{label} child {child.definition_id}", child, errors, warnings)

    def _validate_value(
        self,
        label: str,
        setting: Union[DeclaredSetting, ChildSetting],
        errors: list[str],
        warnings: list[str]
    ) -> None:
        value = setting.value

        if setting.value_kind == ValueKind.INTEGER:
            try:
                parse_integer(value)
            except CoercionError as e:
                errors.append(f"{label}: invalid integer {value!r} ({e.reason.value})")

        elif setting.value_kind == ValueKind.BOOLEAN:
            if value not in BOOLEAN_LITERALS:
                if self.options.boolean_policy == BooleanPolicy.STRICT:
                    errors.append(f"{label}: invalid boolean {value!r}")
                else:
                    warnings.append(
                        f"{label}: boolean {value!r} is not 'true' or 'false' "
                        f"and will be sent as false"
                    )

        elif setting.value_kind == ValueKind.CHOICE:
            if not value:
                # Children may legitimately carry an empty option
                if isinstance(setting, ChildSetting):
                    warnings.append(f"{label}: child choice has an empty value")
                else:
                    errors.append(f"{label}: choice setting has no value")
            elif not value.startswith(setting.definition_id):
                warnings.append(
                    f"{label}: choice value {value} does not look like an "
                    f"option of {setting.definition_id}"
                )

    def _check_duplicates(
        self,
        desired: DesiredSettings,
        warnings: list[str]
    ) -> None:
        """Warn about repeated definition ids (allowed, but usually a mistake)."""
        seen: dict[str, int] = {}
        for index, setting in enumerate(desired.settings):
            if setting.definition_id in seen:
                warnings.append(
                    f"Setting #{index} {setting.definition_id} repeats "
                    f"setting #{seen[setting.definition_id]}"
                )
            else:
                seen[setting.definition_id] = index

    def _check_change_size(
        self,
        desired: DesiredSettings,
        warnings: list[str]
    ) -> None:
        """Warn about large setting lists."""
        total = len(desired.settings)
        if total > LARGE_SETTING_COUNT:
            warnings.append(
                f"Large setting list ({total} settings) - consider splitting the policy"
            )
