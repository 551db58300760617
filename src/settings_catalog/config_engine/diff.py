"""Drift engine for comparing declared settings against read-back state.

Settings are aligned by definition id (ids may repeat, so the alignment
is positional, not keyed) and aligned pairs are compared structurally.
"""
from datetime import datetime, timezone
from difflib import SequenceMatcher
from typing import Optional

from .codec import SettingCodec
from .schema import (
    DeclaredSetting,
    DriftItem,
    DriftReport,
    DriftType,
)


def _describe_changes(expected: DeclaredSetting, actual: DeclaredSetting) -> str:
    """Describe which parts of an aligned pair differ."""
    parts = []

    if expected.value_kind != actual.value_kind:
        parts.append(f"value_type: {expected.value_kind.value} -> {actual.value_kind.value}")
    elif expected.value != actual.value:
        parts.append(f"value: {expected.value!r} -> {actual.value!r}")

    if expected.children != actual.children:
        expected_ids = [c.definition_id for c in expected.children]
        actual_ids = [c.definition_id for c in actual.children]
        if expected_ids != actual_ids:
            parts.append(f"children: {expected_ids} -> {actual_ids}")
        else:
            for want, got in zip(expected.children, actual.children):
                if want != got:
                    parts.append(f"child {want.definition_id}: {want.value!r} -> {got.value!r}")

    return "; ".join(parts)


class DriftEngine:
    """Calculate drift between declared and remote settings."""

    def __init__(self, codec: Optional[SettingCodec] = None):
        self.codec = codec or SettingCodec()

    def compare(
        self,
        policy_id: str,
        expected: list[DeclaredSetting],
        actual: list[DeclaredSetting],
        canonicalize: bool = True,
    ) -> DriftReport:
        """
        Compare declared settings with decoded remote settings.

        Args:
            policy_id: Policy the settings belong to
            expected: Last-declared settings
            actual: Settings decoded from the service
            canonicalize: Pass expected through the codec first so that
                stable coercions ("007" -> "7") are not reported

        Returns:
            DriftReport listing missing, extra and modified settings

        Raises:
            SettingListError: If expected settings do not encode
        """
        if canonicalize:
            expected = self.codec.canonicalize(expected)

        report = DriftReport(policy_id=policy_id, checked_at=datetime.now(timezone.utc))

        matcher = SequenceMatcher(
            a=[s.definition_id for s in expected],
            b=[s.definition_id for s in actual],
            autojunk=False,
        )

        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                for offset in range(i2 - i1):
                    want = expected[i1 + offset]
                    got = actual[j1 + offset]
                    if want != got:
                        report.items.append(DriftItem(
                            definition_id=want.definition_id,
                            drift_type=DriftType.MODIFIED,
                            position=i1 + offset,
                            expected=want,
                            actual=got,
                            details=_describe_changes(want, got),
                        ))
                continue

            # replace/delete/insert: unmatched on one or both sides
            for index in range(i1, i2):
                report.items.append(DriftItem(
                    definition_id=expected[index].definition_id,
                    drift_type=DriftType.MISSING,
                    position=index,
                    expected=expected[index],
                ))
            for index in range(j1, j2):
                report.items.append(DriftItem(
                    definition_id=actual[index].definition_id,
                    drift_type=DriftType.EXTRA,
                    position=index,
                    actual=actual[index],
                ))

        return report


def summarize_drift(report: DriftReport) -> str:
    """
    Create a human-readable summary of a drift report.

    Useful for dry-run output and logging.
    """
    if report.in_sync:
        return f"{report.policy_id}: no drift - remote settings match declared settings"

    lines = [f"{report.policy_id}: drift detected ({report.drift_count} total):", ""]

    for item in report.items:
        if item.drift_type == DriftType.MISSING:
            lines.append(f"  [+] #{item.position} {item.definition_id} (declared, not on service)")
        elif item.drift_type == DriftType.EXTRA:
            lines.append(f"  [-] #{item.position} {item.definition_id} (on service, not declared)")
        else:
            lines.append(f"  [~] #{item.position} {item.definition_id}")
            if item.details:
                lines.append(f"      {item.details}")

    return "\n".join(lines)
