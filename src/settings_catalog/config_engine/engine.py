"""Settings reconciler - orchestrates the apply/read/drift workflow.

Provides a single entry point for:
1. Parsing declared settings
2. Validating values
3. Encoding to wire nodes
4. Submitting as one bulk replace
5. Reading back and detecting drift

Writes always replace the complete setting list. The service offers no
stable per-element identity to patch against, so drift is derived purely
from decoded read-back and never auto-corrected.
"""
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..backends import BackendError, PolicyNotFoundError, SettingsBackend
from ..utils.logging_config import timed_section
from .codec import SettingCodec, SettingListError
from .diff import DriftEngine, summarize_drift
from .parser import ParseError, SettingsParser
from .schema import (
    ApplyOptions,
    CodecOptions,
    DeclaredSetting,
    DesiredSettings,
    DriftReport,
    ReconcileResult,
    ResourceState,
    ValidationResult,
)
from .validator import SettingsValidator
from .wire import settings_from_graph, settings_to_graph

if TYPE_CHECKING:
    from ..config_store import StateStore

logger = logging.getLogger(__name__)


class SettingsReconciler:
    """
    Reconcile declared setting lists with a policy on the service.

    Usage:
        reconciler = SettingsReconciler(backend, store=StateStore())
        result = await reconciler.apply(policy_id, settings)
        drift = await reconciler.detect_drift(policy_id)
    """

    def __init__(
        self,
        backend: SettingsBackend,
        options: Optional[CodecOptions] = None,
        store: Optional["StateStore"] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            backend: Transport to the settings service
            options: Codec options (boolean and nested-child policies)
            store: State store for last-declared settings (optional)
        """
        self.backend = backend
        self.options = options or CodecOptions()
        self.store = store
        self.parser = SettingsParser()
        self.codec = SettingCodec(self.options)
        self.validator = SettingsValidator(self.options)
        self.drift_engine = DriftEngine(self.codec)

    async def apply_config(
        self,
        config: dict[str, Any],
        options: Optional[ApplyOptions] = None,
    ) -> ReconcileResult:
        """Parse a declared config dict and apply it."""
        try:
            desired = self.parser.parse(config)
        except ParseError as e:
            result = ReconcileResult(
                policy_id=str(config.get("policy_id") or config.get("policy") or ""),
                dry_run=bool(options and options.dry_run),
            )
            result.error = f"Parse error: {e}"
            return result

        return await self.apply(desired.policy_id, desired.settings, options)

    async def apply(
        self,
        policy_id: str,
        settings: list[DeclaredSetting],
        options: Optional[ApplyOptions] = None,
    ) -> ReconcileResult:
        """
        Apply a declared setting list to a policy as one bulk replace.

        This is the main entry point. It:
        1. Validates values
        2. Encodes the list into wire nodes
        3. Replaces the policy's settings (or, on dry run, diffs only)
        4. Records the list as last-declared

        Returns:
            ReconcileResult; ``error`` is set instead of raising
        """
        options = options or ApplyOptions()
        result = ReconcileResult(
            policy_id=policy_id,
            state=ResourceState.DECLARED,
            dry_run=options.dry_run,
            settings=list(settings),
        )

        # Step 1: Validate
        validation = self.validate(DesiredSettings(policy_id=policy_id, settings=list(settings)))
        result.warnings.extend(validation.warnings)
        if not validation.valid:
            result.error = f"Validation failed: {'; '.join(validation.errors)}"
            return result

        # Step 2: Encode
        try:
            nodes = self.codec.encode_all(settings)
        except SettingListError as e:
            result.error = f"Encode error: {e}"
            return result
        body = settings_to_graph(nodes)

        # Step 3: Dry run stops at a diff against the current settings
        if options.dry_run:
            try:
                result.drift = await self._compare(policy_id, list(settings))
            except PolicyNotFoundError as e:
                result.error = str(e)
                return result
            except (BackendError, SettingListError) as e:
                result.error = f"Failed to read current settings: {e}"
                return result
            result.settings_submitted = len(body)
            result.success = True
            return result

        # Step 3: Bulk replace
        logger.info(f"Replacing settings of policy {policy_id} with {len(body)} entries")
        try:
            async with self.backend:
                async with timed_section("apply", policy_id=policy_id, settings=len(body)):
                    await self.backend.replace_settings(policy_id, body)
        except PolicyNotFoundError as e:
            result.error = str(e)
            return result
        except BackendError as e:
            result.error = f"Failed to replace settings: {e}"
            return result

        result.settings_submitted = len(body)
        result.state = ResourceState.APPLIED
        result.success = True

        # Step 4: Record last-declared
        if self.store is not None and options.record_state:
            self.store.save_declared(policy_id, list(settings), source="apply", updated_by=options.user)

        return result

    async def read(self, policy_id: str) -> ReconcileResult:
        """
        Read and decode a policy's current settings.

        A missing policy or an empty setting list reads as ABSENT.
        """
        result = ReconcileResult(policy_id=policy_id)

        try:
            remote = await self._read_remote(policy_id)
        except (BackendError, SettingListError) as e:
            result.error = f"Failed to read settings: {e}"
            return result

        result.success = True
        if not remote:
            result.state = ResourceState.ABSENT
            return result

        result.settings = remote
        result.state = ResourceState.APPLIED
        logger.debug(f"Read {len(remote)} settings from policy {policy_id}")
        return result

    async def import_settings(self, policy_id: str, user: Optional[str] = None) -> ReconcileResult:
        """Read a policy's settings and adopt them as last-declared."""
        result = await self.read(policy_id)
        if result.success and result.settings and self.store is not None:
            self.store.save_declared(policy_id, result.settings, source="import", updated_by=user)
        return result

    async def detect_drift(
        self,
        policy_id: str,
        declared: Optional[list[DeclaredSetting]] = None,
    ) -> ReconcileResult:
        """
        Compare remote settings against the last-declared list.

        Args:
            policy_id: Policy to check
            declared: Expected settings; defaults to the stored last-declared list

        Returns:
            ReconcileResult in state APPLIED (in sync), DRIFTED or ABSENT
        """
        result = ReconcileResult(policy_id=policy_id)

        expected = declared
        if expected is None and self.store is not None:
            expected = self.store.get_declared(policy_id)
        if expected is None:
            result.error = f"No declared settings known for policy {policy_id}"
            return result

        result.settings = list(expected)
        policy_missing = False
        try:
            remote = await self._read_remote(policy_id)
        except (BackendError, SettingListError) as e:
            result.error = f"Failed to read settings: {e}"
            return result
        if remote is None:
            policy_missing = True
            remote = []

        try:
            drift = self.drift_engine.compare(policy_id, list(expected), remote)
        except SettingListError as e:
            result.error = f"Declared settings do not encode: {e}"
            return result

        result.drift = drift
        result.success = True
        if policy_missing or (not remote and not expected):
            result.state = ResourceState.ABSENT
        elif drift.in_sync:
            result.state = ResourceState.APPLIED
        else:
            result.state = ResourceState.DRIFTED
            logger.warning(summarize_drift(drift))

        if self.store is not None:
            self.store.save_drift_report(drift)

        return result

    async def clear(self, policy_id: str) -> ReconcileResult:
        """
        Clear all settings of a policy with an empty bulk replace.

        The policy object itself is kept. A missing policy counts as cleared.
        """
        result = ReconcileResult(policy_id=policy_id)

        try:
            async with self.backend:
                await self.backend.replace_settings(policy_id, [])
        except PolicyNotFoundError:
            logger.info(f"Policy {policy_id} not found while clearing; nothing to do")
        except BackendError as e:
            result.error = f"Failed to clear settings: {e}"
            return result

        result.state = ResourceState.ABSENT
        result.success = True

        if self.store is not None:
            self.store.delete_declared(policy_id)

        return result

    def validate(self, desired: DesiredSettings) -> ValidationResult:
        """Validate declared settings (for external use)."""
        return self.validator.validate(desired)

    async def preview(self, policy_id: str, settings: list[DeclaredSetting]) -> str:
        """
        Preview drift without applying.

        Returns human-readable drift summary.
        """
        validation = self.validate(DesiredSettings(policy_id=policy_id, settings=list(settings)))
        if not validation.valid:
            return "Validation failed:\n" + "\n".join(validation.errors)

        drift = await self._compare(policy_id, list(settings))
        summary = summarize_drift(drift)

        if validation.warnings:
            summary += "\n\nWarnings:\n" + "\n".join(
                f"  - {w}" for w in validation.warnings
            )

        return summary

    async def _read_remote(self, policy_id: str) -> Optional[list[DeclaredSetting]]:
        """Fetch and decode remote settings; None if the policy is gone."""
        try:
            async with self.backend:
                envelopes = await self.backend.get_settings(policy_id)
        except PolicyNotFoundError:
            logger.info(f"Policy {policy_id} not found")
            return None

        return self.codec.decode_all(settings_from_graph(envelopes))

    async def _compare(self, policy_id: str, settings: list[DeclaredSetting]) -> DriftReport:
        async with self.backend:
            envelopes = await self.backend.get_settings(policy_id)
        remote = self.codec.decode_all(settings_from_graph(envelopes))
        return self.drift_engine.compare(policy_id, settings, remote)
