"""
Compliance Engine: Main Entry Point
===================================
Owns one EngineState and serializes every call through a single lock,
so no caller ever observes a partially applied transition.

Mutating calls return a Result. Read accessors return the value or
None and never raise for "not found".
"""

from __future__ import annotations

import threading
from typing import Iterable

from crop_compliance.engine import access, catalog, rules, verifier
from crop_compliance.engine.errors import Result
from crop_compliance.engine.models import (
    CropCompliance,
    Rule,
    Standard,
    Submission,
    Verification,
)
from crop_compliance.engine.rules import DEFAULT_LIMITS, RuleLimits
from crop_compliance.engine.state import EngineState
from crop_compliance.utils.helpers import rule_key
from crop_compliance.utils.log import get_logger

logger = get_logger(__name__)


class ComplianceEngine:
    """Rule store, access control and verification over one state instance."""

    def __init__(
        self,
        admin: str | None = None,
        *,
        state: EngineState | None = None,
        limits: RuleLimits = DEFAULT_LIMITS,
        initial_version: int = 1,
    ) -> None:
        if state is None:
            if admin is None:
                raise ValueError("either admin or state is required")
            state = EngineState(admin=admin, version=initial_version)
        self._state = state
        self._limits = limits
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, state: EngineState | None = None) -> ComplianceEngine:
        """Build an engine using config/settings.yaml and env overrides."""
        from crop_compliance.config import get_settings

        eng = get_settings().engine
        limits = RuleLimits(
            max_rules_per_standard=eng.max_rules_per_standard,
            max_description_length=eng.max_description_length,
            max_categories=eng.max_categories,
            max_category_length=eng.max_category_length,
        )
        return cls(eng.admin, state=state, limits=limits, initial_version=eng.initial_version)

    @property
    def limits(self) -> RuleLimits:
        return self._limits

    def _log_result(self, action: str, caller: str, result: Result, subject: str = "") -> Result:
        if result.ok:
            logger.info("%s %s by %s", action, subject, caller)
        else:
            logger.warning("%s %s by %s rejected: %s", action, subject, caller, result.error.name)
        return result

    # ── Access Controller ─────────────────────────────

    def is_admin(self, caller: str) -> bool:
        with self._lock:
            return access.is_admin(self._state, caller)

    def set_admin(self, caller: str, new_admin: str) -> Result:
        with self._lock:
            result = access.set_admin(self._state, caller, new_admin)
        return self._log_result("set-admin", caller, result, new_admin)

    def pause(self, caller: str) -> Result:
        with self._lock:
            result = access.pause(self._state, caller)
        return self._log_result("pause", caller, result)

    def unpause(self, caller: str) -> Result:
        with self._lock:
            result = access.unpause(self._state, caller)
        return self._log_result("unpause", caller, result)

    # ── Standard Catalog ──────────────────────────────

    def add_standard(self, caller: str, standard_id: int, name: str, description: str) -> Result:
        with self._lock:
            result = catalog.add_standard(self._state, caller, standard_id, name, description)
        return self._log_result("add-standard", caller, result, str(standard_id))

    # ── Rule Store ────────────────────────────────────

    def add_numerical_rule(
        self,
        caller: str,
        standard_id: int,
        rule_id: int,
        description: str,
        min_value: int,
        max_value: int,
    ) -> Result:
        with self._lock:
            result = rules.add_numerical_rule(
                self._state, caller, standard_id, rule_id, description,
                min_value, max_value, self._limits,
            )
        return self._log_result("add-numerical-rule", caller, result, rule_key(standard_id, rule_id))

    def add_categorical_rule(
        self,
        caller: str,
        standard_id: int,
        rule_id: int,
        description: str,
        allowed_categories: Iterable[str],
    ) -> Result:
        with self._lock:
            result = rules.add_categorical_rule(
                self._state, caller, standard_id, rule_id, description,
                allowed_categories, self._limits,
            )
        return self._log_result("add-categorical-rule", caller, result, rule_key(standard_id, rule_id))

    def add_temporal_rule(
        self,
        caller: str,
        standard_id: int,
        rule_id: int,
        description: str,
        max_duration: int,
    ) -> Result:
        with self._lock:
            result = rules.add_temporal_rule(
                self._state, caller, standard_id, rule_id, description,
                max_duration, self._limits,
            )
        return self._log_result("add-temporal-rule", caller, result, rule_key(standard_id, rule_id))

    def deactivate_rule(self, caller: str, standard_id: int, rule_id: int) -> Result:
        with self._lock:
            result = rules.deactivate_rule(self._state, caller, standard_id, rule_id)
        return self._log_result("deactivate-rule", caller, result, rule_key(standard_id, rule_id))

    # ── Verification Engine ───────────────────────────

    def verify_compliance(
        self,
        caller: str,
        crop_id: str,
        standard_id: int,
        submission: Submission,
        clock: int,
    ) -> Result:
        """
        Verify a submission. Any caller may submit.

        A VERIFICATION_FAILED result still leaves the Verification record
        and the CropCompliance projection written.
        """
        with self._lock:
            result, record = verifier.verify_compliance(
                self._state, crop_id, standard_id, submission, clock,
                self._limits.max_rules_per_standard,
            )
        if record is None:
            logger.warning(
                "verify %s/%d by %s rejected: %s", crop_id, standard_id, caller, result.error.name,
            )
        else:
            logger.info(
                "verify %s/%d by %s -> #%d %s failed=%s",
                crop_id, standard_id, caller, record.verification_id,
                "PASS" if record.passed else "FAIL", list(record.failed_rule_ids),
            )
        return result

    # ── State Accessors ───────────────────────────────

    def get_standard(self, standard_id: int) -> Standard | None:
        with self._lock:
            return catalog.get_standard(self._state, standard_id)

    def get_rule(self, standard_id: int, rule_id: int) -> Rule | None:
        with self._lock:
            return rules.get_rule(self._state, standard_id, rule_id)

    def get_rules(self, standard_id: int) -> list[Rule]:
        with self._lock:
            return rules.get_rules(self._state, standard_id)

    def get_verification(self, crop_id: str, verification_id: int) -> Verification | None:
        with self._lock:
            return self._state.verifications.get((crop_id, verification_id))

    def verifications_for(self, crop_id: str) -> list[Verification]:
        """All verifications of a crop in ascending id order."""
        with self._lock:
            return sorted(
                (v for (cid, _), v in self._state.verifications.items() if cid == crop_id),
                key=lambda v: v.verification_id,
            )

    def get_crop_compliance(self, crop_id: str, standard_id: int) -> CropCompliance | None:
        with self._lock:
            return self._state.compliance.get((crop_id, standard_id))

    def is_paused(self) -> bool:
        with self._lock:
            return self._state.paused

    def get_admin(self) -> str:
        with self._lock:
            return self._state.admin

    def get_current_version(self) -> int:
        with self._lock:
            return self._state.version

    def get_rule_set_version(self) -> int:
        with self._lock:
            return self._state.rule_set_version

    def snapshot(self) -> EngineState:
        """Consistent copy of the full state, taken under the lock."""
        with self._lock:
            return self._state.copy()
