"""
Verification Engine
=====================
Evaluates one crop's submission against one standard's active rules:

1. Reject if paused or the standard is unknown
2. Allocate verification_id = version + 1
3. Evaluate rules in ascending id order (bounded per standard)
4. Write an immutable Verification record
5. Overwrite the (crop, standard) CropCompliance projection
6. Advance the version counter

The records are written whether or not the submission passes. Only the
returned Result tells the caller about a failed verification.
"""

from __future__ import annotations

from crop_compliance.engine.errors import ErrorCode, Result
from crop_compliance.engine.models import (
    CategoricalRule,
    CropCompliance,
    NumericalRule,
    Rule,
    Submission,
    TemporalRule,
    Verification,
)
from crop_compliance.engine.state import EngineState


def evaluate_rule(rule: Rule, submission: Submission) -> bool | None:
    """
    Evaluate a single rule.

    Returns None for rules that are skipped: inactive rules and rules of
    an unrecognized kind.
    """
    if not rule.active:
        return None
    if isinstance(rule, NumericalRule):
        return rule.min_value <= submission.numeric_value <= rule.max_value
    if isinstance(rule, CategoricalRule):
        return submission.category in rule.allowed_categories
    if isinstance(rule, TemporalRule):
        return submission.duration <= rule.max_duration
    return None


def evaluate_rules(
    state: EngineState,
    standard_id: int,
    submission: Submission,
    max_rules: int,
) -> tuple[bool, tuple[int, ...]]:
    """Return (passed, ascending failed rule ids) for a standard."""
    failed: list[int] = []
    for rule_id in state.rule_ids(standard_id)[:max_rules]:
        outcome = evaluate_rule(state.rules[(standard_id, rule_id)], submission)
        if outcome is False:
            failed.append(rule_id)
    return not failed, tuple(failed)


def verify_compliance(
    state: EngineState,
    crop_id: str,
    standard_id: int,
    submission: Submission,
    clock: int,
    max_rules: int = 32,
) -> tuple[Result, Verification | None]:
    """
    Run a verification and record its outcome.

    Any caller may submit. Crop existence is the Registry's concern and
    is not checked here. The data hash is stored as given.

    Returns the call Result plus the Verification written (None when
    the call was rejected before evaluation).
    """
    if state.paused:
        return Result.failure(ErrorCode.PAUSED), None
    if standard_id not in state.standards:
        return Result.failure(ErrorCode.INVALID_STANDARD), None

    verification_id = state.version + 1
    passed, failed_ids = evaluate_rules(state, standard_id, submission, max_rules)

    record = Verification(
        crop_id=crop_id,
        verification_id=verification_id,
        timestamp=clock,
        standard_id=standard_id,
        passed=passed,
        failed_rule_ids=failed_ids,
        data_hash=bytes(submission.data_hash),
    )
    state.verifications[(crop_id, verification_id)] = record
    state.compliance[(crop_id, standard_id)] = CropCompliance(
        compliant=passed, last_verified=clock,
    )
    state.version = verification_id

    if passed:
        return Result.success(verification_id), record
    return Result.failure(ErrorCode.VERIFICATION_FAILED), record
