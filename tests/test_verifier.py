"""Tests for the verification engine and end-to-end scenarios."""

import threading

import pytest

from crop_compliance.engine import (
    CropCompliance,
    EngineState,
    ErrorCode,
    NumericalRule,
    OpaqueRule,
    Standard,
)
from crop_compliance.engine.verifier import evaluate_rule, evaluate_rules

ADMIN = "deployer"
USER = "wallet_2"


# ── Single-rule evaluation ───────────────────────────


@pytest.mark.parametrize("value, expected", [(0, True), (100, True), (50, True), (-1, False), (101, False)])
def test_numerical_bounds_inclusive(make_submission, value, expected):
    """Numerical bounds are inclusive at both ends."""
    rule = NumericalRule(standard_id=1, rule_id=1, description="d", min_value=0, max_value=100)
    assert evaluate_rule(rule, make_submission(value=value)) is expected


def test_inactive_and_unknown_rules_skipped(make_submission):
    """Inactive and unknown-kind rules are not evaluated."""
    inactive = NumericalRule(1, 1, "d", 0, 1, active=False)
    unknown = OpaqueRule(1, 2, "future", rule_type=7)
    assert evaluate_rule(inactive, make_submission(value=999)) is None
    assert evaluate_rule(unknown, make_submission()) is None


def test_evaluation_respects_window(make_submission):
    """Only the first max_rules ids of a standard are evaluated."""
    state = EngineState(admin=ADMIN)
    state.standards[1] = Standard(1, "USDA", "d")
    for rule_id in (1, 2, 3):
        state.put_rule(NumericalRule(1, rule_id, "d", 0, 10))
    passed, failed = evaluate_rules(state, 1, make_submission(value=50), max_rules=2)
    assert not passed
    assert failed == (1, 2)


# ── Scenarios ────────────────────────────────────────


def test_scenario_a_all_rules_pass(seeded, make_submission):
    """A submission inside every rule passes and is recorded."""
    result = seeded.verify_compliance(USER, "crop1", 1, make_submission(), clock=100)
    assert result.ok
    assert result.value == 2

    record = seeded.get_verification("crop1", 2)
    assert record.passed is True
    assert record.failed_rule_ids == ()
    assert record.timestamp == 100
    assert record.standard_id == 1
    assert seeded.get_crop_compliance("crop1", 1) == CropCompliance(compliant=True, last_verified=100)


def test_scenario_b_out_of_range_value(seeded, make_submission):
    """An out-of-range value fails rule 1 but is still recorded."""
    result = seeded.verify_compliance(USER, "crop1", 1, make_submission(value=150), clock=100)
    assert result.error is ErrorCode.VERIFICATION_FAILED
    assert result.value == 109

    # recorded despite failure
    record = seeded.get_verification("crop1", 2)
    assert record.passed is False
    assert record.failed_rule_ids == (1,)
    assert seeded.get_crop_compliance("crop1", 1).compliant is False


def test_scenario_c_deactivated_rule_skipped(seeded, make_submission):
    """Deactivating the failing rule lets the same data pass."""
    seeded.verify_compliance(USER, "crop1", 1, make_submission(value=150), clock=100)
    seeded.deactivate_rule(ADMIN, 1, 1)

    result = seeded.verify_compliance(USER, "crop1", 1, make_submission(value=150), clock=101)
    assert result.ok
    record = seeded.get_verification("crop1", 3)
    assert 1 not in record.failed_rule_ids
    assert seeded.get_crop_compliance("crop1", 1) == CropCompliance(True, 101)


def test_failed_ids_ascending(seeded, make_submission):
    """Failed rule ids are listed in ascending order."""
    submission = make_submission(value=-5, category="HT", duration=5000)
    seeded.verify_compliance(USER, "crop1", 1, submission, clock=1)
    assert seeded.get_verification("crop1", 2).failed_rule_ids == (1, 2, 3)


def test_data_hash_stored_verbatim(seeded, make_submission):
    """The submitted hash is stored unchanged."""
    digest = b"\xff" * 32
    seeded.verify_compliance(USER, "crop1", 1, make_submission(data_hash=digest), clock=1)
    assert seeded.get_verification("crop1", 2).data_hash == digest


def test_standard_without_rules_passes(engine, make_submission):
    """A standard with no rules passes anything."""
    engine.add_standard(ADMIN, 5, "Empty", "no rules")
    assert engine.verify_compliance(USER, "crop1", 5, make_submission(), clock=1).ok


# ── Rejections ───────────────────────────────────────


def test_unknown_standard(engine, make_submission):
    """Verifying against an unknown standard is INVALID_STANDARD."""
    result = engine.verify_compliance(USER, "crop1", 9, make_submission(), clock=1)
    assert result.error is ErrorCode.INVALID_STANDARD
    assert engine.get_current_version() == 1
    assert engine.get_crop_compliance("crop1", 9) is None


def test_paused_blocks_verification(seeded, make_submission):
    """Verification fails with PAUSED and records nothing."""
    seeded.pause(ADMIN)
    before = seeded.snapshot()
    result = seeded.verify_compliance(USER, "crop1", 1, make_submission(), clock=1)
    assert result.error is ErrorCode.PAUSED
    assert seeded.snapshot() == before


# ── Determinism & versioning ─────────────────────────


def test_verification_is_deterministic(seeded, make_submission):
    """Equal states and submissions give equal outcomes."""
    submission = make_submission(value=150, category="HT")
    outcomes = []
    for clock in range(5):
        seeded.verify_compliance(USER, "crop1", 1, submission, clock=clock)
        record = seeded.get_verification("crop1", seeded.get_current_version())
        outcomes.append((record.passed, record.failed_rule_ids))
    assert len(set(outcomes)) == 1


def test_version_strictly_increases(seeded, make_submission):
    """Every verification bumps the version by one."""
    seen = [seeded.get_current_version()]
    for i, value in enumerate([50, 150, 50, 150]):
        seeded.verify_compliance(USER, f"crop{i % 2}", 1, make_submission(value=value), clock=i)
        seen.append(seeded.get_current_version())
    assert seen == sorted(set(seen))
    assert seen == [1, 2, 3, 4, 5]


def test_ids_interleave_across_crops(seeded, make_submission):
    """Verification ids are global, not per crop."""
    seeded.verify_compliance(USER, "cropA", 1, make_submission(), clock=1)
    seeded.verify_compliance(USER, "cropB", 1, make_submission(), clock=1)
    assert seeded.get_verification("cropA", 2) is not None
    assert seeded.get_verification("cropB", 3) is not None
    assert seeded.get_verification("cropA", 3) is None


def test_compliance_reflects_latest_outcome(seeded, make_submission):
    """The compliance projection follows the latest verification."""
    seeded.verify_compliance(USER, "crop1", 1, make_submission(), clock=1)
    seeded.verify_compliance(USER, "crop1", 1, make_submission(value=150), clock=2)
    assert seeded.get_crop_compliance("crop1", 1) == CropCompliance(False, 2)
    # history is append-only
    assert [v.passed for v in seeded.verifications_for("crop1")] == [True, False]


def test_concurrent_verifications_get_unique_ids(seeded, make_submission):
    """Concurrent verifications never share an id."""
    def worker(n):
        for _ in range(25):
            seeded.verify_compliance(USER, f"crop{n}", 1, make_submission(), clock=n)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = [v.verification_id for n in range(4) for v in seeded.verifications_for(f"crop{n}")]
    assert len(ids) == 100
    assert len(set(ids)) == 100
    assert seeded.get_current_version() == 101


def test_logs_outcome(seeded, make_submission, caplog):
    """Each verification is logged with its id and outcome."""
    with caplog.at_level("INFO", logger="crop_compliance"):
        seeded.verify_compliance(USER, "crop1", 1, make_submission(value=150), clock=1)
    messages = [r.getMessage() for r in caplog.records]
    assert any("-> #2 FAIL" in m for m in messages)
    assert all(m.isascii() for m in messages)
