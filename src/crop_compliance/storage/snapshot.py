"""
State Snapshots
=================
Saves and loads an EngineState as JSON so the CLI can carry state
between invocations. Data hashes are stored as hex; rules carry their
numeric `rule_type` tag.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from crop_compliance.engine.models import (
    CategoricalRule,
    CropCompliance,
    NumericalRule,
    OpaqueRule,
    Rule,
    RuleKind,
    Standard,
    TemporalRule,
    Verification,
)
from crop_compliance.engine.state import EngineState
from crop_compliance.utils.helpers import rule_key
from crop_compliance.utils.log import get_logger

logger = get_logger(__name__)

SNAPSHOT_FORMAT = 1


class SnapshotError(ValueError):
    """Snapshot file is malformed or of an unsupported format."""


# ── Encoding ──────────────────────────────────────────


def _rule_to_dict(rule: Rule) -> dict:
    data = {
        "standard_id": rule.standard_id,
        "rule_id": rule.rule_id,
        "description": rule.description,
        "active": rule.active,
    }
    if isinstance(rule, NumericalRule):
        data.update(rule_type=int(RuleKind.NUMERICAL), min=rule.min_value, max=rule.max_value)
    elif isinstance(rule, CategoricalRule):
        data.update(rule_type=int(RuleKind.CATEGORICAL), categories=list(rule.allowed_categories))
    elif isinstance(rule, TemporalRule):
        data.update(rule_type=int(RuleKind.TEMPORAL), max_duration=rule.max_duration)
    else:
        data.update(rule.payload, rule_type=rule.rule_type)
    return data


def state_to_dict(state: EngineState) -> dict:
    """Render an EngineState as a JSON-ready dict."""
    return {
        "format": SNAPSHOT_FORMAT,
        "admin": state.admin,
        "paused": state.paused,
        "version": state.version,
        "rule_set_version": state.rule_set_version,
        "standards": [
            {"id": s.standard_id, "name": s.name, "description": s.description}
            for s in sorted(state.standards.values(), key=lambda s: s.standard_id)
        ],
        "rules": [_rule_to_dict(state.rules[k]) for k in sorted(state.rules)],
        "verifications": [
            {
                "crop_id": v.crop_id,
                "verification_id": v.verification_id,
                "timestamp": v.timestamp,
                "standard_id": v.standard_id,
                "passed": v.passed,
                "failed_rule_ids": list(v.failed_rule_ids),
                "data_hash": v.data_hash.hex(),
            }
            for v in sorted(state.verifications.values(), key=lambda v: v.verification_id)
        ],
        "compliance": [
            {
                "crop_id": crop_id,
                "standard_id": standard_id,
                "compliant": c.compliant,
                "last_verified": c.last_verified,
            }
            for (crop_id, standard_id), c in sorted(state.compliance.items())
        ],
    }


# ── Decoding ──────────────────────────────────────────

_RULE_FIELDS = {"standard_id", "rule_id", "description", "active", "rule_type"}


def _rule_from_dict(data: dict) -> Rule:
    common = dict(
        standard_id=int(data["standard_id"]),
        rule_id=int(data["rule_id"]),
        description=data.get("description", ""),
        active=bool(data.get("active", True)),
    )
    rule_type = int(data["rule_type"])
    if rule_type == RuleKind.NUMERICAL:
        return NumericalRule(min_value=int(data["min"]), max_value=int(data["max"]), **common)
    if rule_type == RuleKind.CATEGORICAL:
        categories = data["categories"]
        if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
            raise TypeError(f"categories must be a list of strings, got {categories!r}")
        return CategoricalRule(allowed_categories=tuple(categories), **common)
    if rule_type == RuleKind.TEMPORAL:
        return TemporalRule(max_duration=int(data["max_duration"]), **common)

    logger.warning(
        "Rule %s-%s has unknown rule_type %d; kept but never evaluated",
        common["standard_id"], common["rule_id"], rule_type,
    )
    payload = {k: v for k, v in data.items() if k not in _RULE_FIELDS}
    return OpaqueRule(rule_type=rule_type, payload=payload, **common)


def _rule_problem(rule: Rule) -> str | None:
    if isinstance(rule, NumericalRule) and rule.min_value > rule.max_value:
        return f"has min {rule.min_value} above max {rule.max_value}"
    if isinstance(rule, CategoricalRule) and not rule.allowed_categories:
        return "has no categories"
    if isinstance(rule, TemporalRule) and rule.max_duration <= 0:
        return f"has non-positive max_duration {rule.max_duration}"
    return None


def _check_consistency(state: EngineState) -> None:
    """
    Reject snapshots the engine could never have written.

    Every rule must belong to a known standard and hold a valid payload.
    Verification ids must be unique and no greater than `version`, since
    the next verification takes `version + 1`.
    """
    for rule in state.rules.values():
        if rule.standard_id not in state.standards:
            raise SnapshotError(f"Rule {rule_key(rule.standard_id, rule.rule_id)} has no standard")
        problem = _rule_problem(rule)
        if problem:
            raise SnapshotError(f"Rule {rule_key(rule.standard_id, rule.rule_id)} {problem}")

    ids = [v.verification_id for v in state.verifications.values()]
    if len(set(ids)) != len(ids):
        raise SnapshotError("Verification ids are not unique")
    if ids and max(ids) > state.version:
        raise SnapshotError(
            f"version {state.version} is behind verification id {max(ids)}; "
            "the next verification would reuse an id"
        )


def state_from_dict(data: dict) -> EngineState:
    """Rebuild an EngineState from its dict form."""
    if data.get("format") != SNAPSHOT_FORMAT:
        raise SnapshotError(f"Unsupported snapshot format: {data.get('format')!r}")
    try:
        state = EngineState(
            admin=data["admin"],
            paused=bool(data.get("paused", False)),
            version=int(data["version"]),
            rule_set_version=int(data.get("rule_set_version", 0)),
        )
        for s in data.get("standards", []):
            sid = int(s["id"])
            state.standards[sid] = Standard(standard_id=sid, name=s["name"], description=s["description"])
        for r in data.get("rules", []):
            rule = _rule_from_dict(r)
            state.rules[(rule.standard_id, rule.rule_id)] = rule
        for v in data.get("verifications", []):
            record = Verification(
                crop_id=v["crop_id"],
                verification_id=int(v["verification_id"]),
                timestamp=int(v["timestamp"]),
                standard_id=int(v["standard_id"]),
                passed=bool(v["passed"]),
                failed_rule_ids=tuple(int(i) for i in v["failed_rule_ids"]),
                data_hash=bytes.fromhex(v["data_hash"]),
            )
            state.verifications[(record.crop_id, record.verification_id)] = record
        for c in data.get("compliance", []):
            state.compliance[(c["crop_id"], int(c["standard_id"]))] = CropCompliance(
                compliant=bool(c["compliant"]), last_verified=int(c["last_verified"]),
            )
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed snapshot: {e}") from e

    _check_consistency(state)
    state.rebuild_index()
    return state


# ── Files ─────────────────────────────────────────────


def save_state(state: EngineState, path: Path) -> Path:
    """Write a snapshot atomically (temp file + rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(state_to_dict(state), indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)
    logger.debug("Saved state to %s (version %d)", path, state.version)
    return path


def load_state(path: Path) -> EngineState:
    """Read a snapshot written by save_state."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SnapshotError(f"{path.name} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"{path.name} does not hold a snapshot object")
    state = state_from_dict(data)
    logger.debug(
        "Loaded state from %s: %d standards, %d rules, %d verifications",
        path, len(state.standards), len(state.rules), len(state.verifications),
    )
    return state
