"""
Policy Loader
===============
Applies standards and rules from a YAML policy file through the
engine's admin calls, so every entry passes the same validation as a
hand-issued call.

File shape:

    standards:
      - id: 1
        name: USDA
        description: USDA GMO Standards
        rules:
          - {id: 1, type: numerical, description: ..., min: 0, max: 100}
          - {id: 2, type: categorical, description: ..., categories: [BT]}
          - {id: 3, type: temporal, description: ..., max_duration: 1000}

Standards that already exist are reused. Loading stops at the first
rejected call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from crop_compliance.engine.core import ComplianceEngine
from crop_compliance.engine.errors import ComplianceError, ErrorCode, Result
from crop_compliance.utils.log import get_logger

logger = get_logger(__name__)


class PolicyError(ValueError):
    """Policy file is malformed."""


@dataclass
class PolicyReport:
    """What a policy load changed."""

    source: str
    standards_added: list[int] = field(default_factory=list)
    standards_reused: list[int] = field(default_factory=list)
    rules_added: list[tuple[int, int]] = field(default_factory=list)


def read_policy(path: Path) -> dict:
    """Parse a policy YAML file."""
    if not path.exists():
        raise PolicyError(f"Policy file not found: {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict) or not isinstance(data.get("standards", []), list):
        raise PolicyError(f"{path.name}: expected a mapping with a 'standards' list")
    return data


def _categories(standard_id: int, raw: dict) -> list[str]:
    values = raw["categories"]
    if not isinstance(values, list) or any(isinstance(c, (list, dict)) for c in values):
        raise PolicyError(
            f"Standard {standard_id}: rule {raw.get('id')} categories must be a list of names, "
            f"got {values!r}"
        )
    return [str(c) for c in values]


def _add_rule(engine: ComplianceEngine, caller: str, standard_id: int, raw: dict) -> Result:
    if not isinstance(raw, dict):
        raise PolicyError(f"Standard {standard_id}: rule entry must be a mapping, got {raw!r}")
    try:
        rule_id = int(raw["id"])
        kind = str(raw["type"]).lower()
        description = str(raw.get("description") or "")
        if kind == "numerical":
            return engine.add_numerical_rule(
                caller, standard_id, rule_id, description, int(raw["min"]), int(raw["max"]),
            )
        if kind == "categorical":
            return engine.add_categorical_rule(
                caller, standard_id, rule_id, description, _categories(standard_id, raw),
            )
        if kind == "temporal":
            return engine.add_temporal_rule(
                caller, standard_id, rule_id, description, int(raw["max_duration"]),
            )
    except PolicyError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise PolicyError(f"Standard {standard_id}: malformed rule entry {raw!r}: {e}") from e
    raise PolicyError(f"Standard {standard_id}: unknown rule type {raw.get('type')!r}")


def apply_policy(engine: ComplianceEngine, data: dict, caller: str, source: str = "<policy>") -> PolicyReport:
    """
    Apply a parsed policy to the engine on behalf of `caller`.

    Raises:
        PolicyError: an entry is malformed.
        ComplianceError: the engine rejected a call (e.g. UNAUTHORIZED, PAUSED).
    """
    report = PolicyReport(source=source)

    for entry in data.get("standards", []):
        try:
            standard_id = int(entry["id"])
            name = str(entry["name"])
            description = str(entry.get("description") or "")
        except (KeyError, TypeError, ValueError) as e:
            raise PolicyError(f"{source}: malformed standard entry {entry!r}: {e}") from e

        result = engine.add_standard(caller, standard_id, name, description)
        if result.ok:
            report.standards_added.append(standard_id)
        elif result.error == ErrorCode.ALREADY_EXISTS:
            report.standards_reused.append(standard_id)
        else:
            raise ComplianceError(result.error, f"standard {standard_id}: {result.error.name}")

        rules = entry.get("rules") or []
        if not isinstance(rules, list):
            raise PolicyError(f"{source}: standard {standard_id} 'rules' must be a list")
        for raw in rules:
            result = _add_rule(engine, caller, standard_id, raw)
            if not result.ok:
                raise ComplianceError(
                    result.error, f"rule {standard_id}-{raw.get('id')}: {result.error.name}",
                )
            report.rules_added.append((standard_id, int(raw["id"])))

    logger.info(
        "Policy %s: %d standards added, %d reused, %d rules added",
        source, len(report.standards_added), len(report.standards_reused), len(report.rules_added),
    )
    return report


def load_policy(engine: ComplianceEngine, path: Path, caller: str) -> PolicyReport:
    """Read a policy file and apply it."""
    return apply_policy(engine, read_policy(path), caller, source=path.name)
