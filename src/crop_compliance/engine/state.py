"""
Engine State Container
========================
All maps and scalars owned by one ComplianceEngine instance.
No module-level singleton: each engine gets its own EngineState.
"""

from __future__ import annotations

import bisect
import copy
from dataclasses import dataclass, field

from crop_compliance.engine.models import CropCompliance, Rule, Standard, Verification


@dataclass
class EngineState:
    admin: str
    paused: bool = False
    version: int = 1
    rule_set_version: int = 0
    standards: dict[int, Standard] = field(default_factory=dict)
    rules: dict[tuple[int, int], Rule] = field(default_factory=dict)
    verifications: dict[tuple[str, int], Verification] = field(default_factory=dict)
    compliance: dict[tuple[str, int], CropCompliance] = field(default_factory=dict)
    # standard_id -> ascending rule ids; derived from `rules`
    rule_index: dict[int, list[int]] = field(default_factory=dict)

    def put_rule(self, rule: Rule) -> None:
        """Insert or replace a rule, keeping the per-standard index sorted."""
        key = (rule.standard_id, rule.rule_id)
        if key not in self.rules:
            bisect.insort(self.rule_index.setdefault(rule.standard_id, []), rule.rule_id)
        self.rules[key] = rule

    def rule_ids(self, standard_id: int) -> list[int]:
        return self.rule_index.get(standard_id, [])

    def rebuild_index(self) -> None:
        self.rule_index = {}
        for standard_id, rule_id in sorted(self.rules):
            self.rule_index.setdefault(standard_id, []).append(rule_id)

    def copy(self) -> EngineState:
        # Records are frozen; only the containers need copying.
        return EngineState(
            admin=self.admin,
            paused=self.paused,
            version=self.version,
            rule_set_version=self.rule_set_version,
            standards=dict(self.standards),
            rules=dict(self.rules),
            verifications=dict(self.verifications),
            compliance=dict(self.compliance),
            rule_index=copy.deepcopy(self.rule_index),
        )
