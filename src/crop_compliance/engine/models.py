"""
Engine Records
================
Immutable records held by the engine state: standards, the rule
tagged union, verifications and compliance projections.

Rules are a sum type over NumericalRule / CategoricalRule / TemporalRule,
so a rule can never carry payload for the wrong kind. OpaqueRule holds a
rule of an unrecognized kind read back from a snapshot; it is kept so its
key stays taken, and evaluation skips it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Union


class RuleKind(IntEnum):
    """Numeric rule-type tag."""

    NUMERICAL = 0
    CATEGORICAL = 1
    TEMPORAL = 2


@dataclass(frozen=True)
class Standard:
    """A named regulatory policy under which rules are grouped."""

    standard_id: int
    name: str
    description: str


@dataclass(frozen=True)
class NumericalRule:
    """Pass iff min_value <= value <= max_value (both ends inclusive)."""

    kind: ClassVar[RuleKind] = RuleKind.NUMERICAL

    standard_id: int
    rule_id: int
    description: str
    min_value: int
    max_value: int
    active: bool = True


@dataclass(frozen=True)
class CategoricalRule:
    """Pass iff the submitted category is one of allowed_categories."""

    kind: ClassVar[RuleKind] = RuleKind.CATEGORICAL

    standard_id: int
    rule_id: int
    description: str
    allowed_categories: tuple[str, ...]
    active: bool = True


@dataclass(frozen=True)
class TemporalRule:
    """Pass iff the submitted duration <= max_duration."""

    kind: ClassVar[RuleKind] = RuleKind.TEMPORAL

    standard_id: int
    rule_id: int
    description: str
    max_duration: int
    active: bool = True


@dataclass(frozen=True)
class OpaqueRule:
    """Rule of a kind this engine does not recognize."""

    kind: ClassVar[None] = None

    standard_id: int
    rule_id: int
    description: str
    rule_type: int
    payload: dict = field(default_factory=dict, compare=False)
    active: bool = True


Rule = Union[NumericalRule, CategoricalRule, TemporalRule, OpaqueRule]


@dataclass(frozen=True)
class Submission:
    """Measurement data submitted for one crop."""

    numeric_value: int
    category: str
    duration: int
    data_hash: bytes


@dataclass(frozen=True)
class Verification:
    """One append-only record of evaluating a submission against a standard."""

    crop_id: str
    verification_id: int
    timestamp: int
    standard_id: int
    passed: bool
    failed_rule_ids: tuple[int, ...]
    data_hash: bytes


@dataclass(frozen=True)
class CropCompliance:
    """Most recent pass/fail outcome for a (crop, standard) pair."""

    compliant: bool
    last_verified: int
