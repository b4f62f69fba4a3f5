"""
Rule Store
============
Per-standard collection of typed rules.

All three constructors share one validation shape:

1. PAUSED      : system is paused
2. UNAUTHORIZED: caller is not admin
3. INVALID_RULE: standard unknown, key taken, standard full,
                or kind-specific payload invalid

Once created, a rule's kind and payload never change. The only
mutation is `active` going from True to False.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterable

from crop_compliance.engine.access import is_admin
from crop_compliance.engine.errors import ErrorCode, Result
from crop_compliance.engine.models import (
    CategoricalRule,
    NumericalRule,
    Rule,
    TemporalRule,
)
from crop_compliance.engine.state import EngineState


@dataclass(frozen=True)
class RuleLimits:
    """Bounds applied when rules are created."""

    max_rules_per_standard: int = 32
    max_description_length: int = 500
    max_categories: int = 10
    max_category_length: int = 50


DEFAULT_LIMITS = RuleLimits()


def _precheck(
    state: EngineState,
    caller: str,
    standard_id: int,
    rule_id: int,
    description: str,
    limits: RuleLimits,
) -> ErrorCode | None:
    """Checks common to every rule kind. Returns the first failure, if any."""
    if state.paused:
        return ErrorCode.PAUSED
    if not is_admin(state, caller):
        return ErrorCode.UNAUTHORIZED
    if standard_id not in state.standards:
        return ErrorCode.INVALID_RULE
    if (standard_id, rule_id) in state.rules:
        return ErrorCode.INVALID_RULE
    if len(state.rule_ids(standard_id)) >= limits.max_rules_per_standard:
        return ErrorCode.INVALID_RULE
    if len(description) > limits.max_description_length:
        return ErrorCode.INVALID_RULE
    return None


def _insert(state: EngineState, rule: Rule) -> Result:
    state.put_rule(rule)
    state.rule_set_version += 1
    return Result.success()


def add_numerical_rule(
    state: EngineState,
    caller: str,
    standard_id: int,
    rule_id: int,
    description: str,
    min_value: int,
    max_value: int,
    limits: RuleLimits = DEFAULT_LIMITS,
) -> Result:
    err = _precheck(state, caller, standard_id, rule_id, description, limits)
    if err is not None:
        return Result.failure(err)
    if min_value > max_value:
        return Result.failure(ErrorCode.INVALID_RULE)
    return _insert(state, NumericalRule(
        standard_id=standard_id,
        rule_id=rule_id,
        description=description,
        min_value=min_value,
        max_value=max_value,
    ))


def add_categorical_rule(
    state: EngineState,
    caller: str,
    standard_id: int,
    rule_id: int,
    description: str,
    allowed_categories: Iterable[str],
    limits: RuleLimits = DEFAULT_LIMITS,
) -> Result:
    """
    Add a category-membership rule.

    Duplicate categories collapse to their first occurrence, so display
    order follows insertion order.
    """
    err = _precheck(state, caller, standard_id, rule_id, description, limits)
    if err is not None:
        return Result.failure(err)
    categories = tuple(dict.fromkeys(allowed_categories))
    if not categories or len(categories) > limits.max_categories:
        return Result.failure(ErrorCode.INVALID_RULE)
    if any(len(c) > limits.max_category_length for c in categories):
        return Result.failure(ErrorCode.INVALID_RULE)
    return _insert(state, CategoricalRule(
        standard_id=standard_id,
        rule_id=rule_id,
        description=description,
        allowed_categories=categories,
    ))


def add_temporal_rule(
    state: EngineState,
    caller: str,
    standard_id: int,
    rule_id: int,
    description: str,
    max_duration: int,
    limits: RuleLimits = DEFAULT_LIMITS,
) -> Result:
    err = _precheck(state, caller, standard_id, rule_id, description, limits)
    if err is not None:
        return Result.failure(err)
    if max_duration <= 0:
        return Result.failure(ErrorCode.INVALID_RULE)
    return _insert(state, TemporalRule(
        standard_id=standard_id,
        rule_id=rule_id,
        description=description,
        max_duration=max_duration,
    ))


def deactivate_rule(state: EngineState, caller: str, standard_id: int, rule_id: int) -> Result:
    """
    Exclude a rule from future evaluation. Not gated by pause.

    Deactivating an already inactive rule succeeds without a state change.
    """
    if not is_admin(state, caller):
        return Result.failure(ErrorCode.UNAUTHORIZED)
    rule = state.rules.get((standard_id, rule_id))
    if rule is None:
        return Result.failure(ErrorCode.NO_RULE_FOUND)
    if rule.active:
        state.put_rule(dataclasses.replace(rule, active=False))
        state.rule_set_version += 1
    return Result.success()


def get_rule(state: EngineState, standard_id: int, rule_id: int) -> Rule | None:
    return state.rules.get((standard_id, rule_id))


def get_rules(state: EngineState, standard_id: int) -> list[Rule]:
    """All rules of a standard in ascending rule-id order."""
    return [state.rules[(standard_id, rid)] for rid in state.rule_ids(standard_id)]
