"""Compliance engine subpackage: access control, standards, rules, verification."""

from crop_compliance.engine.core import ComplianceEngine
from crop_compliance.engine.errors import ComplianceError, ErrorCode, Result
from crop_compliance.engine.models import (
    CategoricalRule,
    CropCompliance,
    NumericalRule,
    OpaqueRule,
    Rule,
    RuleKind,
    Standard,
    Submission,
    TemporalRule,
    Verification,
)
from crop_compliance.engine.rules import RuleLimits
from crop_compliance.engine.state import EngineState

__all__ = [
    "ComplianceEngine",
    "ComplianceError",
    "ErrorCode",
    "Result",
    "CategoricalRule",
    "CropCompliance",
    "NumericalRule",
    "OpaqueRule",
    "Rule",
    "RuleKind",
    "Standard",
    "Submission",
    "TemporalRule",
    "Verification",
    "RuleLimits",
    "EngineState",
]
