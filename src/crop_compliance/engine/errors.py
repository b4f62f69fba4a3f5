"""
Error Taxonomy & Call Results
===============================
Every mutating engine call returns a `Result`: either a success marker
(optionally carrying a value) or a numeric `ErrorCode`.

Codes 103, 107, 108, 110, 111 and 112 are reserved for stricter input
validation and are not produced by the current engine logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes shared with external collaborators."""

    UNAUTHORIZED = 100
    INVALID_RULE = 101
    NO_RULE_FOUND = 102
    INVALID_DATA = 103
    ALREADY_EXISTS = 104
    INVALID_STANDARD = 105
    PAUSED = 106
    INVALID_THRESHOLD = 107
    INVALID_CATEGORY = 108
    VERIFICATION_FAILED = 109
    INVALID_VERSION = 110
    NO_CROP_REGISTERED = 111
    INVALID_TIMESTAMP = 112


class ComplianceError(Exception):
    """Raised when a failed Result is unwrapped or a policy call is rejected."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = ErrorCode(code)
        super().__init__(message or f"{self.code.name} ({int(self.code)})")


@dataclass(frozen=True)
class Result:
    """Discriminated call result: ok=True with a value, or ok=False with an ErrorCode."""

    ok: bool
    value: Any = True

    @classmethod
    def success(cls, value: Any = True) -> Result:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, code: ErrorCode) -> Result:
        return cls(ok=False, value=ErrorCode(code))

    @property
    def error(self) -> ErrorCode | None:
        return None if self.ok else self.value

    def unwrap(self) -> Any:
        """Return the success value or raise ComplianceError."""
        if not self.ok:
            raise ComplianceError(self.value)
        return self.value
