"""
Standard Catalog
==================
Append-only registry of regulatory standards keyed by numeric id.
There is no update or delete.
"""

from __future__ import annotations

from crop_compliance.engine.access import is_admin
from crop_compliance.engine.errors import ErrorCode, Result
from crop_compliance.engine.models import Standard
from crop_compliance.engine.state import EngineState


def add_standard(
    state: EngineState,
    caller: str,
    standard_id: int,
    name: str,
    description: str,
) -> Result:
    """
    Register a new standard.

    Fails with UNAUTHORIZED for non-admin callers and ALREADY_EXISTS
    if the id is taken; an existing standard is never overwritten.
    Not gated by pause.
    """
    if not is_admin(state, caller):
        return Result.failure(ErrorCode.UNAUTHORIZED)
    if standard_id in state.standards:
        return Result.failure(ErrorCode.ALREADY_EXISTS)
    state.standards[standard_id] = Standard(
        standard_id=standard_id, name=name, description=description,
    )
    return Result.success()


def get_standard(state: EngineState, standard_id: int) -> Standard | None:
    return state.standards.get(standard_id)
