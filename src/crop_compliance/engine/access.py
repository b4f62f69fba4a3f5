"""
Access Controller
===================
Single-admin authorization and the global pause flag.

Pause gates rule creation and verification. It does not gate standard
creation or rule deactivation.
"""

from __future__ import annotations

from crop_compliance.engine.errors import ErrorCode, Result
from crop_compliance.engine.state import EngineState


def is_admin(state: EngineState, caller: str) -> bool:
    return caller == state.admin


def set_admin(state: EngineState, caller: str, new_admin: str) -> Result:
    """Hand the admin role to `new_admin`. Only the current admin may do this."""
    if not is_admin(state, caller):
        return Result.failure(ErrorCode.UNAUTHORIZED)
    state.admin = new_admin
    return Result.success()


def pause(state: EngineState, caller: str) -> Result:
    if not is_admin(state, caller):
        return Result.failure(ErrorCode.UNAUTHORIZED)
    state.paused = True
    return Result.success()


def unpause(state: EngineState, caller: str) -> Result:
    if not is_admin(state, caller):
        return Result.failure(ErrorCode.UNAUTHORIZED)
    state.paused = False
    return Result.success()
