"""Storage subpackage: JSON state snapshots and YAML policy files."""

from crop_compliance.storage.policy import PolicyError, load_policy
from crop_compliance.storage.snapshot import SnapshotError, load_state, save_state

__all__ = ["PolicyError", "load_policy", "SnapshotError", "load_state", "save_state"]
