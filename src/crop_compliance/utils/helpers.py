"""
Shared helper functions.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

DIGEST_SIZE = 32


def file_digest(path: Path, algo: str = "sha256") -> bytes:
    """Compute the binary digest of a measurement file."""
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.digest()


def parse_digest(text: str) -> bytes:
    """
    Parse a hex-encoded 32-byte digest.

    Accepts an optional '0x' prefix. Raises ValueError for anything
    that is not exactly 64 hex characters.
    """
    text = text.strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    raw = bytes.fromhex(text)
    if len(raw) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(raw)}")
    return raw


def rule_key(standard_id: int, rule_id: int) -> str:
    """Display key for a rule, e.g. '1-3'."""
    return f"{standard_id}-{rule_id}"
