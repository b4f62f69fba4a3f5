"""
Crop Compliance Engine
========================
Regulatory rule engine for crop verification.

Stores versioned standards, attaches typed rules (numerical,
categorical, temporal) to each standard, and evaluates submitted
measurement data against the active rules to produce an immutable
verification record and an updated compliance status.
"""

__version__ = "0.1.0"
