"""
Repair Domain - Recover JSON objects from generated text.

This domain handles:
- Fence stripping and object isolation
- Bracket balancing and quote normalization
- Bounded re-scan passes with failure offsets
"""

from .engine import JsonRepairEngine, RepairResult
from .stages import (
    balance,
    escape_inner_quotes,
    isolate_object,
    normalize_quotes,
    remove_trailing_commas,
    strip_fences,
)

__all__ = [
    # Engine
    "JsonRepairEngine",
    "RepairResult",
    # Stages
    "strip_fences",
    "isolate_object",
    "balance",
    "normalize_quotes",
    "escape_inner_quotes",
    "remove_trailing_commas",
]
