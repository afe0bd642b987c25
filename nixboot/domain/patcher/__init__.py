"""
Import patcher domain module
"""
from .models import PatchOutcome, PatchResult
from .imports import ensure_import, apply_import, contains_reference
from .scanner import is_balanced, mask_source

__all__ = [
    "PatchOutcome",
    "PatchResult",
    "ensure_import",
    "apply_import",
    "contains_reference",
    "is_balanced",
    "mask_source",
]
