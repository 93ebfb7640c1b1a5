"""Utility modules for the savings kernel."""

from savings_kernel.utils.cache import TTLCache
from savings_kernel.utils.serialization import canonicalize_json, to_json_safe

__all__ = [
    "TTLCache",
    "canonicalize_json",
    "to_json_safe",
]
