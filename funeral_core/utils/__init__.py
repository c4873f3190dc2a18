"""Utility modules."""

from funeral_core.utils.normalization import (
    normalize_email,
    normalize_name,
    normalize_phone,
)

__all__ = [
    "normalize_email",
    "normalize_name",
    "normalize_phone",
]
