"""CDO kernel utilities."""

from .keys import naive_singular, sanitize_key, sanitize_keys

__all__ = [
    "naive_singular",
    "sanitize_key",
    "sanitize_keys",
]
