"""Key mapping and key generation utilities."""

from .ids import generate_key
from .mapper import KeyMapper


__all__ = ["KeyMapper", "generate_key"]
