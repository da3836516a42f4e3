"""
Abstract base class for runtime settings sources.

Settings are addressed by (category, key) and may change at any time, so
the engine asks for them on every evaluation. A lookup returns the value
and whether it was found; a missing or failing lookup is never fatal.
"""

from abc import ABC, abstractmethod
from typing import Tuple


class SettingsProvider(ABC):
    """
    Source of runtime settings.

    Example:
        >>> value, found = await provider.get_int("temperature", "warning_threshold")
        >>> if not found:
        ...     value = 45
    """

    @abstractmethod
    async def get_int(self, category: str, key: str) -> Tuple[int, bool]:
        """Return (value, found) for an integer setting."""

    @abstractmethod
    async def get_bool(self, category: str, key: str) -> Tuple[bool, bool]:
        """Return (value, found) for a boolean setting."""
