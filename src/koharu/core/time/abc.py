"""Time operations abstraction for testing.

Backup archive names and manifests carry timestamps; routing clock reads
through this ABC keeps those names deterministic in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Abstract time operations for dependency injection."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current local time."""
        ...
