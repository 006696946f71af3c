from koharu.core.time.abc import Time
from koharu.core.time.real import RealTime

__all__ = ["RealTime", "Time"]
