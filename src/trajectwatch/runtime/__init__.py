"""Runtime components that drive periodic polling."""

from trajectwatch.runtime.scheduler import PollerHandle, TrajectScheduler

__all__ = ["PollerHandle", "TrajectScheduler"]
