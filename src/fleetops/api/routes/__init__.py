"""Route group exports."""

from . import assignments, drivers, health, optimizer

__all__ = ["assignments", "drivers", "health", "optimizer"]
