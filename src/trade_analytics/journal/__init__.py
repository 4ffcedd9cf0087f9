"""Position records built by the reconciler."""

from .position import ExecutionLeg, Position

__all__ = ["ExecutionLeg", "Position"]
