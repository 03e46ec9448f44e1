"""
Tracking module.

Boundary stability tracking lives in tracking.stability.
"""

from .stability import StabilityPhase, StabilityState, StabilityTracker, observe

__all__ = ["StabilityPhase", "StabilityState", "StabilityTracker", "observe"]
