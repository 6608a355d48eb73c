"""Low-level controllers for agents.

Provides the pass-through reference-input controller and a state-feedback
variant for tracking a desired-state trajectory.
"""

from rigidsim.control.feedback import (
    StateFeedbackController,
    TrackingGains,
)
from rigidsim.control.low_level import (
    LowLevelController,
    LowLevelControllerConfig,
)

__all__ = [
    "LowLevelController",
    "LowLevelControllerConfig",
    "StateFeedbackController",
    "TrackingGains",
]
