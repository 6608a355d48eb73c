"""rigidsim - Rigid-body agent simulation on SO(3).

This package simulates a single rigid-body agent: position, velocity and
angular velocity integrated with forward Euler, and attitude advanced on
the rotation group through the exponential map. A low-level controller
turns reference trajectories into force and moment inputs.

Example:
    >>> import numpy as np
    >>> from rigidsim import rigid_body_agent_se3
    >>>
    >>> agent = rigid_body_agent_se3(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]))
    >>> agent.reset(np.array([0.0, 0.0, 10.0]))
    >>>
    >>> T_ref = np.array([0.0, 2.0])
    >>> U_ref = np.array([[0.0, 0.0, 9.81, 0.0, 0.0, 0.1]] * 2)  # hover, yaw torque
    >>> agent.move(2.0, T_ref, U_ref)
    >>> print(f"Final altitude: {agent.state[-1, 2]:.2f} m")
"""

__version__ = "0.1.0"

# Agents
from rigidsim.agents import (
    Agent,
    AgentConfig,
    AgentModel,
    HistorySnapshot,
    RigidBodySE3Model,
    current_state,
    rigid_body_agent_se3,
)

# Control
from rigidsim.control import (
    LowLevelController,
    LowLevelControllerConfig,
    StateFeedbackController,
    TrackingGains,
)

# Dynamics
from rigidsim.dynamics import (
    IntegrationResult,
    RigidBodyParams,
    RigidBodyState,
    ode1_with_so3,
    rigid_body_derivative,
    skew,
    so3_exp,
)

# Trajectories
from rigidsim.trajectory import (
    ExtrapolationPolicy,
    match_trajectories,
)

__all__ = [
    "__version__",
    # Agents
    "Agent",
    "AgentConfig",
    "AgentModel",
    "HistorySnapshot",
    "RigidBodySE3Model",
    "current_state",
    "rigid_body_agent_se3",
    # Control
    "LowLevelController",
    "LowLevelControllerConfig",
    "StateFeedbackController",
    "TrackingGains",
    # Dynamics
    "IntegrationResult",
    "RigidBodyParams",
    "RigidBodyState",
    "ode1_with_so3",
    "rigid_body_derivative",
    "skew",
    "so3_exp",
    # Trajectories
    "ExtrapolationPolicy",
    "match_trajectories",
]
