"""Agents: history bookkeeping and move orchestration.

Example:
    >>> from rigidsim.agents import rigid_body_agent_se3
    >>>
    >>> agent = rigid_body_agent_se3(mass=1.0, inertia=np.eye(3))
    >>> agent.move(1.0, np.array([0.0, 1.0]), np.zeros((2, 6)))
"""

from rigidsim.agents.agent import (
    Agent,
    AgentConfig,
    AgentModel,
)
from rigidsim.agents.history import (
    AgentHistory,
    HistorySnapshot,
)
from rigidsim.agents.rigid_body import (
    RigidBodySE3Model,
    current_state,
    rigid_body_agent_se3,
)

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentModel",
    "AgentHistory",
    "HistorySnapshot",
    "RigidBodySE3Model",
    "current_state",
    "rigid_body_agent_se3",
]
