"""Low-level trajectory-tracking controller.

The low-level controller turns a reference trajectory (times, inputs and
optionally desired states) plus the agent's current time and state into the
input applied to the agent's dynamics. It is called from inside the
integration loop, once per dynamics evaluation.

The base controller is a pass-through: it linearly interpolates the
reference input at the current time. Feedback laws subclass it and
override get_control_inputs() only.

Example:
    >>> from rigidsim.control import LowLevelController
    >>>
    >>> llc = LowLevelController()
    >>> llc.setup(agent)
    >>> U = llc.get_control_inputs(agent, 0.5, z, T_ref, U_ref)
"""

import logging
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.trajectory import ExtrapolationPolicy, match_trajectories

logger = logging.getLogger(__name__)


@beartype
@dataclass
class LowLevelControllerConfig:
    """Low-level controller configuration.

    Attributes:
        name: Label used in log messages
        extrapolation: Behavior for query times outside the reference span
    """
    name: str = "LLC"
    extrapolation: ExtrapolationPolicy = ExtrapolationPolicy.ERROR


@beartype
class LowLevelController:
    """Pass-through low-level controller.

    Attributes:
        config: Controller configuration
        n_agent_states: Agent state dimension, set by setup()
        n_agent_inputs: Agent input dimension, set by setup()
    """

    def __init__(self, config: LowLevelControllerConfig | None = None) -> None:
        self.config = config or LowLevelControllerConfig()
        self.n_agent_states: int | None = None
        self.n_agent_inputs: int | None = None

    @property
    def is_setup(self) -> bool:
        return self.n_agent_states is not None and self.n_agent_inputs is not None

    def setup(self, agent) -> None:
        """Record the agent's state and input dimensions.

        Args:
            agent: Agent exposing n_states and n_inputs
        """
        self.n_agent_states = int(agent.n_states)
        self.n_agent_inputs = int(agent.n_inputs)
        logger.debug(
            "%s: set up for %d states, %d inputs",
            self.config.name, self.n_agent_states, self.n_agent_inputs,
        )

    def get_control_inputs(
        self,
        agent,
        t: float,
        z: NDArray[np.float64],
        T_ref: NDArray[np.float64],
        U_ref: NDArray[np.float64],
        Z_ref: NDArray[np.float64] | None = None,
    ) -> NDArray[np.float64]:
        """Compute the control input at time t.

        Args:
            agent: The agent being controlled (read only)
            t: Current time, relative to the start of the reference [s]
            z: Current state, shape (n_states,)
            T_ref: Reference times, shape (N,)
            U_ref: Reference inputs, shape (N, n_inputs)
            Z_ref: Desired states, shape (N, n_states); unused here

        Returns:
            Control input, shape (n_inputs,)
        """
        U = match_trajectories(t, T_ref, U_ref, self.config.extrapolation)
        return self.validate_inputs(U)

    def validate_inputs(self, U: NDArray[np.float64]) -> NDArray[np.float64]:
        """Check a computed input against the agent's input dimension.

        Raises:
            RuntimeError: if setup() has not been called
            ValueError: if U has the wrong shape
        """
        if not self.is_setup:
            raise RuntimeError(f"{self.config.name}: setup() must be called before computing inputs")
        if U.shape != (self.n_agent_inputs,):
            raise ValueError(
                f"{self.config.name}: control input must be shape ({self.n_agent_inputs},), got {U.shape}"
            )
        return U
