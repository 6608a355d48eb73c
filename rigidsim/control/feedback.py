"""State-feedback low-level controller.

Adds linear feedback on the desired-state error to the reference input:

    U = U_ref(t) + K @ (Z_ref(t) - z)

When no desired-state trajectory is given the controller falls back to the
pass-through behavior of LowLevelController.

Example:
    >>> gains = TrackingGains(kp=4.0, kd=2.0, k_rate=1.0)
    >>> llc = StateFeedbackController.from_tracking_gains(gains)
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.control.low_level import LowLevelController, LowLevelControllerConfig
from rigidsim.dynamics.state import (
    ANGULAR_VELOCITY_INDICES,
    FORCE_INDICES,
    MOMENT_INDICES,
    N_INPUTS,
    N_STATES,
    POSITION_INDICES,
    VELOCITY_INDICES,
)
from rigidsim.trajectory import match_trajectories


@beartype
@dataclass
class TrackingGains:
    """Decoupled tracking gains for a rigid body.

    Attributes:
        kp: Position error to force gain
        kd: Velocity error to force gain
        k_rate: Angular velocity error to moment gain
    """
    kp: float = 1.0
    kd: float = 0.0
    k_rate: float = 0.0

    def to_matrix(self) -> NDArray[np.float64]:
        """Gain matrix K of shape (6, 9) for the rigid-body state layout."""
        K = np.zeros((N_INPUTS, N_STATES))
        K[FORCE_INDICES, POSITION_INDICES] = self.kp * np.eye(3)
        K[FORCE_INDICES, VELOCITY_INDICES] = self.kd * np.eye(3)
        K[MOMENT_INDICES, ANGULAR_VELOCITY_INDICES] = self.k_rate * np.eye(3)
        return K


@beartype
class StateFeedbackController(LowLevelController):
    """Feedforward plus linear state feedback.

    Attributes:
        gains: Gain matrix K, shape (n_inputs, n_states)
    """

    def __init__(
        self,
        gains: NDArray[np.float64],
        config: LowLevelControllerConfig | None = None,
    ) -> None:
        if gains.ndim != 2:
            raise ValueError(f"Gain matrix must be 2-D, got shape {gains.shape}")
        super().__init__(config or LowLevelControllerConfig(name="LLC-feedback"))
        self.gains = gains.copy()

    @classmethod
    def from_tracking_gains(
        cls,
        gains: TrackingGains,
        config: LowLevelControllerConfig | None = None,
    ) -> "StateFeedbackController":
        """Create controller from decoupled rigid-body gains."""
        return cls(gains.to_matrix(), config)

    def setup(self, agent) -> None:
        super().setup(agent)
        expected = (self.n_agent_inputs, self.n_agent_states)
        if self.gains.shape != expected:
            raise ValueError(f"Gain matrix must be shape {expected}, got {self.gains.shape}")

    def get_control_inputs(
        self,
        agent,
        t: float,
        z: NDArray[np.float64],
        T_ref: NDArray[np.float64],
        U_ref: NDArray[np.float64],
        Z_ref: NDArray[np.float64] | None = None,
    ) -> NDArray[np.float64]:
        policy = self.config.extrapolation
        U = match_trajectories(t, T_ref, U_ref, policy)
        if Z_ref is not None:
            z_des = match_trajectories(t, T_ref, Z_ref, policy)
            U = U + self.gains @ (z_des - z)
        return self.validate_inputs(U)
