"""Rigid-body agent on SE(3).

The rigid-body model has states for position in R^3, velocity in R^3 and
angular velocity in R^3, which gets mapped to so(3) through the hat map to
advance the attitude R in SO(3). Inputs are a specific force in R^3
followed by a moment in R^3.

Example:
    >>> agent = rigid_body_agent_se3(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]))
    >>> agent.reset(np.zeros(3))
    >>> T_ref = np.array([0.0, 2.0])
    >>> U_ref = np.tile([0.0, 0.0, 9.81, 0.1, 0.0, 0.0], (2, 1))  # hover, roll torque
    >>> agent.move(2.0, T_ref, U_ref)
    >>> agent.attitude_at_time(1.0)
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.agents.agent import Agent, AgentConfig, AgentModel
from rigidsim.agents.history import HistorySnapshot
from rigidsim.control.low_level import LowLevelController
from rigidsim.dynamics.integrator import DerivativeFn, IntegrationResult, ode1_with_so3
from rigidsim.dynamics.rigid_body import (
    G_DEFAULT,
    ControlFn,
    RigidBodyParams,
    rigid_body_derivative,
)
from rigidsim.dynamics.so3 import skew, so3_exp
from rigidsim.dynamics.state import (
    ANGULAR_VELOCITY_INDICES,
    N_INPUTS,
    N_STATES,
    POSITION_INDICES,
    VELOCITY_INDICES,
    RigidBodyState,
)
from rigidsim.trajectory import Real, RealArray, match_trajectories


@beartype
class RigidBodySE3Model(AgentModel):
    """Rigid-body dynamics with attitude integrated on SO(3).

    Attributes:
        params: Mass, inertia and gravity settings
    """

    n_states = N_STATES
    n_inputs = N_INPUTS
    position_indices = POSITION_INDICES
    velocity_indices = VELOCITY_INDICES
    angular_velocity_indices = ANGULAR_VELOCITY_INDICES
    has_attitude = True

    def __init__(self, params: RigidBodyParams) -> None:
        self.params = params

    def default_state(self) -> NDArray[np.float64]:
        return np.zeros(self.n_states)

    def dynamics(
        self,
        t: float,
        z: NDArray[np.float64],
        R: NDArray[np.float64] | None,
        T_ref: NDArray[np.float64],
        U_ref: NDArray[np.float64],
        Z_ref: NDArray[np.float64] | None = None,
        control: ControlFn | None = None,
    ) -> NDArray[np.float64]:
        if R is None:
            R = np.eye(3)
        return rigid_body_derivative(t, z, R, T_ref, U_ref, self.params, Z_ref, control)

    def integrate(
        self,
        fun: DerivativeFn,
        tspan: tuple[float, float],
        z0: NDArray[np.float64],
        R0: NDArray[np.float64] | None,
        config: AgentConfig,
    ) -> IntegrationResult:
        return ode1_with_so3(
            fun,
            tspan,
            z0,
            np.eye(3) if R0 is None else R0,
            dt=config.integrator_time_discretization,
            angular_velocity_indices=self.angular_velocity_indices,
            reorthonormalize=config.reorthonormalize,
        )

    def attitude_at_time(self, history: HistorySnapshot, t: float) -> NDArray[np.float64]:
        """Attitude at time t from the recorded history.

        Takes the recorded attitude closest in time to t and advances it by
        one Euler step on SO(3) with the interpolated angular velocity, so
        it is exact at recorded samples and approximate between them.

        Raises:
            ValueError: if t is outside the recorded time span
        """
        z_t = match_trajectories(t, history.time, history.state)
        idx = int(np.argmin(np.abs(history.time - t)))
        dt = t - float(history.time[idx])
        omega = z_t[self.angular_velocity_indices]
        return so3_exp(dt * skew(omega)) @ history.attitude[idx]


@beartype
def rigid_body_agent_se3(
    mass: Real,
    inertia: RealArray,
    g: Real = G_DEFAULT,
    gravity_on: bool = True,
    gravity_direction: RealArray | None = None,
    controller: LowLevelController | None = None,
    config: AgentConfig | None = None,
) -> Agent:
    """Create an agent driven by rigid-body SE(3) dynamics.

    Args:
        mass: Body mass [kg]
        inertia: 3x3 inertia matrix [kg*m^2]
        g: Gravity magnitude [m/s^2]
        gravity_on: Add gravity to the input force
        gravity_direction: Direction gravity acts along; defaults to -z
        controller: Low-level controller; defaults to pass-through
        config: Simulation configuration

    Raises:
        ValueError: if the mass is not positive or the inertia is singular
    """
    if gravity_direction is None:
        gravity_direction = np.array([0.0, 0.0, -1.0])
    params = RigidBodyParams(
        mass=mass,
        inertia=inertia,
        g=g,
        gravity_on=gravity_on,
        gravity_direction=gravity_direction,
    )
    return Agent(RigidBodySE3Model(params), controller=controller, config=config)


@beartype
def current_state(agent: Agent) -> RigidBodyState:
    """Last recorded sample of a rigid-body agent as a RigidBodyState."""
    history = agent.snapshot()
    return RigidBodyState.from_array(
        np.array(history.state[-1]),
        attitude=np.array(history.attitude[-1]),
        time=float(history.time[-1]),
    )
