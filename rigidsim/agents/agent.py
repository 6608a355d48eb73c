"""Generic agent orchestrating dynamics, control and history.

An Agent owns its executed trajectory and advances it one segment at a
time with move(). What the agent is, its state layout, dynamics and
integrator, comes from an AgentModel supplied at construction. How the
reference trajectory is turned into inputs comes from a
LowLevelController.

Architecture:
    Each move(t_move, T_ref, U_ref, Z_ref) call:
    - resolves the reference trajectory over [0, t_move] (move_setup)
    - takes the last recorded sample as the initial condition
    - integrates the model's dynamics with the controller in the loop
    - appends the new samples to history (commit_move_data)

Example:
    >>> from rigidsim.agents import rigid_body_agent_se3
    >>>
    >>> agent = rigid_body_agent_se3(mass=1.0, inertia=np.eye(3))
    >>> agent.reset(np.array([0.0, 0.0, 10.0]))
    >>> T_ref = np.array([0.0, 1.0])
    >>> U_ref = np.zeros((2, 6))
    >>> agent.move(1.0, T_ref, U_ref)
    >>> agent.state[-1, 2]  # fallen under gravity
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.agents.history import AgentHistory, HistorySnapshot
from rigidsim.control.low_level import LowLevelController
from rigidsim.dynamics.integrator import DEFAULT_TIME_STEP, DerivativeFn, IntegrationResult
from rigidsim.dynamics.rigid_body import ControlFn
from rigidsim.dynamics.so3 import is_rotation_matrix
from rigidsim.trajectory import Real, RealArray, match_trajectories, validate_trajectory

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class AgentConfig:
    """Agent simulation configuration.

    Attributes:
        name: Label used in log messages
        integrator_time_discretization: Fixed integrator step [s]
        reorthonormalize: Project attitudes back onto SO(3) every step
    """
    name: str = "agent"
    integrator_time_discretization: float = DEFAULT_TIME_STEP
    reorthonormalize: bool = True

    def __post_init__(self) -> None:
        if not self.integrator_time_discretization > 0:
            raise ValueError(
                f"Integrator time step must be positive, got {self.integrator_time_discretization}"
            )


# =============================================================================
# Model Capability
# =============================================================================


class AgentModel(ABC):
    """What an Agent simulates: state layout, dynamics and integrator.

    Concrete models define the dimensions, the default initial state, the
    dynamics function and the integrator. An Agent calls these and never
    needs to know which model it holds.
    """

    n_states: int
    n_inputs: int
    position_indices: slice
    has_attitude: bool = False

    @abstractmethod
    def default_state(self) -> NDArray[np.float64]:
        """State used by reset() when none is given."""

    def initial_state(self, position_or_state: NDArray[np.float64]) -> NDArray[np.float64]:
        """Expand a position or full state into a full state vector."""
        z = self.default_state()
        n_position = len(range(*self.position_indices.indices(self.n_states)))
        if position_or_state.shape == (self.n_states,):
            return position_or_state.astype(np.float64, copy=True)
        if position_or_state.shape == (n_position,):
            z[self.position_indices] = position_or_state
            return z
        raise ValueError(
            f"Expected a position of shape ({n_position},) or a state of shape "
            f"({self.n_states},), got {position_or_state.shape}"
        )

    @abstractmethod
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
        """Time derivative of the state."""

    @abstractmethod
    def integrate(
        self,
        fun: DerivativeFn,
        tspan: tuple[float, float],
        z0: NDArray[np.float64],
        R0: NDArray[np.float64] | None,
        config: AgentConfig,
    ) -> IntegrationResult:
        """Integrate fun over tspan from (z0, R0)."""

    def attitude_at_time(self, history: HistorySnapshot, t: float) -> NDArray[np.float64]:
        """Attitude at an arbitrary time within the history."""
        raise NotImplementedError(f"{type(self).__name__} does not track attitude")


# =============================================================================
# Agent
# =============================================================================


@beartype
class Agent:
    """Agent executing reference trajectories one segment at a time.

    Attributes:
        model: State layout, dynamics and integrator
        controller: Low-level controller in the integration loop
        config: Simulation configuration
    """

    def __init__(
        self,
        model: AgentModel,
        controller: LowLevelController | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.model = model
        self.controller = controller or LowLevelController()
        self.config = config or AgentConfig()
        self.controller.setup(self)
        self._history: AgentHistory
        self.reset()

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    @property
    def n_states(self) -> int:
        return self.model.n_states

    @property
    def n_inputs(self) -> int:
        return self.model.n_inputs

    @property
    def position_indices(self) -> slice:
        return self.model.position_indices

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    def snapshot(self) -> HistorySnapshot:
        """Read-only copy of the executed trajectory."""
        return self._history.snapshot()

    @property
    def time(self) -> NDArray[np.float64]:
        """Sample times, shape (N,) [s]."""
        return self.snapshot().time

    @property
    def state(self) -> NDArray[np.float64]:
        """State history, shape (N, n_states)."""
        return self.snapshot().state

    @property
    def attitude(self) -> NDArray[np.float64] | None:
        """Attitude history, shape (N, 3, 3), or None if not tracked."""
        return self.snapshot().attitude

    @property
    def input_time(self) -> NDArray[np.float64]:
        return self.snapshot().input_time

    @property
    def input(self) -> NDArray[np.float64]:
        return self.snapshot().input

    def __len__(self) -> int:
        return len(self._history)

    def state_at_time(self, t: Real) -> NDArray[np.float64]:
        """State linearly interpolated from history at time t.

        Raises:
            ValueError: if t is outside the recorded time span
        """
        history = self.snapshot()
        return match_trajectories(t, history.time, history.state)

    def attitude_at_time(self, t: Real) -> NDArray[np.float64]:
        """Attitude at time t, computed by the model from history."""
        return self.model.attitude_at_time(self.snapshot(), float(t))

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def reset(
        self,
        position_or_state: RealArray | None = None,
        attitude: RealArray | None = None,
    ) -> None:
        """Replace history with a single initial sample at time 0.

        Args:
            position_or_state: Full state, or just a position (other states
                zero). Defaults to the model's default state.
            attitude: Initial rotation matrix; defaults to identity for
                models that track attitude

        Raises:
            ValueError: on a malformed state or a non-rotation attitude
        """
        if position_or_state is None:
            z0 = self.model.default_state()
        else:
            z0 = self.model.initial_state(np.asarray(position_or_state, dtype=np.float64))

        R0 = None
        if self.model.has_attitude:
            R0 = np.eye(3) if attitude is None else np.array(attitude, dtype=np.float64)
            if not is_rotation_matrix(R0):
                raise ValueError("Attitude must be a 3x3 rotation matrix")
        elif attitude is not None:
            raise ValueError(f"{type(self.model).__name__} does not track attitude")

        self._history = AgentHistory.initial(z0, R0, self.n_inputs)
        logger.debug("%s: reset to state %s", self.config.name, z0)

    def move_setup(
        self,
        t_move: Real,
        T_ref: RealArray,
        U_ref: RealArray,
        Z_ref: RealArray | None = None,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64] | None]:
        """Resolve the reference trajectory used for a move of duration t_move.

        The reference is cut at t_move, with an interpolated sample added
        at t_move when it falls between knots. A reference that ends before
        t_move is extended with zero input and the last desired state held.

        Args:
            t_move: Move duration [s]
            T_ref: Reference times, relative to the start of the move [s]
            U_ref: Reference inputs, shape (N, n_inputs)
            Z_ref: Desired states, shape (N, n_states), optional

        Returns:
            (T_used, U_used, Z_used), all starting at the first reference
            knot and ending at t_move

        Raises:
            ValueError: on a negative duration, a malformed reference, or a
                reference starting after time 0
        """
        t_move = float(t_move)
        T_ref = np.asarray(T_ref, dtype=np.float64)
        U_ref = np.asarray(U_ref, dtype=np.float64)
        if Z_ref is not None:
            Z_ref = np.asarray(Z_ref, dtype=np.float64)

        if not (np.isfinite(t_move) and t_move >= 0):
            raise ValueError(f"Move duration must be finite and non-negative, got {t_move}")
        validate_trajectory(T_ref, U_ref)
        if U_ref.ndim != 2 or U_ref.shape[1] != self.n_inputs:
            raise ValueError(f"Reference inputs must be shape (N, {self.n_inputs}), got {U_ref.shape}")
        if Z_ref is not None:
            validate_trajectory(T_ref, Z_ref)
            if Z_ref.ndim != 2 or Z_ref.shape[1] != self.n_states:
                raise ValueError(
                    f"Desired states must be shape (N, {self.n_states}), got {Z_ref.shape}"
                )
        if T_ref[0] > 0:
            raise ValueError(f"Reference trajectory must start at or before t = 0, got {T_ref[0]}")

        if T_ref[-1] < t_move:
            logger.warning(
                "%s: reference ends at %g s, before the move duration %g s; padding with zero input",
                self.config.name, T_ref[-1], t_move,
            )
            T_ref = np.append(T_ref, t_move)
            U_ref = np.vstack([U_ref, np.zeros((1, self.n_inputs))])
            if Z_ref is not None:
                Z_ref = np.vstack([Z_ref, Z_ref[-1:]])

        keep = T_ref <= t_move
        T_used = T_ref[keep]
        U_used = U_ref[keep]
        Z_used = None if Z_ref is None else Z_ref[keep]

        if T_used[-1] < t_move:
            T_used = np.append(T_used, t_move)
            U_used = np.vstack([U_used, match_trajectories(t_move, T_ref, U_ref)])
            if Z_ref is not None:
                Z_used = np.vstack([Z_used, match_trajectories(t_move, T_ref, Z_ref)])

        return T_used, U_used, Z_used

    def move(
        self,
        t_move: Real,
        T_ref: RealArray,
        U_ref: RealArray,
        Z_ref: RealArray | None = None,
    ) -> None:
        """Execute a reference trajectory for t_move seconds.

        Args:
            t_move: Move duration [s]
            T_ref: Reference times, relative to the start of the move [s]
            U_ref: Reference inputs, shape (N, n_inputs)
            Z_ref: Desired states, shape (N, n_states), optional
        """
        T_used, U_used, Z_used = self.move_setup(t_move, T_ref, U_ref, Z_ref)

        z_cur = self._history.last_state
        R_cur = self._history.last_attitude

        control = partial(self.controller.get_control_inputs, self)

        def fun(t, z, R):
            return self.model.dynamics(t, z, R, T_used, U_used, Z_used, control)

        result = self.model.integrate(fun, (0.0, float(t_move)), z_cur, R_cur, self.config)
        self.commit_move_data(result, T_used, U_used)

        logger.debug(
            "%s: moved %g s, %d samples in history", self.config.name, t_move, len(self._history)
        )

    def commit_move_data(
        self,
        result: IntegrationResult,
        T_used: NDArray[np.float64],
        U_used: NDArray[np.float64],
    ) -> None:
        """Append an integrated segment and the inputs used to history.

        The first sample of the segment repeats the last committed sample
        and is dropped; times are offset by the current clock.
        """
        t_offset = self._history.last_time
        attitude = result.attitude[1:] if self.model.has_attitude else None

        used = T_used > 0
        self._history.append(
            time=t_offset + result.time[1:],
            state=result.state[1:],
            attitude=attitude,
            input_time=t_offset + T_used[used],
            input=U_used[used],
        )
