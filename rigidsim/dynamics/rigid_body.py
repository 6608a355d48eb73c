"""Rigid-body equations of motion on SO(3) x R^9.

Computes the time derivative of the state z = [position, velocity,
angular velocity] from a force/moment input interpolated out of a
reference trajectory.

The equations use:
- Kinematics: position_dot = velocity
- Translational motion: velocity_dot = F, where F is a specific force
  (force per unit mass). Mass is carried as a parameter but does not
  enter this equation.
- Euler's equations for rotational motion: J * omega_dot = M - omega x (J * omega)

Gravity, when enabled, adds g * gravity_direction to F.

Example:
    >>> params = RigidBodyParams(mass=1.0, inertia=np.eye(3))
    >>> T_ref = np.array([0.0, 1.0])
    >>> U_ref = np.zeros((2, 6))
    >>> z = np.zeros(9)
    >>> zd = rigid_body_derivative(0.0, z, np.eye(3), T_ref, U_ref, params)
    >>> zd[3:6]  # gravity only
    array([ 0.  ,  0.  , -9.81])
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.dynamics.state import (
    ANGULAR_VELOCITY_INDICES,
    FORCE_INDICES,
    MOMENT_INDICES,
    N_INPUTS,
    VELOCITY_INDICES,
)
from rigidsim.trajectory import Real, RealArray, match_trajectories

# Standard gravity used by default [m/s^2]
G_DEFAULT: float = 9.81

# Signature of a control law: (t, z, T_ref, U_ref, Z_ref) -> U
ControlFn = Callable[
    [float, NDArray[np.float64], NDArray[np.float64], NDArray[np.float64], NDArray[np.float64] | None],
    NDArray[np.float64],
]

# =============================================================================
# Parameters
# =============================================================================


@beartype
@dataclass(frozen=True, eq=False)
class RigidBodyParams:
    """Physical parameters of a rigid body.

    Attributes:
        mass: Body mass [kg]
        inertia: 3x3 inertia matrix [kg*m^2]
        g: Gravity magnitude [m/s^2]
        gravity_on: Whether gravity is added to the input force
        gravity_direction: Unit vector gravity acts along
        inertia_inv: Inverse of the inertia matrix, computed at construction
    """
    mass: Real = 1.0
    inertia: RealArray = field(default_factory=lambda: np.eye(3))
    g: Real = G_DEFAULT
    gravity_on: bool = True
    gravity_direction: RealArray = field(
        default_factory=lambda: np.array([0.0, 0.0, -1.0])
    )
    inertia_inv: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate parameters and invert the inertia matrix."""
        # frozen dataclass: assign through object.__setattr__
        object.__setattr__(self, "mass", float(self.mass))
        object.__setattr__(self, "g", float(self.g))
        object.__setattr__(self, "inertia", np.asarray(self.inertia, dtype=np.float64))
        object.__setattr__(
            self, "gravity_direction", np.asarray(self.gravity_direction, dtype=np.float64)
        )

        if self.mass <= 0:
            raise ValueError(f"Mass must be positive, got {self.mass}")
        if self.inertia.shape != (3, 3):
            raise ValueError(f"Inertia must be shape (3, 3), got {self.inertia.shape}")
        if self.gravity_direction.shape != (3,):
            raise ValueError(
                f"Gravity direction must be shape (3,), got {self.gravity_direction.shape}"
            )
        norm = np.linalg.norm(self.gravity_direction)
        if norm < 1e-12:
            raise ValueError("Gravity direction must be nonzero")

        try:
            inertia_inv = np.linalg.inv(self.inertia)
        except np.linalg.LinAlgError as err:
            raise ValueError("Inertia matrix must be invertible") from err

        inertia = self.inertia.copy()
        direction = self.gravity_direction / norm
        inertia.setflags(write=False)
        direction.setflags(write=False)
        inertia_inv.setflags(write=False)

        object.__setattr__(self, "inertia", inertia)
        object.__setattr__(self, "gravity_direction", direction)
        object.__setattr__(self, "inertia_inv", inertia_inv)

    @property
    def gravity_vector(self) -> NDArray[np.float64]:
        """Gravitational specific force [m/s^2], zero when gravity is off."""
        if not self.gravity_on:
            return np.zeros(3)
        return self.g * self.gravity_direction


# =============================================================================
# Equations of Motion
# =============================================================================


@beartype
def euler_rotational_dynamics(
    omega: NDArray[np.float64],
    moment: NDArray[np.float64],
    inertia: NDArray[np.float64],
    inertia_inv: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Compute angular acceleration from Euler's equations.

    Args:
        omega: Angular velocity [rad/s]
        moment: Applied moment [N*m]
        inertia: 3x3 inertia matrix [kg*m^2]
        inertia_inv: Inverse of the inertia matrix

    Returns:
        Angular acceleration J^-1 (M - omega x (J omega)) [rad/s^2]
    """
    gyroscopic = np.cross(omega, inertia @ omega)
    return inertia_inv @ (moment - gyroscopic)


@beartype
def reference_input(
    t: float,
    z: NDArray[np.float64],
    T_ref: NDArray[np.float64],
    U_ref: NDArray[np.float64],
    Z_ref: NDArray[np.float64] | None = None,
) -> NDArray[np.float64]:
    """Default control law: the reference input interpolated at t."""
    return match_trajectories(t, T_ref, U_ref)


@beartype
def rigid_body_derivative(
    t: float,
    z: NDArray[np.float64],
    R: NDArray[np.float64],
    T_ref: NDArray[np.float64],
    U_ref: NDArray[np.float64],
    params: RigidBodyParams,
    Z_ref: NDArray[np.float64] | None = None,
    control: ControlFn | None = None,
) -> NDArray[np.float64]:
    """Compute dz/dt for the rigid body.

    Args:
        t: Time since the start of the reference trajectory [s]
        z: State vector [position; velocity; angular velocity], shape (9,)
        R: Current attitude. Not used by these dynamics; accepted so the
            integrator can call every dynamics function the same way.
        T_ref: Reference times, shape (N,)
        U_ref: Reference inputs [force; moment], shape (N, 6)
        params: Physical parameters
        Z_ref: Optional desired states, shape (N, 9), passed to control
        control: Control law producing U; defaults to interpolating U_ref

    Returns:
        State derivative, shape (9,)
    """
    if control is None:
        control = reference_input
    U = control(t, z, T_ref, U_ref, Z_ref)
    if U.shape != (N_INPUTS,):
        raise ValueError(f"Control input must be shape ({N_INPUTS},), got {U.shape}")

    F = U[FORCE_INDICES] + params.gravity_vector
    M = U[MOMENT_INDICES]

    position_dot = z[VELOCITY_INDICES]
    velocity_dot = F
    omega = z[ANGULAR_VELOCITY_INDICES]
    angular_velocity_dot = euler_rotational_dynamics(
        omega, M, params.inertia, params.inertia_inv
    )

    return np.concatenate([position_dot, velocity_dot, angular_velocity_dot])

