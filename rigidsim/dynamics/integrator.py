"""Fixed-step integration on R^n x SO(3).

The state vector is advanced with forward Euler. The attitude is advanced
by composing with the exponential of the angular velocity's hat map,

    R_{k+1} = expm(h * skew(omega_k)) @ R_k

so every attitude sample stays a rotation matrix, with omega_k held
constant over the step.

Example:
    >>> def f(t, z, R):
    ...     return np.zeros_like(z)
    >>> result = ode1_with_so3(f, (0.0, 1.0), np.zeros(9), np.eye(3), dt=0.1)
    >>> result.time.shape, result.state.shape, result.attitude.shape
    ((11,), (11, 9), (11, 3, 3))
"""

import logging
from collections.abc import Callable
from typing import NamedTuple

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.dynamics.so3 import project_to_so3, skew, so3_exp
from rigidsim.dynamics.state import ANGULAR_VELOCITY_INDICES
from rigidsim.trajectory import Real, RealArray

logger = logging.getLogger(__name__)

# Signature of an integrable dynamics function: (t, z, R) -> dz/dt
DerivativeFn = Callable[[float, NDArray[np.float64], NDArray[np.float64]], NDArray[np.float64]]

DEFAULT_TIME_STEP: float = 0.05  # [s]


class IntegrationResult(NamedTuple):
    """Trajectory segment produced by the integrator.

    Samples are stored sample-major; row k of every array belongs to time[k].
    """
    time: NDArray[np.float64]      # (N,) [s]
    state: NDArray[np.float64]     # (N, n_states)
    attitude: NDArray[np.float64]  # (N, 3, 3)


@beartype
def time_grid(tspan: tuple[Real, Real], dt: Real) -> NDArray[np.float64]:
    """Fixed-step time grid from tspan[0] to tspan[1].

    The grid is tspan[0] + k*dt, with the final sample placed exactly at
    tspan[1]; the last step is shorter when dt does not divide the span.

    Raises:
        ValueError: if dt is not positive, or the span is not finite and
            non-decreasing
    """
    t0, t1 = float(tspan[0]), float(tspan[1])
    dt = float(dt)
    if not (np.isfinite(t0) and np.isfinite(t1)):
        raise ValueError(f"Time span must be finite, got {tspan}")
    if t1 < t0:
        raise ValueError(f"Time span must be non-decreasing, got {tspan}")
    if not dt > 0:
        raise ValueError(f"Time step must be positive, got {dt}")

    if t1 == t0:
        return np.array([t0])

    # Ignore a final step shorter than this fraction of dt, to absorb roundoff
    n_steps = int(np.ceil((t1 - t0) / dt - 1e-9))
    n_steps = max(n_steps, 1)
    grid = t0 + dt * np.arange(n_steps + 1, dtype=np.float64)
    grid[-1] = t1
    return grid


@beartype
def ode1_with_so3(
    fun: DerivativeFn,
    tspan: tuple[Real, Real],
    y0: RealArray,
    R0: RealArray,
    dt: Real = DEFAULT_TIME_STEP,
    angular_velocity_indices: slice = ANGULAR_VELOCITY_INDICES,
    reorthonormalize: bool = True,
) -> IntegrationResult:
    """Integrate state and attitude with explicit Euler on R^n x SO(3).

    Args:
        fun: Dynamics function (t, z, R) -> dz/dt
        tspan: (start, end) times [s]
        y0: Initial state, shape (n,)
        R0: Initial attitude, shape (3, 3)
        dt: Time step [s]
        angular_velocity_indices: Location of the angular velocity in the state
        reorthonormalize: Project each new attitude onto SO(3) to remove
            accumulated roundoff

    Returns:
        IntegrationResult with every intermediate sample, including the
        initial one

    Raises:
        ValueError: on a malformed time span, step or initial condition
    """
    y0 = np.asarray(y0, dtype=np.float64)
    R0 = np.asarray(R0, dtype=np.float64)
    if y0.ndim != 1 or y0.size == 0:
        raise ValueError(f"Initial state must be a non-empty 1-D array, got shape {y0.shape}")
    if R0.shape != (3, 3):
        raise ValueError(f"Initial attitude must be shape (3, 3), got {R0.shape}")

    tout = time_grid(tspan, dt)
    n_samples = tout.size

    yout = np.empty((n_samples, y0.size))
    Rout = np.empty((n_samples, 3, 3))
    yout[0] = y0
    Rout[0] = R0

    for k in range(1, n_samples):
        t_prev = float(tout[k - 1])
        h = float(tout[k] - tout[k - 1])
        z_prev = yout[k - 1]
        R_prev = Rout[k - 1]

        zd = fun(t_prev, z_prev.copy(), R_prev.copy())
        if zd.shape != y0.shape:
            raise ValueError(f"Dynamics returned shape {zd.shape}, expected {y0.shape}")

        yout[k] = z_prev + h * zd

        omega = z_prev[angular_velocity_indices]
        R_next = so3_exp(h * skew(omega)) @ R_prev
        if reorthonormalize:
            R_next = project_to_so3(R_next)
        Rout[k] = R_next

    logger.debug(
        "Integrated %d steps over [%g, %g] with dt=%g", n_samples - 1, tspan[0], tspan[1], dt
    )

    return IntegrationResult(time=tout, state=yout, attitude=Rout)
