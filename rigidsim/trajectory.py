"""Linear interpolation of time-indexed trajectories.

Reference trajectories are stored sample-major: a time vector of shape (N,)
and a value array of shape (N,) or (N, n). Interpolating at a query time
returns one row.

Example:
    >>> T = np.array([0.0, 1.0, 2.0])
    >>> U = np.array([[0.0, 0.0], [1.0, 2.0], [2.0, 4.0]])
    >>> match_trajectories(0.5, T, U)
    array([0.5, 1. ])
"""

from enum import Enum

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# Numeric inputs accepted at public entry points, converted to float64
Real = float | int
RealArray = NDArray[np.integer] | NDArray[np.floating]

# Query times this close to either end of a trajectory count as in range
TIME_TOLERANCE: float = 1e-9  # [s]


class ExtrapolationPolicy(Enum):
    """What to do with query times outside a trajectory's time span."""
    ERROR = "error"
    CLAMP = "clamp"


@beartype
def validate_trajectory(
    times: RealArray,
    values: RealArray,
) -> None:
    """Check that a (times, values) pair is a usable trajectory.

    Raises:
        ValueError: if times is not a non-empty strictly increasing vector
            or values does not have one row per time sample
    """
    if times.ndim != 1 or times.size == 0:
        raise ValueError(f"Trajectory times must be a non-empty 1-D array, got shape {times.shape}")
    if not np.all(np.isfinite(times)):
        raise ValueError("Trajectory times must be finite")
    if np.any(np.diff(times) <= 0):
        raise ValueError("Trajectory times must be strictly increasing")
    if values.ndim not in (1, 2) or values.shape[0] != times.size:
        raise ValueError(
            f"Trajectory values must have {times.size} rows, got shape {values.shape}"
        )


@beartype
def match_trajectories(
    t: Real,
    times: RealArray,
    values: RealArray,
    policy: ExtrapolationPolicy = ExtrapolationPolicy.ERROR,
) -> NDArray[np.float64]:
    """Linearly interpolate a trajectory at time t.

    Args:
        t: Query time [s]
        times: Knot times, shape (N,), strictly increasing
        values: Knot values, shape (N,) or (N, n)
        policy: Out-of-range behavior

    Returns:
        Interpolated value, shape () for 1-D values or (n,) otherwise

    Raises:
        ValueError: if the trajectory is malformed, or t is outside
            [times[0], times[-1]] and policy is ERROR
    """
    times = np.asarray(times, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    validate_trajectory(times, values)

    t_start, t_end = times[0], times[-1]
    if t < t_start - TIME_TOLERANCE or t > t_end + TIME_TOLERANCE:
        if policy is ExtrapolationPolicy.ERROR:
            raise ValueError(
                f"Query time {t} is outside the trajectory span [{t_start}, {t_end}]"
            )
    t = float(np.clip(t, t_start, t_end))

    if values.ndim == 1:
        return np.asarray(np.interp(t, times, values), dtype=np.float64)

    # Exact at knots, including single-sample trajectories
    idx = np.searchsorted(times, t)
    if idx < times.size and times[idx] == t:
        return values[idx].astype(np.float64, copy=True)

    return np.array([np.interp(t, times, values[:, j]) for j in range(values.shape[1])])
