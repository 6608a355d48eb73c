"""Append-only trajectory history for agents.

An agent's executed trajectory is stored as parallel, sample-major arrays
sharing one time axis. The history only grows through append(); only
reset() may replace it. Readers receive a HistorySnapshot whose arrays are
read-only copies, so rendering and analysis code cannot write back.
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray


def _frozen(arr: NDArray[np.float64]) -> NDArray[np.float64]:
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


# =============================================================================
# Snapshot
# =============================================================================


@beartype
@dataclass(frozen=True, eq=False)
class HistorySnapshot:
    """Read-only view of an agent's history.

    Attributes:
        time: Sample times, shape (N,) [s]
        state: States, shape (N, n_states)
        attitude: Rotation matrices, shape (N, 3, 3), or None for agents
            without attitude
        input_time: Times of the applied inputs, shape (M,) [s]
        input: Applied inputs, shape (M, n_inputs)
    """
    time: NDArray[np.float64]
    state: NDArray[np.float64]
    attitude: NDArray[np.float64] | None
    input_time: NDArray[np.float64]
    input: NDArray[np.float64]

    def __len__(self) -> int:
        return int(self.time.size)

    def to_dataframe(self):
        """Convert the state history to a Polars DataFrame."""
        import polars as pl

        columns = {"time": self.time}
        for j in range(self.state.shape[1]):
            columns[f"z{j}"] = self.state[:, j]
        return pl.DataFrame(columns)


# =============================================================================
# History
# =============================================================================


@beartype
class AgentHistory:
    """Growable store of time, state, attitude and input samples.

    Example:
        >>> history = AgentHistory.initial(np.zeros(9), np.eye(3), n_inputs=6)
        >>> len(history)
        1
    """

    def __init__(
        self,
        time: NDArray[np.float64],
        state: NDArray[np.float64],
        attitude: NDArray[np.float64] | None,
        input_time: NDArray[np.float64],
        input: NDArray[np.float64],
    ) -> None:
        if state.ndim != 2 or state.shape[0] != time.size:
            raise ValueError(f"State history must have {time.size} rows, got shape {state.shape}")
        if attitude is not None and attitude.shape != (time.size, 3, 3):
            raise ValueError(
                f"Attitude history must be shape ({time.size}, 3, 3), got {attitude.shape}"
            )
        if input.ndim != 2 or input.shape[0] != input_time.size:
            raise ValueError(
                f"Input history must have {input_time.size} rows, got shape {input.shape}"
            )
        self._time = time.copy()
        self._state = state.copy()
        self._attitude = None if attitude is None else attitude.copy()
        self._input_time = input_time.copy()
        self._input = input.copy()

    @classmethod
    def initial(
        cls,
        state: NDArray[np.float64],
        attitude: NDArray[np.float64] | None,
        n_inputs: int,
        time: float = 0.0,
    ) -> "AgentHistory":
        """History holding a single sample with zero input."""
        return cls(
            time=np.array([time]),
            state=state.reshape(1, -1),
            attitude=None if attitude is None else attitude.reshape(1, 3, 3),
            input_time=np.array([time]),
            input=np.zeros((1, n_inputs)),
        )

    def __len__(self) -> int:
        return int(self._time.size)

    @property
    def last_time(self) -> float:
        return float(self._time[-1])

    @property
    def last_state(self) -> NDArray[np.float64]:
        return self._state[-1].copy()

    @property
    def last_attitude(self) -> NDArray[np.float64] | None:
        return None if self._attitude is None else self._attitude[-1].copy()

    def append(
        self,
        time: NDArray[np.float64],
        state: NDArray[np.float64],
        attitude: NDArray[np.float64] | None = None,
        input_time: NDArray[np.float64] | None = None,
        input: NDArray[np.float64] | None = None,
    ) -> None:
        """Append samples after the last recorded one.

        Raises:
            ValueError: if the arrays disagree in length or width, times do
                not continue strictly increasing, or attitude is given (or
                omitted) inconsistently with the stored history
        """
        if time.size == 0:
            return
        if state.shape != (time.size, self._state.shape[1]):
            raise ValueError(
                f"Appended states must be shape ({time.size}, {self._state.shape[1]}), got {state.shape}"
            )
        if np.any(np.diff(np.concatenate([[self._time[-1]], time])) <= 0):
            raise ValueError("Appended times must be strictly increasing and after the last sample")
        if (attitude is None) != (self._attitude is None):
            raise ValueError("Attitude must be appended exactly when the history tracks attitude")
        if attitude is not None and attitude.shape != (time.size, 3, 3):
            raise ValueError(
                f"Appended attitudes must be shape ({time.size}, 3, 3), got {attitude.shape}"
            )
        has_input = input_time is not None and input is not None and input_time.size > 0
        if has_input and input.shape != (input_time.size, self._input.shape[1]):
            raise ValueError(
                f"Appended inputs must be shape ({input_time.size}, {self._input.shape[1]}), "
                f"got {input.shape}"
            )

        self._time = np.concatenate([self._time, time])
        self._state = np.concatenate([self._state, state])
        if attitude is not None:
            self._attitude = np.concatenate([self._attitude, attitude])
        if has_input:
            self._input_time = np.concatenate([self._input_time, input_time])
            self._input = np.concatenate([self._input, input])

    def snapshot(self) -> HistorySnapshot:
        """Read-only copy of the full history."""
        return HistorySnapshot(
            time=_frozen(self._time),
            state=_frozen(self._state),
            attitude=None if self._attitude is None else _frozen(self._attitude),
            input_time=_frozen(self._input_time),
            input=_frozen(self._input),
        )
