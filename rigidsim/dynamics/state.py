"""Rigid-body state vector layout.

The state vector z contains:
- Position (3): [x, y, z] in the world frame [m]
- Velocity (3): [vx, vy, vz] in the world frame [m/s]
- Angular velocity (3): [wx, wy, wz] [rad/s]

Total: 9 state variables. Attitude is not part of z; it is carried
alongside as a rotation matrix R in SO(3) and advanced by the integrator.
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from rigidsim.dynamics.so3 import is_rotation_matrix

# =============================================================================
# Index Layout
# =============================================================================

N_STATES: int = 9
N_INPUTS: int = 6  # force (3) followed by moment (3)

POSITION_INDICES = slice(0, 3)
VELOCITY_INDICES = slice(3, 6)
ANGULAR_VELOCITY_INDICES = slice(6, 9)

FORCE_INDICES = slice(0, 3)
MOMENT_INDICES = slice(3, 6)


# =============================================================================
# State Class
# =============================================================================


@beartype
@dataclass
class RigidBodyState:
    """Rigid-body state at one instant.

    Attributes:
        position: [x, y, z] [m]
        velocity: [vx, vy, vz] [m/s]
        angular_velocity: [wx, wy, wz] [rad/s]
        attitude: 3x3 rotation matrix
        time: simulation time [s]
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    angular_velocity: NDArray[np.float64]
    attitude: NDArray[np.float64] = field(default_factory=lambda: np.eye(3))
    time: float = 0.0

    def __post_init__(self) -> None:
        """Validate shapes and attitude."""
        if self.position.shape != (3,):
            raise ValueError(f"Position must be shape (3,), got {self.position.shape}")
        if self.velocity.shape != (3,):
            raise ValueError(f"Velocity must be shape (3,), got {self.velocity.shape}")
        if self.angular_velocity.shape != (3,):
            raise ValueError(f"Angular velocity must be shape (3,), got {self.angular_velocity.shape}")
        if not is_rotation_matrix(self.attitude):
            raise ValueError("Attitude must be a 3x3 rotation matrix")

    def to_array(self) -> NDArray[np.float64]:
        """Convert to the flat 9-element state vector."""
        return np.concatenate([self.position, self.velocity, self.angular_velocity])

    @classmethod
    def from_array(
        cls,
        z: NDArray[np.float64],
        attitude: NDArray[np.float64] | None = None,
        time: float = 0.0,
    ) -> "RigidBodyState":
        """Create state from a flat 9-element vector."""
        if z.shape != (N_STATES,):
            raise ValueError(f"State vector must be shape ({N_STATES},), got {z.shape}")
        return cls(
            position=z[POSITION_INDICES].copy(),
            velocity=z[VELOCITY_INDICES].copy(),
            angular_velocity=z[ANGULAR_VELOCITY_INDICES].copy(),
            attitude=np.eye(3) if attitude is None else attitude.copy(),
            time=time,
        )

    @property
    def speed(self) -> float:
        """Speed magnitude [m/s]."""
        return float(np.linalg.norm(self.velocity))

    @property
    def body_axes(self) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
        """Body x, y, z axes expressed in the world frame (columns of R)."""
        return self.attitude[:, 0], self.attitude[:, 1], self.attitude[:, 2]
