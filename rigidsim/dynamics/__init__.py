"""Dynamics module for rigid-body simulation on SO(3).

This module provides the equations of motion, the state layout and a
fixed-step integrator that keeps attitude on the rotation group.

Example:
    >>> from rigidsim.dynamics import RigidBodyParams, rigid_body_derivative, ode1_with_so3
    >>> import numpy as np
    >>>
    >>> params = RigidBodyParams(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]))
    >>> T_ref, U_ref = np.array([0.0, 1.0]), np.zeros((2, 6))
    >>> f = lambda t, z, R: rigid_body_derivative(t, z, R, T_ref, U_ref, params)
    >>> result = ode1_with_so3(f, (0.0, 1.0), np.zeros(9), np.eye(3))
"""

from rigidsim.dynamics.integrator import (
    DEFAULT_TIME_STEP,
    IntegrationResult,
    ode1_with_so3,
    time_grid,
)
from rigidsim.dynamics.rigid_body import (
    G_DEFAULT,
    RigidBodyParams,
    euler_rotational_dynamics,
    reference_input,
    rigid_body_derivative,
)
from rigidsim.dynamics.so3 import (
    is_rotation_matrix,
    orthonormality_error,
    project_to_so3,
    skew,
    so3_exp,
    vee,
)
from rigidsim.dynamics.state import (
    ANGULAR_VELOCITY_INDICES,
    N_INPUTS,
    N_STATES,
    POSITION_INDICES,
    VELOCITY_INDICES,
    RigidBodyState,
)

__all__ = [
    # State
    "RigidBodyState",
    "N_STATES",
    "N_INPUTS",
    "POSITION_INDICES",
    "VELOCITY_INDICES",
    "ANGULAR_VELOCITY_INDICES",
    # SO(3) utilities
    "skew",
    "vee",
    "so3_exp",
    "project_to_so3",
    "orthonormality_error",
    "is_rotation_matrix",
    # Rigid body dynamics
    "G_DEFAULT",
    "RigidBodyParams",
    "euler_rotational_dynamics",
    "reference_input",
    "rigid_body_derivative",
    # Integration
    "DEFAULT_TIME_STEP",
    "IntegrationResult",
    "ode1_with_so3",
    "time_grid",
]
