"""Rotation group utilities.

Attitude is carried as a 3x3 rotation matrix R in SO(3). Angular velocity
vectors map to the Lie algebra so(3) through the hat map (skew), and back
through the vee map. The exponential map takes so(3) to SO(3).

Example:
    >>> omega = np.array([0.0, 0.0, np.pi / 2])
    >>> R = so3_exp(skew(omega))  # quarter turn about z
"""

import numpy as np
from beartype import beartype
from numpy.typing import NDArray
from scipy.linalg import expm


@beartype
def skew(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hat map: 3-vector to the skew-symmetric matrix with skew(a) @ b = a x b."""
    if v.shape != (3,):
        raise ValueError(f"skew expects a vector of shape (3,), got {v.shape}")
    x, y, z = v
    return np.array([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0],
    ])


@beartype
def vee(S: NDArray[np.float64]) -> NDArray[np.float64]:
    """Vee map: inverse of skew."""
    if S.shape != (3, 3):
        raise ValueError(f"vee expects a matrix of shape (3, 3), got {S.shape}")
    return np.array([S[2, 1], S[0, 2], S[1, 0]])


@beartype
def so3_exp(S: NDArray[np.float64]) -> NDArray[np.float64]:
    """Matrix exponential of a skew-symmetric matrix."""
    return expm(S)


@beartype
def project_to_so3(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """Nearest rotation matrix to R in the Frobenius norm.

    Uses the SVD R = U S V^T and returns U V^T, flipping the last singular
    direction if needed so that det = +1.
    """
    U, _, Vt = np.linalg.svd(R)
    D = np.eye(3)
    D[2, 2] = np.sign(np.linalg.det(U @ Vt))
    return U @ D @ Vt


@beartype
def orthonormality_error(R: NDArray[np.float64]) -> float:
    """Frobenius norm of R^T R - I."""
    return float(np.linalg.norm(R.T @ R - np.eye(3)))


@beartype
def is_rotation_matrix(R: NDArray[np.float64], atol: float = 1e-6) -> bool:
    """Check that R is 3x3, orthonormal and has determinant +1."""
    if R.shape != (3, 3):
        return False
    return bool(orthonormality_error(R) < atol and abs(np.linalg.det(R) - 1.0) < atol)
