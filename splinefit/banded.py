"""
Banded linear system with in-place LU factorization.

A is an N x N band matrix with lower bandwidth p and upper bandwidth q.
Only the in-band entries are stored, in a flat buffer of N * (p + q + 1)
values laid out as in Golub & Van Loan, "Matrix Computations": entry
(i, j) lives at offset (i - j + q) * N + j.

The factorization is Doolittle LU without pivoting, so it costs
O(N * p * q) and each solve costs O(N * (p + q)) per right-hand-side
column. That makes tridiagonal systems linear in N, but it also means the
matrix must be safe to eliminate without row exchanges (e.g. diagonally
dominant). Pivots at or below ``pivot_tolerance`` in magnitude raise
NumericalInstabilityError instead of producing garbage.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional

import numpy as np

from splinefit.config import DEFAULT_PIVOT_TOLERANCE
from splinefit.exceptions import (
    BandIndexError,
    NumericalInstabilityError,
    RightHandSideError,
    SystemStateError,
)
from splinefit.logging import LOG_DEBUG, timed


class BandState(Enum):
    """Meaning of the stored band."""

    UNALLOCATED = "unallocated"
    UNFACTORED = "unfactored"  # storage holds A
    FACTORED = "factored"  # storage holds unit-lower L and U packed together


class BandedLinearSystem:
    """Band matrix supporting LU factorization and multi-column solves."""

    def __init__(
        self,
        size: int = 0,
        lower_bandwidth: int = 0,
        upper_bandwidth: int = 0,
        pivot_tolerance: float = DEFAULT_PIVOT_TOLERANCE,
    ):
        """Initialize a banded system, allocating storage when ``size`` > 0.

        Args:
            size: Number of unknowns N.
            lower_bandwidth: Number of sub-diagonals p.
            upper_bandwidth: Number of super-diagonals q.
            pivot_tolerance: Pivots with magnitude <= this value are rejected.
        """
        if pivot_tolerance < 0 or not math.isfinite(pivot_tolerance):
            raise ValueError("pivot_tolerance must be a finite value >= 0")
        self.pivot_tolerance = float(pivot_tolerance)

        self._size = 0
        self._lower = 0
        self._upper = 0
        self._data: Optional[np.ndarray] = None
        self._state = BandState.UNALLOCATED

        if size > 0:
            self.create(size, lower_bandwidth, upper_bandwidth)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, size: int, lower_bandwidth: int, upper_bandwidth: int) -> None:
        """(Re)allocate zeroed storage for an N x N band matrix.

        Any previous buffer is dropped and replaced.
        """
        if int(size) != size or size < 1:
            raise ValueError(f"size must be an integer >= 1, got {size}")
        if int(lower_bandwidth) != lower_bandwidth or lower_bandwidth < 0:
            raise ValueError(f"lower_bandwidth must be an integer >= 0, got {lower_bandwidth}")
        if int(upper_bandwidth) != upper_bandwidth or upper_bandwidth < 0:
            raise ValueError(f"upper_bandwidth must be an integer >= 0, got {upper_bandwidth}")

        self._size = int(size)
        self._lower = int(lower_bandwidth)
        self._upper = int(upper_bandwidth)
        self._data = np.zeros(self._size * (self._lower + self._upper + 1))
        self._state = BandState.UNFACTORED

        LOG_DEBUG(
            f"Created banded system N={self._size}, p={self._lower}, q={self._upper}, "
            f"storage={self._data.size}"
        )

    def reset(self) -> None:
        """Zero all in-band entries, keeping the dimensions."""
        self._require_allocated("reset")
        self._data.fill(0.0)
        self._state = BandState.UNFACTORED

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return self._size

    @property
    def lower_bandwidth(self) -> int:
        return self._lower

    @property
    def upper_bandwidth(self) -> int:
        return self._upper

    @property
    def storage_size(self) -> int:
        """Number of stored values, N * (p + q + 1); 0 before create()."""
        return 0 if self._data is None else self._data.size

    @property
    def state(self) -> BandState:
        return self._state

    @property
    def is_factorized(self) -> bool:
        return self._state is BandState.FACTORED

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    def in_band(self, i: int, j: int) -> bool:
        """Whether (i, j) is a stored position."""
        return (
            0 <= i < self._size
            and 0 <= j < self._size
            and i - j <= self._lower
            and j - i <= self._upper
        )

    def _offset(self, i: int, j: int) -> int:
        if not self.in_band(i, j):
            raise BandIndexError(i, j, self._lower, self._upper, self._size)
        return (i - j + self._upper) * self._size + j

    def get_element(self, i: int, j: int) -> float:
        """Get the stored entry (i, j).

        After factorize() this is the packed L (below the diagonal) or U
        (on and above the diagonal) entry, not the original matrix value.
        """
        self._require_allocated("read an element")
        return float(self._data[self._offset(i, j)])

    def set_element(self, i: int, j: int, value: float) -> None:
        """Set the entry (i, j) of the unfactored matrix."""
        if self._state is not BandState.UNFACTORED:
            raise SystemStateError("write an element", self._state)
        self._data[self._offset(i, j)] = value

    def __getitem__(self, index) -> float:
        i, j = index
        return self.get_element(i, j)

    def __setitem__(self, index, value: float) -> None:
        i, j = index
        self.set_element(i, j, value)

    def to_dense(self) -> np.ndarray:
        """Materialize the stored band as a dense N x N array."""
        self._require_allocated("materialize the matrix")
        n = self._size
        dense = np.zeros((n, n))
        for j in range(n):
            for i in range(max(0, j - self._upper), min(n, j + self._lower + 1)):
                dense[i, j] = self._data[(i - j + self._upper) * n + j]
        return dense

    # ------------------------------------------------------------------
    # Factorization and solves
    # ------------------------------------------------------------------

    def _check_pivot(self, k: int, pivot: float) -> None:
        if not math.isfinite(pivot) or abs(pivot) <= self.pivot_tolerance:
            raise NumericalInstabilityError(k, pivot)

    @timed
    def factorize(self) -> None:
        """Banded LU factorization in place.

        NO pivoting is applied. Multipliers are stored in the lower band
        and U overwrites the diagonal and upper band.

        Raises:
            NumericalInstabilityError: A pivot is not finite or its magnitude
                is <= pivot_tolerance. The storage is then partially
                eliminated; refill it after reset() before retrying.
        """
        if self._state is not BandState.UNFACTORED:
            raise SystemStateError("factorize", self._state)

        n, p, q = self._size, self._lower, self._upper
        a = self._data

        for k in range(n - 1):
            pivot = a[q * n + k]
            self._check_pivot(k, pivot)

            i_max = min(k + p, n - 1)
            for i in range(k + 1, i_max + 1):
                pos = (i - k + q) * n + k
                if a[pos] != 0.0:
                    a[pos] /= pivot

            j_max = min(k + q, n - 1)
            for j in range(k + 1, j_max + 1):
                u_kj = a[(k - j + q) * n + j]
                if u_kj == 0.0:
                    continue
                for i in range(k + 1, i_max + 1):
                    l_ik = a[(i - k + q) * n + k]
                    if l_ik != 0.0:
                        a[(i - j + q) * n + j] -= l_ik * u_kj

        # the last diagonal entry is only divided by during back substitution
        self._check_pivot(n - 1, a[q * n + n - 1])

        self._state = BandState.FACTORED
        LOG_DEBUG(f"Factorized banded system N={n}, p={p}, q={q}")

    def _check_rhs(self, b, operation: str) -> None:
        if not self.is_factorized:
            raise SystemStateError(operation, self._state)
        if not isinstance(b, np.ndarray):
            raise RightHandSideError(f"expected numpy.ndarray, got {type(b).__name__}")
        if b.ndim not in (1, 2) or b.shape[0] != self._size:
            raise RightHandSideError(
                f"expected shape ({self._size},) or ({self._size}, m), got {b.shape}"
            )
        if not np.issubdtype(b.dtype, np.floating):
            raise RightHandSideError(f"expected a floating dtype, got {b.dtype}")
        if not b.flags.writeable:
            raise RightHandSideError("array is read-only")

    def solve(self, b: np.ndarray) -> np.ndarray:
        """Solve A x = b, storing x in b.

        Args:
            b: Float array of shape (N,) or (N, m); m columns are solved at once.

        Returns:
            ``b``, overwritten with the solution.
        """
        self._check_rhs(b, "solve")
        n, p, q = self._size, self._lower, self._upper
        a = self._data

        # forward substitution with unit-lower L
        for j in range(n):
            i_max = min(j + p, n - 1)
            for i in range(j + 1, i_max + 1):
                l_ij = a[(i - j + q) * n + j]
                if l_ij != 0.0:
                    b[i] -= l_ij * b[j]

        # back substitution with U
        for j in range(n - 1, -1, -1):
            b[j] /= a[q * n + j]
            for i in range(max(0, j - q), j):
                u_ij = a[(i - j + q) * n + j]
                if u_ij != 0.0:
                    b[i] -= u_ij * b[j]

        return b

    def solve_transpose(self, b: np.ndarray) -> np.ndarray:
        """Solve A^T x = b, storing x in b.

        A^T = U^T L^T, so this runs forward through U^T and then backward
        through L^T. Used for adjoint computations.
        """
        self._check_rhs(b, "solve the transposed system")
        n, p, q = self._size, self._lower, self._upper
        a = self._data

        for j in range(n):
            b[j] /= a[q * n + j]
            i_max = min(j + q, n - 1)
            for i in range(j + 1, i_max + 1):
                u_ji = a[(j - i + q) * n + i]
                if u_ji != 0.0:
                    b[i] -= u_ji * b[j]

        for j in range(n - 1, -1, -1):
            for i in range(max(0, j - p), j):
                l_ji = a[(j - i + q) * n + i]
                if l_ji != 0.0:
                    b[i] -= l_ji * b[j]

        return b

    def _require_allocated(self, operation: str) -> None:
        if self._state is BandState.UNALLOCATED:
            raise SystemStateError(operation, self._state)

    def __repr__(self) -> str:
        return (
            f"BandedLinearSystem(size={self._size}, lower_bandwidth={self._lower}, "
            f"upper_bandwidth={self._upper}, state={self._state.name})"
        )
