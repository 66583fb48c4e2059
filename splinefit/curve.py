"""
Piecewise cubic curve container.

The fitter hands its result over as a CubicCurve: an ordered list of
CubicPolynomial pieces, each with a duration and a 2 x 4 coefficient
matrix whose columns are ordered highest power first, so that

    pos(t) = C[:, 0] * t^3 + C[:, 1] * t^2 + C[:, 2] * t + C[:, 3]

for local time t in [0, duration].
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np


class CubicPolynomial:
    """One cubic piece of a 2D curve."""

    def __init__(self, duration: float, coeff_mat):
        coeff_mat = np.array(coeff_mat, dtype=float)
        if coeff_mat.shape != (2, 4):
            raise ValueError(f"coeff_mat must have shape (2, 4), got {coeff_mat.shape}")
        if not duration > 0:
            raise ValueError(f"duration must be > 0, got {duration}")
        self._duration = float(duration)
        self._coeff_mat = coeff_mat

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def coeff_mat(self) -> np.ndarray:
        return self._coeff_mat.copy()

    def get_pos(self, t: float) -> np.ndarray:
        """Position at local time t."""
        c = self._coeff_mat
        return ((c[:, 0] * t + c[:, 1]) * t + c[:, 2]) * t + c[:, 3]

    def get_vel(self, t: float) -> np.ndarray:
        """First derivative at local time t."""
        c = self._coeff_mat
        return (3.0 * c[:, 0] * t + 2.0 * c[:, 1]) * t + c[:, 2]

    def get_acc(self, t: float) -> np.ndarray:
        """Second derivative at local time t."""
        c = self._coeff_mat
        return 6.0 * c[:, 0] * t + 2.0 * c[:, 1]

    def __repr__(self) -> str:
        return f"CubicPolynomial(duration={self._duration}, coeff_mat={self._coeff_mat.tolist()})"


class CubicCurve:
    """Ordered sequence of cubic pieces evaluated in global time."""

    def __init__(self, pieces: Optional[Iterable[CubicPolynomial]] = None):
        self._pieces: List[CubicPolynomial] = list(pieces) if pieces is not None else []

    def clear(self) -> None:
        self._pieces = []

    def append(self, piece: CubicPolynomial) -> None:
        self._pieces.append(piece)

    def __len__(self) -> int:
        return len(self._pieces)

    def __getitem__(self, index: int) -> CubicPolynomial:
        return self._pieces[index]

    def __iter__(self) -> Iterator[CubicPolynomial]:
        return iter(self._pieces)

    @property
    def piece_count(self) -> int:
        return len(self._pieces)

    @property
    def durations(self) -> np.ndarray:
        return np.array([piece.duration for piece in self._pieces])

    @property
    def total_duration(self) -> float:
        return float(sum(piece.duration for piece in self._pieces))

    def positions(self) -> np.ndarray:
        """Junction points of the curve, head to tail, shape (piece_count + 1, 2)."""
        if not self._pieces:
            return np.zeros((0, 2))
        points = [piece.get_pos(0.0) for piece in self._pieces]
        last = self._pieces[-1]
        points.append(last.get_pos(last.duration))
        return np.array(points)

    def locate_piece(self, t: float) -> Tuple[int, float]:
        """Map global time t to (piece index, local time).

        Times outside [0, total_duration] fall on the first or last piece,
        which is then evaluated as an extrapolation.
        """
        if not self._pieces:
            raise IndexError("curve has no pieces")
        for idx, piece in enumerate(self._pieces[:-1]):
            if t <= piece.duration:
                return idx, t
            t -= piece.duration
        return len(self._pieces) - 1, t

    def get_pos(self, t: float) -> np.ndarray:
        idx, local_t = self.locate_piece(t)
        return self._pieces[idx].get_pos(local_t)

    def get_vel(self, t: float) -> np.ndarray:
        idx, local_t = self.locate_piece(t)
        return self._pieces[idx].get_vel(local_t)

    def get_acc(self, t: float) -> np.ndarray:
        idx, local_t = self.locate_piece(t)
        return self._pieces[idx].get_acc(local_t)
