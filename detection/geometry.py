"""
Projective Geometry Helpers

Homographies between the unit square and detected quads, the adjugate used
as a scale-free inverse, and the calibration projector that maps video pixels
into the unit square spanned by the knob points.
"""

import cv2
import numpy as np
from typing import Sequence, Tuple, Optional


UNIT_SQUARE = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float32)


def cross(a, b) -> float:
    """2-D cross product (z component)."""
    return float(a[0] * b[1] - a[1] * b[0])


def forward_projection_matrix(points: Sequence) -> np.ndarray:
    """Homography taking the unit square corners (TL, TR, BR, BL) to `points`."""
    dst = np.asarray(points, dtype=np.float32).reshape(4, 2)
    return cv2.getPerspectiveTransform(UNIT_SQUARE, dst)


def adjugate(matrix: np.ndarray) -> np.ndarray:
    """
    Classical adjoint of a 3x3 matrix.

    Equal to det(M) * inv(M), so for a homography it is an inverse up to scale
    and stays defined as long as the projective mapping is.
    """
    m = np.asarray(matrix, dtype=np.float64)
    c0, c1, c2 = m[:, 0], m[:, 1], m[:, 2]
    return np.array([np.cross(c1, c2), np.cross(c2, c0), np.cross(c0, c1)])


def project_points(points, matrix: np.ndarray) -> np.ndarray:
    """Project (N, 2) points through a homography."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 1, 2)
    if len(pts) == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return cv2.perspectiveTransform(pts, np.asarray(matrix, dtype=np.float64)).reshape(-1, 2)


def project_point(point, matrix: np.ndarray) -> np.ndarray:
    return project_points([point], matrix)[0]


def shrink_points(amount: float, points) -> np.ndarray:
    """Move every vertex of a polygon `amount` along both of its edges."""
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    shrunk = []
    for i in range(n):
        point = pts[i]
        moved = point.copy()
        for other in (pts[(i + 1) % n], pts[(i - 1) % n]):
            vec = other - point
            length = np.linalg.norm(vec)
            if length > 0:
                moved += vec * (amount / length)
        shrunk.append(moved)
    return np.array(shrunk)


class UnitSquareProjector:
    """
    Maps between video pixels and the calibrated unit square.

    The homography is derived from the knob points and memoized; it is only
    rebuilt when different knob points are passed to `update`.
    """

    def __init__(self, knob_points: Optional[Sequence] = None):
        self._key = None
        self.forward = None
        self.inverse = None
        if knob_points is not None:
            self.update(knob_points)

    def update(self, knob_points: Sequence) -> bool:
        """Return True if the cached matrices were recomputed."""
        key = tuple((float(x), float(y)) for x, y in knob_points)
        if key == self._key:
            return False
        self._key = key
        self.forward = forward_projection_matrix(key)
        self.inverse = adjugate(self.forward)
        return True

    def to_unit_square(self, points, frame_size: Tuple[int, int]) -> np.ndarray:
        """Video pixel points -> unit square. frame_size is (width, height)."""
        normalized = np.asarray(points, dtype=np.float64).reshape(-1, 2) / np.array(frame_size, dtype=np.float64)
        return project_points(normalized, self.inverse)

    def to_video(self, points, frame_size: Tuple[int, int]) -> np.ndarray:
        """Unit square points -> video pixels."""
        return project_points(points, self.forward) * np.array(frame_size, dtype=np.float64)

    def region_of_interest(self, frame_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
        """Bounding box (x, y, w, h) of the knob points, clamped to the frame."""
        width, height = frame_size
        knobs = np.clip(np.array(self._key, dtype=np.float64), 0, 1)
        xs = knobs[:, 0] * width
        ys = knobs[:, 1] * height
        x0, y0 = int(np.floor(xs.min())), int(np.floor(ys.min()))
        x1, y1 = int(np.ceil(xs.max())), int(np.ceil(ys.max()))
        return x0, y0, max(0, x1 - x0), max(0, y1 - y0)
