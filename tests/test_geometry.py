"""Tests for homography helpers and the calibration projector."""
import numpy as np
import pytest

from detection.geometry import (UNIT_SQUARE, UnitSquareProjector, adjugate, cross,
                                forward_projection_matrix, project_point, project_points,
                                shrink_points)


QUAD = np.array([[0.12, 0.08], [0.81, 0.15], [0.77, 0.92], [0.18, 0.85]])


class TestHomography:

    def test_forward_maps_unit_square_corners(self):
        matrix = forward_projection_matrix(QUAD)
        np.testing.assert_allclose(project_points(UNIT_SQUARE, matrix), QUAD, atol=1e-6)

    def test_adjugate_round_trip(self):
        forward = forward_projection_matrix(QUAD)
        inverse = adjugate(forward)
        mapped = project_points(UNIT_SQUARE, forward)
        np.testing.assert_allclose(project_points(mapped, inverse), UNIT_SQUARE, atol=1e-6)

    def test_adjugate_is_scaled_inverse(self):
        m = np.array([[2.0, 0.5, 1.0], [0.1, 3.0, -1.0], [0.01, 0.02, 1.0]])
        np.testing.assert_allclose(adjugate(m), np.linalg.det(m) * np.linalg.inv(m), atol=1e-9)

    def test_project_point_matches_batch(self):
        matrix = forward_projection_matrix(QUAD)
        np.testing.assert_allclose(project_point([0.3, 0.6], matrix),
                                   project_points([[0.3, 0.6]], matrix)[0])

    def test_project_no_points(self):
        assert project_points([], np.eye(3)).shape == (0, 2)


class TestShrinkPoints:

    def test_square_moves_inward_on_both_axes(self):
        square = np.array([[0, 0], [10, 0], [10, 10], [0, 10]], dtype=float)
        shrunk = shrink_points(1.0, square)
        np.testing.assert_allclose(shrunk, [[1, 1], [9, 1], [9, 9], [1, 9]])

    def test_zero_amount_is_identity(self):
        np.testing.assert_allclose(shrink_points(0.0, QUAD), QUAD)


def test_cross():
    assert cross((1, 0), (0, 1)) == 1
    assert cross((0, 1), (1, 0)) == -1


class TestUnitSquareProjector:

    def test_identity_knobs_normalize_by_frame(self):
        projector = UnitSquareProjector([[0, 0], [1, 0], [1, 1], [0, 1]])
        np.testing.assert_allclose(projector.to_unit_square([[200, 150]], (400, 300)), [[0.5, 0.5]])

    def test_round_trip_with_skewed_knobs(self):
        projector = UnitSquareProjector(QUAD.tolist())
        pts = np.array([[0.2, 0.3], [0.9, 0.1], [0.5, 0.5]])
        video = projector.to_video(pts, (640, 480))
        np.testing.assert_allclose(projector.to_unit_square(video, (640, 480)), pts, atol=1e-6)

    def test_knob_corners_map_to_unit_square(self):
        projector = UnitSquareProjector(QUAD.tolist())
        video = QUAD * np.array([640, 480])
        np.testing.assert_allclose(projector.to_unit_square(video, (640, 480)), UNIT_SQUARE, atol=1e-6)

    def test_memoized_until_knobs_change(self):
        projector = UnitSquareProjector()
        assert projector.update(QUAD.tolist())
        first = projector.inverse
        assert not projector.update([list(p) for p in QUAD])
        assert projector.inverse is first
        assert projector.update([[0, 0], [1, 0], [1, 1], [0, 1]])
        assert projector.inverse is not first

    def test_region_of_interest(self):
        projector = UnitSquareProjector([[0.25, 0.1], [0.75, 0.1], [0.75, 0.9], [0.25, 0.9]])
        assert projector.region_of_interest((400, 200)) == (100, 20, 200, 160)

    def test_region_of_interest_clamps(self):
        projector = UnitSquareProjector([[-0.5, 0], [1.5, 0], [1, 1], [0, 1]])
        assert projector.region_of_interest((100, 100)) == (0, 0, 100, 100)
