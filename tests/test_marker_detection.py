"""Tests for marker location on pages."""
import cv2
import numpy as np
import pytest

from detection.geometry import UnitSquareProjector, shrink_points
from detection.marker_detection import MarkerLocator, point_in_quad
from detection.page_tracker import Page
from conftest import FRAME_SHAPE, PAGE_QUAD

FRAME_SIZE = (FRAME_SHAPE[1], FRAME_SHAPE[0])
SQUARE = [[0, 0], [1, 0], [1, 1], [0, 1]]


@pytest.fixture
def projector():
    return UnitSquareProjector(SQUARE)


@pytest.fixture
def page():
    return Page.from_points(5, shrink_points(12.0, PAGE_QUAD) / np.array(FRAME_SIZE))


def blank_frame():
    return np.full((FRAME_SHAPE[0], FRAME_SHAPE[1], 3), 255, dtype=np.uint8)


class TestPointInQuad:

    def test_inside(self):
        assert point_in_quad((0.5, 0.5), SQUARE)

    def test_outside(self):
        assert not point_in_quad((1.5, 0.5), SQUARE)
        assert not point_in_quad((0.5, -0.1), SQUARE)

    def test_either_winding(self):
        assert point_in_quad((0.2, 0.7), SQUARE[::-1])
        assert not point_in_quad((2.0, 2.0), SQUARE[::-1])

    def test_skewed_quad(self):
        quad = [[0.1, 0.1], [0.9, 0.3], [0.8, 0.9], [0.2, 0.7]]
        assert point_in_quad((0.5, 0.5), quad)
        assert not point_in_quad((0.85, 0.15), quad)


class TestMarkerLocator:

    def test_marker_at_page_center(self, projector, page):
        frame = blank_frame()
        cv2.rectangle(frame, (180, 130), (220, 170), (0, 0, 0), -1)
        markers = MarkerLocator().locate(frame, [page], projector, 16.0)

        assert len(markers) == 1
        marker = markers[0]
        assert marker.page_number == 5
        assert marker.area == pytest.approx(1600.0)
        np.testing.assert_allclose(marker.global_center, [0.5, 0.5], atol=0.01)
        np.testing.assert_allclose(marker.page_center, [0.5, 0.5], atol=0.02)
        assert marker.global_points.shape == (4, 2)
        assert marker.page_points.shape == (4, 2)

    def test_marker_in_page_corner(self, projector, page):
        frame = blank_frame()
        cv2.rectangle(frame, (80, 60), (100, 80), (0, 0, 0), -1)
        markers = MarkerLocator().locate(frame, [page], projector, 16.0)
        assert len(markers) == 1
        assert markers[0].page_center[0] < 0.2
        assert markers[0].page_center[1] < 0.2

    def test_small_contours_ignored(self, projector, page):
        frame = blank_frame()
        cv2.rectangle(frame, (198, 148), (200, 150), (0, 0, 0), -1)
        assert MarkerLocator().locate(frame, [page], projector, 16.0) == []

    def test_light_objects_ignored(self, projector, page):
        frame = blank_frame()
        cv2.rectangle(frame, (180, 130), (220, 170), (180, 180, 180), -1)
        assert MarkerLocator().locate(frame, [page], projector, 16.0) == []

    def test_dark_area_off_page_ignored(self, projector, page):
        frame = blank_frame()
        cv2.rectangle(frame, (5, 5), (40, 30), (0, 0, 0), -1)
        assert MarkerLocator().locate(frame, [page], projector, 16.0) == []

    def test_no_pages(self, projector):
        frame = blank_frame()
        cv2.rectangle(frame, (180, 130), (220, 170), (0, 0, 0), -1)
        assert MarkerLocator().locate(frame, [], projector, 16.0) == []

    def test_find_page(self, page):
        other = Page.from_points(6, [[0.0, 0.0], [0.1, 0.0], [0.1, 0.1], [0.0, 0.1]])
        locator = MarkerLocator()
        assert locator.find_page((0.5, 0.5), [other, page]) is page
        assert locator.find_page((0.05, 0.05), [other, page]) is other
        assert locator.find_page((0.95, 0.95), [other, page]) is None

    def test_binarize_threshold(self):
        image = np.array([[[0, 0, 0], [99, 99, 99], [101, 101, 101], [255, 255, 255]]], dtype=np.uint8)
        assert MarkerLocator().binarize(image).tolist() == [[255, 255, 0, 0]]
