"""Pytest configuration and shared fixtures for the page detection pipeline."""
import sys
import logging
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import CalibrationConfig
from detection.blob_detection import Keypoint
from detection import dot_codes


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)


DOT_SIZE = 16.0
FRAME_SHAPE = (300, 400)
PAGE_QUAD = np.array([[60, 40], [340, 40], [340, 260], [60, 260]], dtype=np.float64)


def corner_dot_positions(quad, corner: int, spacing: float) -> np.ndarray:
    """
    The 7 dot centers of one corner, in decoding order.

    Dots 0-2 lie on the edge towards the previous corner (farthest first),
    dot 3 is the corner itself, dots 4-6 lie on the edge towards the next
    corner (nearest first).
    """
    quad = np.asarray(quad, dtype=np.float64)
    p = quad[corner]
    u = quad[(corner + 1) % 4] - p
    v = quad[(corner - 1) % 4] - p
    u /= np.linalg.norm(u)
    v /= np.linalg.norm(v)
    return np.array([p + v * spacing * 3, p + v * spacing * 2, p + v * spacing, p,
                     p + u * spacing, p + u * spacing * 2, p + u * spacing * 3])


def page_dots(page_id: int, quad, colors_rgb, size: float = DOT_SIZE, corners=range(4)):
    """(keypoints, rgb colors) for the printed corners of one page."""
    keypoints, colors = [], []
    for corner in corners:
        code = dot_codes.code_for(page_id, corner)
        for pos, digit in zip(corner_dot_positions(quad, corner, size * 1.5), code):
            keypoints.append(Keypoint(float(pos[0]), float(pos[1]), size))
            colors.append(np.array(colors_rgb[int(digit)], dtype=np.float64))
    return keypoints, colors


def render_dots(keypoints, colors, shape=FRAME_SHAPE) -> np.ndarray:
    """White BGR frame with the given dots drawn."""
    image = np.full((shape[0], shape[1], 3), 255, dtype=np.uint8)
    for kp, rgb in zip(keypoints, colors):
        bgr = tuple(int(c) for c in rgb[::-1])
        cv2.circle(image, (int(round(kp.x)), int(round(kp.y))), int(kp.size / 2), bgr, -1)
    return image


@pytest.fixture
def calibration():
    return CalibrationConfig()


@pytest.fixture
def colors_rgb(calibration):
    return calibration.colors_rgb


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path
