"""
Marker Detection Module

Finds dark objects lying on top of located pages and reports them both in
global unit-square coordinates and in the page's own coordinates.
"""

import math
import logging
import cv2
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import PipelineConfig

from .geometry import UnitSquareProjector, project_point, project_points
from .page_tracker import Page

logger = logging.getLogger(__name__)


@dataclass
class Marker:
    page_number: int
    global_center: np.ndarray
    global_points: np.ndarray
    page_center: np.ndarray
    page_points: np.ndarray
    area: float


def point_in_quad(point, quad) -> bool:
    """
    Inside test for a convex quad.

    Walks the edges and measures the signed angle each one subtends at the
    point; the point is inside iff no two edges disagree in sign.
    """
    px, py = float(point[0]), float(point[1])
    sign = 0
    for j in range(4):
        ax, ay = quad[j][0] - px, quad[j][1] - py
        bx, by = quad[(j + 1) % 4][0] - px, quad[(j + 1) % 4][1] - py
        angle = math.atan2(by, bx) - math.atan2(ay, ax)
        if angle > math.pi:
            angle -= 2 * math.pi
        elif angle <= -math.pi:
            angle += 2 * math.pi
        if angle == 0:
            continue
        edge_sign = 1 if angle > 0 else -1
        if sign and edge_sign != sign:
            return False
        sign = edge_sign
    return sign != 0


class MarkerLocator:
    """Locates object markers inside page quads."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.MARKER_DETECTION
        self.threshold = self.config['THRESHOLD']

    def binarize(self, image: np.ndarray) -> np.ndarray:
        """Dark pixels -> 255."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        _, thresh = cv2.threshold(gray, self.threshold, 255, cv2.THRESH_BINARY_INV)
        return thresh

    def page_mask(self, page: Page, projector: UnitSquareProjector,
                  frame_size: Tuple[int, int], roi: Tuple[int, int, int, int]) -> np.ndarray:
        x, y, w, h = roi
        quad = projector.to_video(page.points, frame_size) - np.array([x, y])
        mask = np.zeros((h, w), dtype=np.uint8)
        cv2.fillPoly(mask, [np.round(quad).astype(np.int32)], 255)
        return mask

    def find_page(self, point, pages: Sequence[Page]) -> Optional[Page]:
        for page in pages:
            if point_in_quad(point, page.points):
                return page
        return None

    def locate(self,
               image: np.ndarray,
               pages: Sequence[Page],
               projector: UnitSquareProjector,
               min_area: float) -> List[Marker]:
        """
        Find markers on the given pages.

        Args:
            image: BGR frame
            pages: Pages located this frame
            projector: Calibration projector
            min_area: Contours smaller than this (pixels) are ignored

        Returns:
            List of Marker
        """
        if not pages:
            return []

        frame_size = (image.shape[1], image.shape[0])
        roi = projector.region_of_interest(frame_size)
        x, y, w, h = roi
        if w == 0 or h == 0:
            return []
        thresh = self.binarize(image[y:y + h, x:x + w])

        markers = []
        for page in pages:
            mask = self.page_mask(page, projector, frame_size, roi)
            content = cv2.bitwise_and(thresh, thresh, mask=mask)
            contours, _ = cv2.findContours(content, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE,
                                           offset=(x, y))

            for contour in contours:
                area = float(cv2.contourArea(contour))
                if area < min_area:
                    continue

                rect = cv2.minAreaRect(contour)
                center = projector.to_unit_square([rect[0]], frame_size)[0]
                owner = self.find_page(center, pages)
                if owner is None:
                    logger.debug("Marker at %s is outside every page", center)
                    continue

                vertices = projector.to_unit_square(cv2.boxPoints(rect), frame_size)
                markers.append(Marker(
                    page_number=owner.number,
                    global_center=center,
                    global_points=vertices,
                    page_center=project_point(center, owner.inverse),
                    page_points=project_points(vertices, owner.inverse),
                    area=area,
                ))

        return markers
