"""
Blob Detection Module

Default dot detector: finds circular blobs with OpenCV's SimpleBlobDetector.
Any callable returning a list of Keypoint can be used in its place.
"""

import cv2
import numpy as np
from typing import List, NamedTuple, Optional, Tuple
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import PipelineConfig


class Keypoint(NamedTuple):
    """A detected dot in video pixel coordinates. `size` is the diameter."""
    x: float
    y: float
    size: float

    @property
    def pt(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=np.float64)


class BlobDetector:
    """Detects circular dots in a BGR frame."""

    def __init__(self, config: dict = None, scale_factor: int = 1):
        """
        Initialize blob detector.

        Args:
            config: Optional config dict, uses PipelineConfig.BLOB_DETECTION if None
            scale_factor: Detection runs on the image downscaled by this factor
        """
        self.config = config or PipelineConfig.BLOB_DETECTION
        self.scale_factor = max(1, int(scale_factor))
        self._detector = self._create_detector()

    def _create_detector(self):
        params = cv2.SimpleBlobDetector_Params()
        params.filterByArea = True
        params.minArea = float(self.config['MIN_AREA']) / (self.scale_factor ** 2)
        params.maxArea = 1e6
        params.filterByCircularity = True
        params.minCircularity = float(self.config['MIN_CIRCULARITY'])
        params.filterByInertia = bool(self.config['FILTER_BY_INERTIA'])
        params.filterByConvexity = False
        params.filterByColor = True
        params.blobColor = 0
        params.minDistBetweenBlobs = float(self.config['MIN_DIST_BETWEEN_BLOBS'])
        return cv2.SimpleBlobDetector_create(params)

    def detect(self,
               image: np.ndarray,
               roi: Optional[Tuple[int, int, int, int]] = None) -> List[Keypoint]:
        """
        Detect dots.

        Args:
            image: BGR frame
            roi: Optional (x, y, w, h) region to search in

        Returns:
            Keypoints in full-frame pixel coordinates
        """
        ox, oy = 0, 0
        if roi is not None:
            ox, oy, w, h = roi
            image = image[oy:oy + h, ox:ox + w]
        if image.size == 0:
            return []

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        if self.scale_factor > 1:
            gray = cv2.resize(gray, None, fx=1.0 / self.scale_factor, fy=1.0 / self.scale_factor,
                              interpolation=cv2.INTER_AREA)

        s = self.scale_factor
        return [Keypoint(kp.pt[0] * s + ox, kp.pt[1] * s + oy, kp.size * s)
                for kp in self._detector.detect(gray)]
