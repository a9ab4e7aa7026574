"""
Corner Shape Detection Module

Finds the 7-dot "corner zones" printed at each page corner and decodes them
into (page id, corner index). Two search strategies are available:
- RightAngleStrategy: grows two straight arms from a dot whose neighbors
  form a right angle (default)
- TerminalPointStrategy: walks a 7-dot path starting from a dot with a
  single neighbor (legacy)
"""

import math
import logging
import numpy as np
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import PipelineConfig

from .color_classifier import ColorClassifier
from .geometry import cross
from . import dot_codes

logger = logging.getLogger(__name__)


class CornerShape(NamedTuple):
    """A decoded corner zone."""
    indexes: Tuple[int, ...]
    color_indexes: Tuple[int, ...]
    page_id: int
    corner: int
    position: np.ndarray
    direction: np.ndarray


def node_angle(corner, baseline, node) -> float:
    """Unsigned angle at `corner` between the directions to `baseline` and `node`."""
    a1 = math.atan2(corner.y - baseline.y, corner.x - baseline.x)
    a2 = math.atan2(corner.y - node.y, corner.x - node.x)
    angle = a1 - a2
    if angle > math.pi:
        angle -= 2 * math.pi
    elif angle < -math.pi:
        angle += 2 * math.pi
    return abs(angle)


def winding(keypoints: Sequence, path: Sequence[int]) -> float:
    """cross(p0 - p3, p6 - p3) for a 7-dot path."""
    p0, p3, p6 = (keypoints[path[k]].pt for k in (0, 3, 6))
    return cross(p0 - p3, p6 - p3)


class RightAngleStrategy:
    """Finds shapes by their right-angled corner dot."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.SHAPE_DETECTION
        self.angle_tolerance = self.config['RIGHT_ANGLE_TOLERANCE']
        self.collinear_tolerance = self.config['COLLINEAR_TOLERANCE']
        self.arm_length = (self.config['SHAPE_LENGTH'] - 1) // 2

    def _collinear_candidates(self, keypoints, corner: int, baseline: int, candidates) -> List[int]:
        """Candidates in line with corner->baseline, best aligned first."""
        c, b = keypoints[corner], keypoints[baseline]
        scored = []
        for n in candidates:
            if n == corner:
                continue
            angle = node_angle(c, b, keypoints[n])
            if angle < self.collinear_tolerance:
                scored.append((angle, n))
        scored.sort(key=lambda s: s[0])
        return [n for _, n in scored]

    def _extend_arm(self, keypoints, neighbors, corner, baseline, candidates, seen, remaining) -> List[int]:
        """Depth-first arm extension; returns the found dots deepest first."""
        for n in self._collinear_candidates(keypoints, corner, baseline, candidates):
            if n in seen:
                continue
            seen.add(n)
            if remaining == 1:
                return [n]
            found = self._extend_arm(keypoints, neighbors, corner, baseline,
                                     neighbors[n], seen, remaining - 1)
            if found:
                return found + [n]
            seen.discard(n)
        return []

    def find_paths(self, keypoints: Sequence, neighbors: List[List[int]]) -> List[List[int]]:
        used = set()
        paths = []
        extra = self.arm_length - 1

        for i, adj in enumerate(neighbors):
            if len(adj) < 2 or i in used:
                continue
            corner = keypoints[i]
            found = False
            for j in range(len(adj) - 1):
                for k in range(j + 1, len(adj)):
                    n1, n2 = adj[j], adj[k]
                    if n1 in used or n2 in used:
                        continue
                    angle = node_angle(corner, keypoints[n1], keypoints[n2])
                    if abs(angle - math.pi / 2) / (math.pi / 2) > self.angle_tolerance:
                        continue

                    seen = used | {i, n1, n2}
                    arm_one = self._extend_arm(keypoints, neighbors, i, n1, neighbors[n1], seen, extra) + [n1]
                    arm_two = [n2] + self._extend_arm(keypoints, neighbors, i, n2, neighbors[n2], seen, extra)
                    if len(arm_one) + len(arm_two) != 2 * self.arm_length:
                        continue

                    def dist(index):
                        return math.hypot(corner.x - keypoints[index].x, corner.y - keypoints[index].y)

                    arm_one.sort(key=dist, reverse=True)
                    arm_two.sort(key=dist)
                    path = arm_one + [i] + arm_two
                    paths.append(path)
                    used.update(path)
                    found = True
                    break
                if found:
                    break

        return paths


class TerminalPointStrategy:
    """Finds shapes as simple paths starting at a dot with one neighbor."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.SHAPE_DETECTION
        self.length = self.config['SHAPE_LENGTH']

    def _find_path(self, path: List[int], neighbors, remaining: int) -> bool:
        if remaining == 0:
            return True
        for index in neighbors[path[-1]]:
            if index in path:
                continue
            path.append(index)
            if self._find_path(path, neighbors, remaining - 1):
                return True
            path.pop()
        return False

    def find_paths(self, keypoints: Sequence, neighbors: List[List[int]]) -> List[List[int]]:
        seen = set()
        paths = []
        for i, adj in enumerate(neighbors):
            if len(adj) != 1 or i in seen:
                continue
            path = [i]
            if self._find_path(path, neighbors, self.length - 1):
                seen.update(path)
                paths.append(path)
        return paths


class CornerShapeDecoder:
    """Turns candidate dot paths into decoded corner shapes."""

    def __init__(self, classifier: ColorClassifier, strategy=None, config: dict = None):
        """
        Initialize shape decoder.

        Args:
            classifier: Palette classifier used for the dot colors
            strategy: Path search strategy, RightAngleStrategy if None
            config: Optional config dict, uses PipelineConfig.SHAPE_DETECTION if None
        """
        self.config = config or PipelineConfig.SHAPE_DETECTION
        self.classifier = classifier
        self.strategy = strategy or RightAngleStrategy(self.config)
        self.winding_threshold = self.config['WINDING_THRESHOLD']

    def normalize_winding(self, keypoints: Sequence, path: List[int]) -> List[int]:
        if winding(keypoints, path) > self.winding_threshold:
            return list(reversed(path))
        return list(path)

    def decode_path(self, keypoints: Sequence, path: List[int], colors: Sequence) -> Optional[CornerShape]:
        """Decode one 7-dot path given the sampled color of every keypoint."""
        path = self.normalize_winding(keypoints, path)
        color_indexes = self.classifier.classify_shape([colors[k] for k in path])
        decoded = dot_codes.decode(color_indexes)
        if decoded is None:
            logger.debug("Discarding shape %s with unknown code %s", path, color_indexes)
            return None

        page_id, corner = decoded
        position = keypoints[path[3]].pt
        direction = keypoints[path[6]].pt - position
        return CornerShape(tuple(path), tuple(color_indexes), page_id, corner, position, direction)

    def detect(self,
               keypoints: Sequence,
               neighbors: List[List[int]],
               colors: Sequence) -> List[CornerShape]:
        """
        Find and decode all corner shapes in a frame.

        Args:
            keypoints: Keypoints, sorted by x
            neighbors: Adjacency lists from NeighborGraphBuilder
            colors: Sampled RGB color per keypoint

        Returns:
            Decoded shapes in discovery order
        """
        shapes = []
        for path in self.strategy.find_paths(keypoints, neighbors):
            shape = self.decode_path(keypoints, path, colors)
            if shape is not None:
                shapes.append(shape)
        return shapes

    @staticmethod
    def group_by_page(shapes: List[CornerShape]) -> Dict[int, Dict[int, CornerShape]]:
        """{page_id: {corner: shape}}; a later shape for the same corner wins."""
        grouped = {}
        for shape in shapes:
            grouped.setdefault(shape.page_id, {})[shape.corner] = shape
        return grouped
