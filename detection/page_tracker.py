"""
Page Tracking Module

Reconstructs full page quads from the corners decoded in the current frame.
Corners that are hidden this frame are predicted from the geometry memory:
for every ordered pair of corners (i -> j) seen together at some point, the
angle (relative to corner i's direction vector) and distance to corner j.
"""

import math
import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import PipelineConfig

from .geometry import UnitSquareProjector, adjugate, forward_projection_matrix, shrink_points

logger = logging.getLogger(__name__)


class CornerRelation(NamedTuple):
    angle: float
    magnitude: float
    mirrored: bool = False


# {page_id: {(i, j): CornerRelation}}
GeometryMemory = Dict[int, Dict[Tuple[int, int], CornerRelation]]


@dataclass
class Page:
    """A located page in unit-square coordinates."""
    number: int
    points: np.ndarray
    forward: np.ndarray
    inverse: np.ndarray
    is_debug: bool = False

    @classmethod
    def from_points(cls, number: int, points, is_debug: bool = False) -> 'Page':
        points = np.asarray(points, dtype=np.float64).reshape(4, 2)
        forward = forward_projection_matrix(points)
        return cls(number, points, forward, adjugate(forward), is_debug)


def copy_memory(memory: Optional[GeometryMemory]) -> GeometryMemory:
    return {page_id: dict(relations) for page_id, relations in (memory or {}).items()}


def record_observations(relations: Dict, points: Dict[int, np.ndarray], directions: Dict[int, np.ndarray]):
    """Store the relation of every pair of observed corners, replacing what was there."""
    for i in points:
        for j in points:
            if i == j:
                continue
            diff = points[j] - points[i]
            angle = math.atan2(diff[1], diff[0]) - math.atan2(directions[i][1], directions[i][0])
            relations[(i, j)] = CornerRelation(angle, float(np.hypot(diff[0], diff[1])), False)


def mirror_relations(relations: Dict):
    """
    Copy each relation onto the diagonally opposite pair of corners.

    A page is a rectangle, so i -> j matches (i+2) -> (j+2). Directly observed
    relations are never replaced by mirrored ones.
    """
    for i in range(4):
        for j in range(4):
            this_side = relations.get((i, j))
            other_key = ((i + 2) % 4, (j + 2) % 4)
            other_side = relations.get(other_key)
            if this_side is not None and (other_side is None or other_side.mirrored):
                relations[other_key] = this_side._replace(mirrored=True)


def predict_corners(points: Dict[int, np.ndarray],
                    directions: Dict[int, np.ndarray],
                    relations: Dict) -> Dict[int, np.ndarray]:
    """Average of all predictions for each corner that was not observed."""
    predictions: Dict[int, List[np.ndarray]] = {}
    for i in points:
        base_angle = math.atan2(directions[i][1], directions[i][0])
        for j in range(4):
            if j in points or (i, j) not in relations:
                continue
            rel = relations[(i, j)]
            angle = rel.angle + base_angle
            predictions.setdefault(j, []).append(
                points[i] + rel.magnitude * np.array([math.cos(angle), math.sin(angle)]))
    return {j: np.mean(preds, axis=0) for j, preds in predictions.items()}


class PageTracker:
    """Builds pages from decoded corner shapes and the geometry memory."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.PAGE_TRACKING
        self.shrink_factor = self.config['SHRINK_FACTOR']

    def resolve_quads(self,
                      shapes_by_page: Dict[int, Dict[int, object]],
                      memory: Optional[GeometryMemory]) -> Tuple[Dict[int, np.ndarray], GeometryMemory]:
        """
        Complete each page's quad in video pixels.

        Args:
            shapes_by_page: {page_id: {corner: CornerShape}}
            memory: Geometry memory from the previous frame

        Returns:
            Tuple of ({page_id: (4, 2) quad}, updated memory). Pages that
            cannot be completed are left out; their memory is kept.
        """
        memory = copy_memory(memory)
        quads = {}

        for page_id, shapes in shapes_by_page.items():
            points = {c: np.asarray(s.position, dtype=np.float64) for c, s in shapes.items()}
            directions = {c: np.asarray(s.direction, dtype=np.float64) for c, s in shapes.items()}
            relations = memory.setdefault(page_id, {})

            record_observations(relations, points, directions)
            mirror_relations(relations)
            points.update(predict_corners(points, directions, relations))

            if len(points) < 4:
                logger.debug("Page %d incomplete, corners %s", page_id, sorted(points))
                continue
            quads[page_id] = np.array([points[c] for c in range(4)])

        return quads, memory

    def build_pages(self,
                    quads: Dict[int, np.ndarray],
                    avg_dot_size: float,
                    projector: UnitSquareProjector,
                    frame_size: Tuple[int, int]) -> List[Page]:
        """Shrink quads past the border dots and move them into unit-square space."""
        pages = []
        for page_id, quad in quads.items():
            shrunk = shrink_points(avg_dot_size * self.shrink_factor, quad)
            pages.append(Page.from_points(page_id, projector.to_unit_square(shrunk, frame_size)))
        return pages

    def track(self,
              shapes_by_page: Dict[int, Dict[int, object]],
              memory: Optional[GeometryMemory],
              avg_dot_size: float,
              projector: UnitSquareProjector,
              frame_size: Tuple[int, int]) -> Tuple[List[Page], GeometryMemory]:
        quads, memory = self.resolve_quads(shapes_by_page, memory)
        return self.build_pages(quads, avg_dot_size, projector, frame_size), memory


def debug_page(number: int,
               points: Sequence,
               projector: UnitSquareProjector,
               frame_size: Tuple[int, int]) -> Page:
    """Page from points given in normalized video coordinates."""
    absolute = np.asarray(points, dtype=np.float64).reshape(4, 2) * np.array(frame_size, dtype=np.float64)
    return Page.from_points(number, projector.to_unit_square(absolute, frame_size), is_debug=True)
