"""
Configuration settings for the page detection pipeline.
Centralized configuration for all modules.
"""

import json
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import List, Tuple, Union


COLOR_NAMES = ['R', 'G', 'B', 'D']
CORNER_NAMES = ['TL', 'TR', 'BR', 'BL']

# Width/height in millimetres, used for debug pages.
PAPER_SIZES = {
    'A4': (210, 297),
    'A5': (148, 210),
    'LETTER': (216, 279),
}


class CalibrationError(ValueError):
    """Raised when calibration data is malformed."""


class PipelineConfig:
    """Configuration for the entire page detection pipeline."""

    # Blob detection (default detector adapter)
    BLOB_DETECTION = {
        'MIN_AREA': 10,
        'MIN_CIRCULARITY': 0.9,
        'FILTER_BY_INERTIA': False,
        'MIN_DIST_BETWEEN_BLOBS': 1.0,
    }

    # Neighbor graph
    NEIGHBOR_GRAPH = {
        'DISTANCE_FACTOR': 0.9,
        'SCAN_FACTOR': 3.0,
    }

    # Corner shape detection
    SHAPE_DETECTION = {
        'SHAPE_LENGTH': 7,
        'RIGHT_ANGLE_TOLERANCE': 0.10,
        'COLLINEAR_TOLERANCE': 0.2,
        'WINDING_THRESHOLD': 100.0,
    }

    # Page reconstruction
    PAGE_TRACKING = {
        'SHRINK_FACTOR': 0.75,
    }

    # Object markers
    MARKER_DETECTION = {
        'THRESHOLD': 100,
    }

    # Overlay colors (BGR)
    VIZ_COLORS = {
        'KNOB_QUAD': (255, 0, 0),
        'COMPONENT_LINE': (0, 0, 255),
        'SHAPE_ID': (0, 0, 255),
        'KEYPOINT_TEXT': (255, 255, 255),
        'PAGE_EDGE': (0, 0, 255),
        'MARKER_EDGE': (0, 255, 0),
    }


def _default_colors() -> List[List[int]]:
    return [[200, 40, 40], [40, 150, 60], [40, 60, 180], [30, 30, 30]]


def _default_knob_points() -> List[List[float]]:
    return [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]


@dataclass
class CalibrationConfig:
    """
    Runtime calibration for one camera setup.

    colors_rgb are the printed dot colors as seen by the camera, one per
    entry of COLOR_NAMES. knob_points are the 4 corners of the projection
    area in normalized video coordinates, clockwise from top-left.
    """

    colors_rgb: List[List[int]] = field(default_factory=_default_colors)
    paper_dot_sizes: List[float] = field(default_factory=lambda: [8.0, 8.0, 8.0, 8.0])
    knob_points: List[List[float]] = field(default_factory=_default_knob_points)
    scale_factor: int = 1
    show_overlay_key_point_circles: bool = True
    show_overlay_key_point_text: bool = True
    show_overlay_component_lines: bool = True
    show_overlay_shape_id: bool = True
    show_overlay_program: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if len(self.colors_rgb) != len(COLOR_NAMES):
            raise CalibrationError(
                f"Expected {len(COLOR_NAMES)} colors, got {len(self.colors_rgb)}")
        if any(len(c) < 3 for c in self.colors_rgb):
            raise CalibrationError("Each color needs at least 3 channels")
        if len(self.paper_dot_sizes) != len(COLOR_NAMES):
            raise CalibrationError(
                f"Expected {len(COLOR_NAMES)} dot sizes, got {len(self.paper_dot_sizes)}")
        if len(self.knob_points) != 4 or any(len(p) != 2 for p in self.knob_points):
            raise CalibrationError("Expected 4 knob points of (x, y)")
        if self.scale_factor < 1:
            raise CalibrationError("scale_factor must be >= 1")

    @property
    def knob_points_key(self) -> Tuple[Tuple[float, float], ...]:
        """Hashable form of the knob points."""
        return tuple((float(x), float(y)) for x, y in self.knob_points)

    def with_color_sample(self, color_index: int, color, size: float) -> 'CalibrationConfig':
        """Return a copy with one palette entry replaced by a sampled dot."""
        colors_rgb = [list(c) for c in self.colors_rgb]
        colors_rgb[color_index] = [int(round(v)) for v in list(color)[:3]]
        paper_dot_sizes = list(self.paper_dot_sizes)
        paper_dot_sizes[color_index] = float(size)
        return replace(self, colors_rgb=colors_rgb, paper_dot_sizes=paper_dot_sizes)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'CalibrationConfig':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def save(self, path: Union[str, Path]):
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'CalibrationConfig':
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CalibrationError(f"Invalid calibration file {path}: {e}") from e
        if not isinstance(data, dict):
            raise CalibrationError(f"Invalid calibration file {path}: expected an object")
        return cls.from_dict(data)
