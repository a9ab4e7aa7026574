"""
Page Detection Modules

This package contains the per-frame components for locating dot-coded pages:
- blob_detection: Default dot detector and the Keypoint type
- geometry: Homographies and the calibration projector
- color_classifier: Palette lookup for dot colors
- dot_codes: The printed corner code table
- neighbor_graph: Proximity graph over detected dots
- shape_detection: Finds and decodes 7-dot corner shapes
- page_tracker: Reconstructs page quads, remembering corner geometry
- marker_detection: Finds objects lying on pages
- visualization: Debug overlay drawing
"""

from .blob_detection import BlobDetector, Keypoint
from .color_classifier import ColorClassifier
from .neighbor_graph import NeighborGraphBuilder
from .shape_detection import CornerShapeDecoder, RightAngleStrategy, TerminalPointStrategy
from .page_tracker import PageTracker, Page
from .marker_detection import MarkerLocator, Marker
from .geometry import UnitSquareProjector

__all__ = [
    'BlobDetector',
    'Keypoint',
    'ColorClassifier',
    'NeighborGraphBuilder',
    'CornerShapeDecoder',
    'RightAngleStrategy',
    'TerminalPointStrategy',
    'PageTracker',
    'Page',
    'MarkerLocator',
    'Marker',
    'UnitSquareProjector',
]
