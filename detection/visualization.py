"""
Visualization utilities for the page detection pipeline.
Draws the debug overlay on top of a copy of the camera frame.
"""

import cv2
import numpy as np
from typing import List, Sequence, Tuple
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import COLOR_NAMES, CORNER_NAMES, PipelineConfig

from .neighbor_graph import NeighborGraphBuilder


def _pt(p) -> Tuple[int, int]:
    return int(round(p[0])), int(round(p[1]))


def add_label_to_image(img: np.ndarray,
                       text: str,
                       color: Tuple[int, int, int] = (255, 255, 255),
                       bg_color: Tuple[int, int, int] = (0, 0, 0)) -> np.ndarray:
    """
    Add a labeled banner to the top of an image.

    Args:
        img: Input image (BGR or grayscale)
        text: Label text
        color: Text color
        bg_color: Background color

    Returns:
        Image with label added
    """
    if len(img.shape) == 2:
        vis = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    else:
        vis = img.copy()

    h, w = vis.shape[:2]
    font_scale = w / 1200.0
    thickness = max(1, int(w / 600.0))
    bar_h = int(h * 0.06)

    cv2.rectangle(vis, (0, 0), (w, bar_h), bg_color, -1)
    cv2.putText(vis, text, (10, int(bar_h * 0.7)), cv2.FONT_HERSHEY_SIMPLEX,
                font_scale, color, thickness, cv2.LINE_AA)
    return vis


def dim_image(img: np.ndarray, factor: float = 0.3) -> np.ndarray:
    """Dim an image by a factor for background visualization."""
    return (img.astype(float) * factor).astype(np.uint8)


class OverlayRenderer:
    """Draws detection results; each layer is switched by a calibration flag."""

    def __init__(self, calibration, colors: dict = None):
        self.calibration = calibration
        self.colors = colors or PipelineConfig.VIZ_COLORS

    def draw_knob_quad(self, display: np.ndarray, projector, frame_size):
        corners = projector.to_video(np.array([[0, 0], [1, 0], [1, 1], [0, 1]]), frame_size)
        for i in range(4):
            cv2.line(display, _pt(corners[i]), _pt(corners[(i + 1) % 4]), self.colors['KNOB_QUAD'], 1)

    def draw_component_lines(self, display: np.ndarray, keypoints, neighbors: List[List[int]]):
        for i, j in NeighborGraphBuilder.edges(neighbors):
            cv2.line(display, _pt(keypoints[i]), _pt(keypoints[j]), self.colors['COMPONENT_LINE'], 2)

    def draw_keypoints(self, display: np.ndarray, keypoints, color_indexes: Sequence[int]):
        for kp, color_index in zip(keypoints, color_indexes):
            if self.calibration.show_overlay_key_point_circles:
                r, g, b = self.calibration.colors_rgb[color_index][:3]
                cv2.circle(display, _pt(kp), int(kp.size / 2 + 3), (int(b), int(g), int(r)), 2)
            if self.calibration.show_overlay_key_point_text:
                cv2.putText(display, COLOR_NAMES[color_index], (int(kp.x) - 6, int(kp.y) + 6),
                            cv2.FONT_HERSHEY_DUPLEX, 0.6, self.colors['KEYPOINT_TEXT'])

    def draw_shape_ids(self, display: np.ndarray, keypoints, shapes):
        for shape in shapes:
            first, last = keypoints[shape.indexes[0]], keypoints[shape.indexes[6]]
            anchor = ((first.x + last.x) / 2, (first.y + last.y) / 2)
            cv2.putText(display, f"{shape.page_id},{CORNER_NAMES[shape.corner]}", _pt(anchor),
                        cv2.FONT_HERSHEY_DUPLEX, 0.5, self.colors['SHAPE_ID'])

    def draw_pages(self, display: np.ndarray, pages, projector, frame_size):
        for page in pages:
            pts = projector.to_video(page.points, frame_size)
            for i in range(4):
                cv2.line(display, _pt(pts[i]), _pt(pts[(i + 1) % 4]), self.colors['PAGE_EDGE'], 1)
            bottom_mid = (pts[2] + pts[3]) / 2
            top_mid = (pts[0] + pts[1]) / 2
            cv2.line(display, _pt(bottom_mid), _pt(top_mid), self.colors['PAGE_EDGE'], 1)

    def draw_markers(self, display: np.ndarray, markers, projector, frame_size):
        for marker in markers:
            pts = projector.to_video(marker.global_points, frame_size)
            cv2.polylines(display, [np.round(pts).astype(np.int32)], True,
                          self.colors['MARKER_EDGE'], 2, cv2.LINE_AA)

    def render(self, display: np.ndarray, frame: np.ndarray, result, projector):
        """Copy `frame` into `display` and draw every enabled layer."""
        np.copyto(display, frame)
        frame_size = (frame.shape[1], frame.shape[0])
        cal = self.calibration

        self.draw_knob_quad(display, projector, frame_size)
        if cal.show_overlay_component_lines:
            self.draw_component_lines(display, result.keypoints, result.neighbors)
        self.draw_keypoints(display, result.keypoints, [info.color_index for info in result.keypoint_info])
        if cal.show_overlay_shape_id:
            self.draw_shape_ids(display, result.keypoints, result.shapes)
        if cal.show_overlay_program:
            self.draw_pages(display, result.pages, projector, frame_size)
        self.draw_markers(display, result.markers, projector, frame_size)
        return display
