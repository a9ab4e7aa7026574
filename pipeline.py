"""
Dot-Coded Page Detection Pipeline

Main script that orchestrates all modules to locate pages and markers in
camera frames.
Process: Blobs -> Colors -> Neighbor Graph -> Corner Shapes -> Pages -> Markers

Usage:
    python pipeline.py <source> [--calibration <file>] [--output <output_dir>] [--visualize]

<source> is an image directory, an image, a video file or a camera index.
"""

import cv2
import numpy as np
import sys
import time
import logging
import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from detection import (BlobDetector, ColorClassifier, CornerShapeDecoder, MarkerLocator,
                       NeighborGraphBuilder, PageTracker, RightAngleStrategy,
                       TerminalPointStrategy, UnitSquareProjector)
from detection.color_classifier import sample_keypoint_color
from detection.neighbor_graph import sort_keypoints
from detection.page_tracker import GeometryMemory, debug_page
from detection.visualization import OverlayRenderer
from config import CalibrationConfig, CalibrationError, PAPER_SIZES

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.bmp']


class DebugPage(NamedTuple):
    """A synthetic page, points in normalized video coordinates."""
    number: int
    points: list


def make_debug_page(number: int, paper_size: str = 'LETTER', height: float = 0.2) -> DebugPage:
    """Debug page at the top-left of the view with the paper's aspect ratio."""
    paper_w, paper_h = PAPER_SIZES[paper_size]
    width = height * paper_w / paper_h
    return DebugPage(number, [[0.0, 0.0], [width, 0.0], [width, height], [0.0, height]])


@dataclass
class KeypointInfo:
    """Decoded attributes of one keypoint."""
    avg_color: np.ndarray
    color_index: int
    matched_shape: bool = False


@dataclass
class FrameResult:
    keypoints: list
    keypoint_info: List[KeypointInfo]
    neighbors: List[List[int]]
    shapes: list
    pages: list
    markers: list
    memory: GeometryMemory = field(default_factory=dict)
    framerate: int = 0


class PageDetectionPipeline:
    """Main pipeline for page and marker detection."""

    def __init__(self,
                 calibration: CalibrationConfig = None,
                 blob_detector: Optional[Callable] = None,
                 strategy=None):
        """
        Initialize all module detectors.

        Args:
            calibration: Default calibration, CalibrationConfig() if None
            blob_detector: Callable (image, roi) -> list of Keypoint. If None,
                a BlobDetector is used, rebuilt whenever the frame's
                calibration asks for a different scale_factor
            strategy: Corner shape search strategy, RightAngleStrategy if None
        """
        self.calibration = calibration or CalibrationConfig()
        self.blob_detector = blob_detector
        self.default_detector = BlobDetector(scale_factor=self.calibration.scale_factor)
        self.strategy = strategy or RightAngleStrategy()
        self.projector = UnitSquareProjector()
        self.graph_builder = NeighborGraphBuilder()
        self.page_tracker = PageTracker()
        self.marker_locator = MarkerLocator()
        self._palette = None
        self._decoder = None

    def _dot_detector(self, calibration: CalibrationConfig) -> Callable:
        if self.blob_detector is not None:
            return self.blob_detector
        if self.default_detector.scale_factor != calibration.scale_factor:
            logger.debug("Blob detector rebuilt for scale factor %d", calibration.scale_factor)
            self.default_detector = BlobDetector(scale_factor=calibration.scale_factor)
        return self.default_detector.detect

    def _shape_decoder(self, calibration: CalibrationConfig) -> CornerShapeDecoder:
        palette = tuple(tuple(c[:3]) for c in calibration.colors_rgb)
        if palette != self._palette:
            self._palette = palette
            self._decoder = CornerShapeDecoder(ColorClassifier(palette), self.strategy)
        return self._decoder

    def process_frame(self,
                      frame: np.ndarray,
                      memory: Optional[GeometryMemory] = None,
                      debug_pages: Sequence[DebugPage] = (),
                      display: Optional[np.ndarray] = None,
                      calibration: Optional[CalibrationConfig] = None) -> FrameResult:
        """
        Run the full pipeline on one frame.

        Args:
            frame: BGR camera frame
            memory: Geometry memory returned for the previous frame
            debug_pages: Synthetic pages appended to the result
            display: Optional image (same shape as frame) to draw the overlay on
            calibration: Overrides the pipeline's calibration for this frame

        Returns:
            FrameResult; pass its `memory` to the next call
        """
        start = time.perf_counter()
        cal = calibration or self.calibration
        frame_size = (frame.shape[1], frame.shape[0])
        if self.projector.update(cal.knob_points_key):
            logger.debug("Calibration homography recomputed for %s", cal.knob_points)
        decoder = self._shape_decoder(cal)

        # Step 1: Blobs and their colors
        roi = self.projector.region_of_interest(frame_size)
        keypoints = sort_keypoints(self._dot_detector(cal)(frame, roi))
        colors = [sample_keypoint_color(frame, kp) for kp in keypoints]
        keypoint_info = [KeypointInfo(color, index)
                         for color, index in zip(colors, decoder.classifier.classify(colors))]

        # Step 2: Neighbor graph
        neighbors = self.graph_builder.build(keypoints)

        # Step 3: Corner shapes
        shapes = decoder.detect(keypoints, neighbors, colors)
        dot_sizes = []
        for shape in shapes:
            for index, color_index in zip(shape.indexes, shape.color_indexes):
                keypoint_info[index].color_index = color_index
                keypoint_info[index].matched_shape = True
                dot_sizes.append(keypoints[index].size)
        avg_dot_size = float(np.mean(dot_sizes)) if dot_sizes else 0.0

        # Step 4: Pages
        pages, memory = self.page_tracker.track(
            decoder.group_by_page(shapes), memory, avg_dot_size, self.projector, frame_size)

        # Step 5: Markers
        markers = self.marker_locator.locate(frame, pages, self.projector, avg_dot_size)

        pages.extend(debug_page(dp.number, dp.points, self.projector, frame_size) for dp in debug_pages)

        result = FrameResult(
            keypoints=keypoints,
            keypoint_info=keypoint_info,
            neighbors=neighbors,
            shapes=shapes,
            pages=pages,
            markers=markers,
            memory=memory,
        )
        logger.debug("Frame: %d keypoints, %d shapes, %d pages, %d markers",
                     len(keypoints), len(shapes), len(pages), len(markers))

        if display is not None:
            OverlayRenderer(cal).render(display, frame, result, self.projector)

        elapsed = time.perf_counter() - start
        result.framerate = int(round(1.0 / elapsed)) if elapsed > 0 else 0

        return result


def iter_frames(source: str):
    """Yield (name, frame) from an image directory, an image, a video or a camera index."""
    if source.isdigit():
        capture = cv2.VideoCapture(int(source))
    else:
        path = Path(source)
        if path.is_dir():
            for image_file in sorted(f for f in path.iterdir() if f.suffix.lower() in IMAGE_EXTENSIONS):
                image = cv2.imread(str(image_file))
                if image is None:
                    print(f"  Warning: Could not read {image_file.name}")
                    continue
                yield image_file.stem, image
            return
        if path.suffix.lower() in IMAGE_EXTENSIONS:
            image = cv2.imread(str(path))
            if image is None:
                print(f"  Warning: Could not read {path.name}")
            else:
                yield path.stem, image
            return
        capture = cv2.VideoCapture(str(path))

    try:
        idx = 0
        while True:
            ok, frame = capture.read()
            if not ok:
                break
            yield f"frame_{idx:05d}", frame
            idx += 1
    finally:
        capture.release()


def main():
    parser = argparse.ArgumentParser(description='Dot-Coded Page Detection Pipeline')
    parser.add_argument('source', type=str, help='Image directory, image, video file or camera index')
    parser.add_argument('--calibration', '-c', type=str, help='Calibration JSON file')
    parser.add_argument('--output', '-o', type=str, help='Output directory (default: ./pipeline_results)')
    parser.add_argument('--visualize', '-v', action='store_true', help='Write overlay images')
    parser.add_argument('--strategy', choices=['right-angle', 'terminal'], default='right-angle',
                        help='Corner shape search strategy')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if not args.source.isdigit() and not Path(args.source).exists():
        print(f"Error: Source does not exist: {args.source}")
        sys.exit(1)

    calibration = CalibrationConfig()
    if args.calibration:
        try:
            calibration = CalibrationConfig.load(args.calibration)
        except (OSError, CalibrationError) as e:
            print(f"Error: {e}")
            sys.exit(1)

    output_dir = Path(args.output) if args.output else Path('pipeline_results')
    if args.visualize:
        output_dir.mkdir(exist_ok=True, parents=True)

    strategy = TerminalPointStrategy() if args.strategy == 'terminal' else RightAngleStrategy()
    pipeline = PageDetectionPipeline(calibration, strategy=strategy)

    memory: Dict = {}
    for idx, (name, frame) in enumerate(iter_frames(args.source), 1):
        display = frame.copy() if args.visualize else None
        result = pipeline.process_frame(frame, memory, display=display)
        memory = result.memory

        page_str = ','.join(str(p.number) for p in result.pages) or '-'
        print(f"[{idx}] {name}: Keypoints: {len(result.keypoints)} | Pages: {page_str} | "
              f"Markers: {len(result.markers)} | {result.framerate} fps")

        if display is not None:
            out_path = output_dir / f"{name}_pages.jpg"
            cv2.imwrite(str(out_path), display)

    print("\nDone!")


if __name__ == "__main__":
    main()
