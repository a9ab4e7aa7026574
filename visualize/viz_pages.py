"""
Visualize Page Detection

Standalone script to test and visualize page and marker detection on still
images. Each output is a 2x2 grid: raw image, marker threshold mask,
neighbor graph, and the full overlay.

Usage:
    python viz_pages.py <image_directory> [calibration.json]
"""

import cv2
import numpy as np
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from pipeline import PageDetectionPipeline
from config import CalibrationConfig, CORNER_NAMES
from detection.visualization import OverlayRenderer, add_label_to_image, dim_image


def main():
    if len(sys.argv) < 2:
        print("Usage: python viz_pages.py <image_directory> [calibration.json]")
        sys.exit(1)

    target = Path(sys.argv[1])
    if not target.exists():
        print(f"Error: Path does not exist: {target}")
        sys.exit(1)

    calibration = CalibrationConfig.load(sys.argv[2]) if len(sys.argv) > 2 else CalibrationConfig()

    # Find images
    if target.is_dir():
        image_paths = []
        for ext in ('*.jpg', '*.jpeg', '*.png', '*.JPG', '*.JPEG', '*.PNG'):
            image_paths.extend(target.glob(ext))
        image_paths = sorted({p.resolve() for p in image_paths})
        output_dir = target / "viz_pages"
    else:
        image_paths = [target]
        output_dir = target.parent / "viz_pages"

    output_dir.mkdir(exist_ok=True)

    pipeline = PageDetectionPipeline(calibration)
    renderer = OverlayRenderer(calibration)

    print(f"Found {len(image_paths)} image(s) to process\n")

    for idx, image_path in enumerate(image_paths, 1):
        image = cv2.imread(str(image_path))
        if image is None:
            print(f"[{idx}/{len(image_paths)}] Skipping unreadable image: {image_path.name}")
            continue

        # Each still image is independent, so no memory is carried over
        overlay = image.copy()
        result = pipeline.process_frame(image, display=overlay)

        thresh = pipeline.marker_locator.binarize(image)

        graph = dim_image(image)
        renderer.draw_component_lines(graph, result.keypoints, result.neighbors)
        renderer.draw_shape_ids(graph, result.keypoints, result.shapes)

        top_row = np.hstack([add_label_to_image(image, "1. Raw"),
                             add_label_to_image(thresh, "2. Marker threshold")])
        bottom_row = np.hstack([add_label_to_image(graph, "3. Neighbor graph + shapes"),
                                add_label_to_image(overlay, "4. Pages + markers")])
        grid = np.vstack([top_row, bottom_row])

        grid_path = output_dir / f"{image_path.stem}_pages.jpg"
        cv2.imwrite(str(grid_path), grid)

        corners = ', '.join(f"{s.page_id}:{CORNER_NAMES[s.corner]}" for s in result.shapes) or 'none'
        print(f"[{idx}/{len(image_paths)}] {image_path.name}: corners {corners}; "
              f"{len(result.pages)} pages, {len(result.markers)} markers. Saved {grid_path.name}")

    print(f"\nResults saved to: {output_dir}")


if __name__ == "__main__":
    main()
