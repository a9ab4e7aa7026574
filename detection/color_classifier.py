"""
Color Classifier Module

Maps observed dot colors onto the calibrated palette using the CIEDE2000
perceptual distance. Whole corner shapes are classified jointly so that
uneven lighting across the page shifts all samples together.
"""

import cv2
import numpy as np
from skimage.color import deltaE_ciede2000
from typing import List, Sequence


def rgb_to_lab(colors) -> np.ndarray:
    """RGB triples (0-255) -> CIE L*a*b* (L in 0-100)."""
    arr = np.asarray(colors, dtype=np.float32)[..., :3].reshape(-1, 1, 3) / 255.0
    return cv2.cvtColor(arr, cv2.COLOR_RGB2Lab).reshape(-1, 3).astype(np.float64)


def ciede2000(lab1: np.ndarray, lab2: np.ndarray) -> np.ndarray:
    """CIEDE2000 color difference, broadcasting over leading dimensions."""
    lab1, lab2 = (np.array(lab, dtype=np.float64) for lab in np.broadcast_arrays(lab1, lab2))
    return deltaE_ciede2000(lab1, lab2, channel_axis=-1)


def sample_keypoint_color(image: np.ndarray, keypoint) -> np.ndarray:
    """
    Average RGB color inside a keypoint's circle, normalized to paper white.

    The white reference per channel is the brightest of the four pixels just
    outside the keypoint's bounding square.
    """
    rows, cols = image.shape[:2]
    size = max(1, int(round(keypoint.size)))
    x = int(np.floor(keypoint.x - keypoint.size / 2))
    y = int(np.floor(keypoint.y - keypoint.size / 2))

    mask = np.zeros((size, size), dtype=np.uint8)
    cv2.circle(mask, (size // 2, size // 2), max(1, int(size / 2 - 1)), 255, -1)

    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(cols, x + size), min(rows, y + size)
    if x1 <= x0 or y1 <= y0:
        return np.zeros(3)
    roi = image[y0:y1, x0:x1]
    roi_mask = mask[y0 - y:y1 - y, x0 - x:x1 - x]
    if not roi_mask.any():
        return np.zeros(3)
    mean_bgr = np.array(cv2.mean(roi, mask=roi_mask)[:3])

    def px(r, c):
        return image[int(np.clip(r, 0, rows - 1)), int(np.clip(c, 0, cols - 1))][:3]

    corners = np.array([
        px(y - 1, x - 1),
        px(y - 1, x + size + 1),
        px(y + size + 1, x - 1),
        px(y + size + 1, x + size + 1),
    ], dtype=np.float64)
    white = np.maximum(1.0, corners.max(axis=0))

    bgr = np.clip(mean_bgr / white * 255.0, 0, 255)
    return bgr[::-1]


class ColorClassifier:
    """Nearest-palette color lookup."""

    def __init__(self, colors_rgb: Sequence[Sequence[int]]):
        self.colors_rgb = [list(c)[:3] for c in colors_rgb]
        self.palette_lab = rgb_to_lab(self.colors_rgb)

    def distances(self, colors) -> np.ndarray:
        """(n_colors, n_palette) matrix of CIEDE2000 distances."""
        lab = rgb_to_lab(colors)
        return ciede2000(lab[:, None, :], self.palette_lab[None, :, :])

    def closest(self, color) -> int:
        """Palette index of a single color."""
        return int(np.argmin(self.distances([color])[0]))

    def classify(self, colors) -> List[int]:
        """Independent lookup for each color."""
        if len(colors) == 0:
            return []
        return [int(i) for i in np.argmin(self.distances(colors), axis=1)]

    def classify_shape(self, colors) -> List[int]:
        """
        Jointly classify the samples of one shape.

        Greedily pairs the globally closest (sample, palette entry) until every
        palette entry has a representative sample, then labels each sample
        with the palette index of its nearest representative.
        """
        samples = np.asarray(colors, dtype=np.float64)[:, :3]
        dist = self.distances(samples)
        n_samples, n_palette = dist.shape
        if n_samples < n_palette:
            return self.classify(samples)

        representatives = {}
        free_samples = set(range(n_samples))
        free_palette = set(range(n_palette))
        while free_palette:
            best = None
            for s in free_samples:
                for p in free_palette:
                    if best is None or dist[s, p] < dist[best]:
                        best = (s, p)
            s, p = best
            representatives[p] = s
            free_samples.discard(s)
            free_palette.discard(p)

        palette_order = sorted(representatives)
        rep_lab = rgb_to_lab(samples[[representatives[p] for p in palette_order]])
        sample_lab = rgb_to_lab(samples)
        rep_dist = ciede2000(sample_lab[:, None, :], rep_lab[None, :, :])

        result = [palette_order[int(i)] for i in np.argmin(rep_dist, axis=1)]
        for p, s in representatives.items():
            result[s] = p
        return result
