"""
Neighbor Graph Module

Connects dots that touch or nearly touch, using an x-sorted sweep so the
common case stays close to linear.
"""

import numpy as np
from typing import List, Sequence
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config import PipelineConfig


def sort_keypoints(keypoints: Sequence) -> list:
    """Keypoints ordered by ascending x."""
    return sorted(keypoints, key=lambda kp: kp.x)


class NeighborGraphBuilder:
    """Builds the proximity graph over keypoints."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.NEIGHBOR_GRAPH
        self.distance_factor = self.config['DISTANCE_FACTOR']
        self.scan_factor = self.config['SCAN_FACTOR']

    def build(self, keypoints: Sequence) -> List[List[int]]:
        """
        Build symmetric adjacency lists.

        Args:
            keypoints: Keypoints with x, y and size

        Returns:
            neighbors[i] lists the indexes adjacent to keypoint i
        """
        order = sorted(range(len(keypoints)), key=lambda k: keypoints[k].x)
        neighbors = [[] for _ in keypoints]

        for a in range(len(order)):
            i = order[a]
            kp_i = keypoints[i]
            for b in range(a + 1, len(order)):
                j = order[b]
                kp_j = keypoints[j]
                if kp_j.x - kp_i.x > kp_i.size * self.scan_factor:
                    break
                dist = np.hypot(kp_j.x - kp_i.x, kp_j.y - kp_i.y)
                if dist < (kp_i.size + kp_j.size) * self.distance_factor:
                    neighbors[i].append(j)
                    neighbors[j].append(i)

        return neighbors

    @staticmethod
    def edges(neighbors: List[List[int]]):
        """Each undirected edge once, as (i, j) with i < j."""
        return [(i, j) for i, adj in enumerate(neighbors) for j in adj if i < j]
