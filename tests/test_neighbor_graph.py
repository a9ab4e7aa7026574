"""Tests for the neighbor graph builder."""
import numpy as np

from detection.blob_detection import Keypoint
from detection.neighbor_graph import NeighborGraphBuilder, sort_keypoints


def random_keypoints(n=200, seed=3):
    rng = np.random.default_rng(seed)
    xs = rng.uniform(0, 500, n)
    ys = rng.uniform(0, 500, n)
    sizes = rng.uniform(5, 20, n)
    return [Keypoint(float(x), float(y), float(s)) for x, y, s in zip(xs, ys, sizes)]


def test_graph_is_symmetric():
    keypoints = random_keypoints()
    neighbors = NeighborGraphBuilder().build(keypoints)
    for i, adj in enumerate(neighbors):
        for j in adj:
            assert i in neighbors[j]


def test_edges_respect_distance_rule():
    keypoints = random_keypoints()
    neighbors = NeighborGraphBuilder().build(keypoints)
    edges = NeighborGraphBuilder.edges(neighbors)
    assert edges
    for i, j in edges:
        a, b = keypoints[i], keypoints[j]
        assert np.hypot(a.x - b.x, a.y - b.y) < 0.9 * (a.size + b.size)


def test_matches_brute_force_for_uniform_sizes():
    rng = np.random.default_rng(7)
    keypoints = [Keypoint(float(x), float(y), 10.0) for x, y in rng.uniform(0, 200, (150, 2))]
    neighbors = NeighborGraphBuilder().build(keypoints)
    for i, a in enumerate(keypoints):
        expected = {j for j, b in enumerate(keypoints)
                    if j != i and np.hypot(a.x - b.x, a.y - b.y) < 18.0}
        assert set(neighbors[i]) == expected


def test_row_of_dots():
    keypoints = [Keypoint(x, 0.0, 10.0) for x in (0.0, 15.0, 30.0, 60.0)]
    neighbors = NeighborGraphBuilder().build(keypoints)
    assert neighbors == [[1], [0, 2], [1], []]


def test_unsorted_input():
    keypoints = [Keypoint(30.0, 0.0, 10.0), Keypoint(0.0, 0.0, 10.0), Keypoint(15.0, 0.0, 10.0)]
    neighbors = NeighborGraphBuilder().build(keypoints)
    assert sorted(neighbors[2]) == [0, 1]
    assert neighbors[0] == [2]
    assert neighbors[1] == [2]


def test_sort_keypoints():
    keypoints = [Keypoint(3.0, 0.0, 1.0), Keypoint(1.0, 5.0, 1.0), Keypoint(2.0, 2.0, 1.0)]
    assert [kp.x for kp in sort_keypoints(keypoints)] == [1.0, 2.0, 3.0]


def test_empty():
    assert NeighborGraphBuilder().build([]) == []
