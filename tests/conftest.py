"""Shared test fixtures."""

import numpy as np
import pytest

from scurv import KdTreeSearch
from shape_pointcloud_generator import (
    generate_bowl, generate_plane, generate_sphere
)


@pytest.fixture
def sphere_cloud():
    return generate_sphere(800, radius=2.0, seed=7)


@pytest.fixture
def inward_sphere_cloud():
    return generate_sphere(800, radius=2.0, inward=True, seed=7)


@pytest.fixture
def plane_cloud():
    return generate_plane(25, 25, jitter=0.3, seed=3)


@pytest.fixture
def bowl_cloud():
    return generate_bowl(800, seed=11)


class CountingSearch:
    """Neighbour search stub that records how it was used."""

    def __init__(self):
        self._inner = KdTreeSearch()
        self.input_calls = 0
        self.queries = 0

    def set_input_cloud(self, points):
        self.input_calls += 1
        self._inner.set_input_cloud(points)

    def nearest_k_search(self, index, k):
        self.queries += 1
        return self._inner.nearest_k_search(index, k)


@pytest.fixture
def counting_search():
    return CountingSearch()


def _random_cloud(n_points, seed=0):
    rng = np.random.default_rng(seed)
    points = rng.uniform(-1, 1, (n_points, 3))
    normals = rng.normal(size=(n_points, 3))
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    return points, normals


@pytest.fixture
def random_cloud():
    return _random_cloud
