"""
Synthetic Shape Point Cloud Generator

Generates point clouds of simple shapes WITH EXACT NORMALS, for testing
and demonstrating the SCurV descriptor:
- Plane (flat everywhere)
- Sphere (convex with outward normals, concave with inward normals)
- Bowl (open hemisphere seen from the inside: concave)
- Cylinder (convex side wall)

Every generator returns an Nx6 array (x, y, z, normal_x, normal_y, normal_z).

Output: PCD files (read by scurv_estimation) and optional PLY
"""

import os
from typing import Optional, Tuple

import numpy as np

from pointcloud_io import save_pcd_point_normal, save_ply_point_normal


def _rng(seed: Optional[int]) -> np.random.Generator:
    return np.random.default_rng(seed)


def _unit_sphere_directions(n_points: int, rng: np.random.Generator) -> np.ndarray:
    directions = rng.normal(size=(n_points, 3))
    return directions / np.linalg.norm(directions, axis=1, keepdims=True)


def generate_plane(
    n_points_x: int = 40,
    n_points_y: int = 40,
    size_x: float = 1.0,
    size_y: float = 1.0,
    jitter: float = 0.0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate a planar patch in z = 0 with normals (0, 0, 1).

    Parameters:
    -----------
    n_points_x, n_points_y : int
        Grid resolution
    size_x, size_y : float
        Patch dimensions
    jitter : float
        In-plane random displacement as a fraction of grid spacing
    seed : int, optional
        Random seed for reproducibility

    Returns:
    --------
    cloud : np.ndarray
        Nx6 points with normals
    """
    rng = _rng(seed)
    x = np.linspace(0, size_x, n_points_x)
    y = np.linspace(0, size_y, n_points_y)
    X, Y = np.meshgrid(x, y)
    X, Y = X.ravel(), Y.ravel()

    if jitter > 0:
        X = X + rng.uniform(-jitter, jitter, len(X)) * size_x / n_points_x
        Y = Y + rng.uniform(-jitter, jitter, len(Y)) * size_y / n_points_y

    n = len(X)
    normals = np.tile([0.0, 0.0, 1.0], (n, 1))
    return np.column_stack([X, Y, np.zeros(n), normals])


def generate_sphere(
    n_points: int = 2000,
    radius: float = 1.0,
    center: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    inward: bool = False,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate points uniformly on a sphere.

    Parameters:
    -----------
    n_points : int
        Number of points
    radius : float
        Sphere radius
    center : tuple
        Sphere centre
    inward : bool
        If True, normals point to the centre (the surface reads as concave)
    seed : int, optional
        Random seed

    Returns:
    --------
    cloud : np.ndarray
        Nx6 points with normals
    """
    directions = _unit_sphere_directions(n_points, _rng(seed))
    points = np.asarray(center) + radius * directions
    normals = -directions if inward else directions
    return np.column_stack([points, normals])


def generate_bowl(
    n_points: int = 2000,
    radius: float = 1.0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate the lower hemisphere with normals facing the centre (a bowl).
    """
    directions = _unit_sphere_directions(n_points, _rng(seed))
    directions[:, 2] = -np.abs(directions[:, 2])
    return np.column_stack([radius * directions, -directions])


def generate_cylinder(
    n_points: int = 2000,
    radius: float = 1.0,
    height: float = 2.0,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate the side wall of a cylinder along z with outward normals.
    """
    rng = _rng(seed)
    theta = rng.uniform(0, 2 * np.pi, n_points)
    z = rng.uniform(0, height, n_points)
    normals = np.column_stack([np.cos(theta), np.sin(theta), np.zeros(n_points)])
    points = np.column_stack([radius * normals[:, 0], radius * normals[:, 1], z])
    return np.column_stack([points, normals])


def add_measurement_noise(
    cloud: np.ndarray,
    noise_std: float,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Add Gaussian noise to point positions (simulates sensor noise).

    Normals are left unchanged.
    """
    noisy = cloud.copy()
    noisy[:, :3] += _rng(seed).normal(0, noise_std, (len(cloud), 3))
    return noisy


def generate_test_set(output_dir: str = "data", seed: int = 42):
    """
    Generate one cloud per shape and save them as PCD (and PLY) files.

    Returns:
    --------
    paths : dict
        Shape name -> PCD path
    """
    shapes = {
        'plane': generate_plane(45, 45, jitter=0.3, seed=seed),
        'sphere': generate_sphere(2000, seed=seed),
        'sphere_inward': generate_sphere(2000, inward=True, seed=seed),
        'bowl': generate_bowl(2000, seed=seed),
        'cylinder': generate_cylinder(2000, seed=seed),
    }

    print("=" * 60)
    print("GENERATING SYNTHETIC SHAPE POINT CLOUDS")
    print("=" * 60)

    os.makedirs(output_dir, exist_ok=True)
    paths = {}
    for name, cloud in shapes.items():
        path = os.path.join(output_dir, f"{name}.pcd")
        save_pcd_point_normal(path, cloud)
        save_ply_point_normal(os.path.join(output_dir, f"{name}.ply"), cloud)
        paths[name] = path
        print(f"  {name:<14s} {len(cloud):>6,} points -> {path}")

    print(f"\nFiles saved to: {os.path.abspath(output_dir)}/")
    return paths


if __name__ == "__main__":
    generate_test_set()
