"""
Point Cloud and Signature I/O

Reads and writes the file formats used around the SCurV estimator:

- PCD / PLY point clouds through open3d
- CSV: one header row of field names (x, y, z, normal_x, ...)
- SCurV signatures: ASCII PCD records with a single 210-wide field
  named "scurv"

Point clouds are handed to the estimator as Nx6 arrays
(x, y, z, normal_x, normal_y, normal_z).
"""

import os
from typing import List, Sequence

import numpy as np
import open3d as o3d

from scurv import MissingInputError, SIGNATURE_SIZE


POINT_NORMAL_FIELDS = ('x', 'y', 'z', 'normal_x', 'normal_y', 'normal_z')


# =============================================================================
# POINT CLOUDS
# =============================================================================

def load_csv(filepath: str) -> o3d.geometry.PointCloud:
    """Load a point cloud from CSV with a header row of field names."""
    with open(filepath, 'r') as f:
        names = [n.strip() for n in f.readline().split(',')]
    table = np.loadtxt(filepath, delimiter=',', skiprows=1, ndmin=2)
    columns = {name: table[:, i] for i, name in enumerate(names)}

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(
        np.column_stack([columns['x'], columns['y'], columns['z']])
    )
    if all(name in columns for name in POINT_NORMAL_FIELDS[3:]):
        pcd.normals = o3d.utility.Vector3dVector(
            np.column_stack([columns[name] for name in POINT_NORMAL_FIELDS[3:]])
        )
    return pcd


def read_point_cloud(filepath: str) -> o3d.geometry.PointCloud:
    """
    Load a PCD, PLY or CSV point cloud.

    Raises:
    -------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the format is unsupported or no points could be read.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"No such file: {filepath}")

    ext = os.path.splitext(filepath)[1].lower()
    if ext == '.csv':
        pcd = load_csv(filepath)
    elif ext in ('.pcd', '.ply'):
        pcd = o3d.io.read_point_cloud(filepath)
    else:
        raise ValueError(f"Unsupported point cloud format: {filepath}")

    if not pcd.has_points():
        raise ValueError(f"{filepath}: no points could be read")
    return pcd


def get_fields_list(pcd: o3d.geometry.PointCloud) -> str:
    """Space separated field names, e.g. 'x y z normal_x normal_y normal_z'."""
    fields = ['x', 'y', 'z']
    if pcd.has_normals():
        fields += ['normal_x', 'normal_y', 'normal_z']
    if pcd.has_colors():
        fields.append('rgb')
    return ' '.join(fields)


def point_normal_cloud(pcd: o3d.geometry.PointCloud) -> np.ndarray:
    """
    Stack points and normals into an Nx6 array.

    Raises:
    -------
    MissingInputError
        If the cloud carries no normal information.
    """
    if not pcd.has_normals():
        raise MissingInputError("The input dataset does not contain normal information!")
    return np.hstack([np.asarray(pcd.points), np.asarray(pcd.normals)]).astype(np.float64)


def load_point_normal_cloud(filepath: str) -> np.ndarray:
    """Load a cloud with normals as an Nx6 array."""
    return point_normal_cloud(read_point_cloud(filepath))


def to_open3d(cloud: np.ndarray) -> o3d.geometry.PointCloud:
    """Nx6 point+normal array -> open3d point cloud."""
    cloud = np.asarray(cloud, dtype=np.float64)
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(cloud[:, :3])
    pcd.normals = o3d.utility.Vector3dVector(cloud[:, 3:6])
    return pcd


def save_pcd_point_normal(filepath: str, cloud: np.ndarray, write_ascii: bool = True):
    """Save an Nx6 point+normal cloud as PCD."""
    if not o3d.io.write_point_cloud(filepath, to_open3d(cloud), write_ascii=write_ascii):
        raise OSError(f"Could not write {filepath}")


def save_ply_point_normal(filepath: str, cloud: np.ndarray, write_ascii: bool = True):
    """Save an Nx6 point+normal cloud as PLY."""
    if not o3d.io.write_point_cloud(filepath, to_open3d(cloud), write_ascii=write_ascii):
        raise OSError(f"Could not write {filepath}")


# =============================================================================
# SIGNATURES
# =============================================================================

def save_signatures_pcd(filepath: str, signatures: Sequence[np.ndarray]):
    """Save SCurV signatures as ASCII PCD, one record per signature."""
    table = np.asarray(signatures, dtype=np.float64).reshape(-1, SIGNATURE_SIZE)
    n_records = len(table)
    header = (
        "# .PCD v0.7 - Point Cloud Data file format\n"
        "VERSION 0.7\n"
        "FIELDS scurv\n"
        "SIZE 4\n"
        "TYPE F\n"
        f"COUNT {SIGNATURE_SIZE}\n"
        f"WIDTH {n_records}\n"
        "HEIGHT 1\n"
        "VIEWPOINT 0 0 0 1 0 0 0\n"
        f"POINTS {n_records}\n"
        "DATA ascii\n"
    )
    with open(filepath, 'w') as f:
        f.write(header)
        for row in table:
            f.write(' '.join(f"{v:.8g}" for v in row) + '\n')


def load_signatures_pcd(filepath: str) -> np.ndarray:
    """
    Load signatures saved by save_signatures_pcd.

    Returns:
    --------
    signatures : np.ndarray
        (M, 210) array

    Raises:
    -------
    ValueError
        If the file is not an ASCII "scurv" record file, or holds a
        different number of records than its POINTS line announces.
    """
    header = {}
    rows: List[List[float]] = []

    with open(filepath, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            key, *values = line.split()
            header[key.upper()] = values
            if key.upper() == 'DATA':
                break

        if header.get('FIELDS') != ['scurv'] or header.get('COUNT') != [str(SIGNATURE_SIZE)]:
            raise ValueError(f"{filepath}: not a SCurV signature file")
        if header.get('DATA') != ['ascii']:
            raise ValueError(f"{filepath}: only ASCII signature files are supported")

        for number, line in enumerate(f, start=1):
            parts = line.split()
            if not parts:
                continue
            if len(parts) != SIGNATURE_SIZE:
                raise ValueError(
                    f"{filepath}: record {number} has {len(parts)} values, "
                    f"expected {SIGNATURE_SIZE}"
                )
            rows.append([float(v) for v in parts])

    n_points = int(header.get('POINTS', ['0'])[0])
    if len(rows) != n_points:
        raise ValueError(f"{filepath}: {len(rows)} records, header announces {n_points}")
    return np.array(rows, dtype=np.float64).reshape(-1, SIGNATURE_SIZE)
