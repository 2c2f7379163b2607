"""Tests for point cloud and signature I/O."""

import numpy as np
import open3d as o3d
import pytest

from scurv import SIGNATURE_SIZE, MissingInputError
from pointcloud_io import (
    get_fields_list, load_point_normal_cloud, load_signatures_pcd, point_normal_cloud,
    read_point_cloud, save_pcd_point_normal, save_ply_point_normal, save_signatures_pcd,
)


def test_pcd_round_trip(tmp_path, sphere_cloud):
    path = str(tmp_path / "sphere.pcd")
    save_pcd_point_normal(path, sphere_cloud)

    pcd = read_point_cloud(path)
    assert get_fields_list(pcd) == "x y z normal_x normal_y normal_z"

    cloud = load_point_normal_cloud(path)
    assert cloud.shape == sphere_cloud.shape
    np.testing.assert_allclose(cloud, sphere_cloud, atol=1e-5)


def test_binary_pcd_round_trip(tmp_path, sphere_cloud):
    path = str(tmp_path / "sphere_binary.pcd")
    save_pcd_point_normal(path, sphere_cloud, write_ascii=False)
    np.testing.assert_allclose(load_point_normal_cloud(path), sphere_cloud, atol=1e-5)


def test_ply_round_trip(tmp_path, plane_cloud):
    path = str(tmp_path / "plane.ply")
    save_ply_point_normal(path, plane_cloud)
    np.testing.assert_allclose(load_point_normal_cloud(path), plane_cloud, atol=1e-5)


def test_csv_with_normals(tmp_path):
    path = tmp_path / "cloud.csv"
    path.write_text("x,y,z,normal_x,normal_y,normal_z\n1,2,3,0,0,1\n4,5,6,0,1,0\n")
    cloud = load_point_normal_cloud(str(path))
    np.testing.assert_array_equal(cloud, [[1, 2, 3, 0, 0, 1], [4, 5, 6, 0, 1, 0]])


def test_csv_without_normals(tmp_path):
    path = tmp_path / "xyz.csv"
    path.write_text("x,y,z\n1,2,3\n4,5,6\n")
    pcd = read_point_cloud(str(path))
    assert get_fields_list(pcd) == "x y z"
    with pytest.raises(MissingInputError):
        point_normal_cloud(pcd)


def test_missing_normals(tmp_path):
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(np.random.default_rng(0).uniform(size=(20, 3)))
    path = str(tmp_path / "xyz.ply")
    o3d.io.write_point_cloud(path, pcd, write_ascii=True)

    with pytest.raises(MissingInputError, match="normal information"):
        load_point_normal_cloud(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_point_cloud(str(tmp_path / "nothing.pcd"))


def test_unsupported_extension(tmp_path):
    path = tmp_path / "cloud.xyzn"
    path.write_text("0 0 0 0 0 1\n")
    with pytest.raises(ValueError):
        read_point_cloud(str(path))


def test_signature_round_trip(tmp_path):
    signatures = [np.linspace(0, 1, SIGNATURE_SIZE), np.zeros(SIGNATURE_SIZE)]
    path = str(tmp_path / "out.pcd")
    save_signatures_pcd(path, signatures)

    loaded = load_signatures_pcd(path)
    assert loaded.shape == (2, SIGNATURE_SIZE)
    np.testing.assert_allclose(loaded, signatures, atol=1e-7)


def test_truncated_signature_record(tmp_path):
    path = tmp_path / "out.pcd"
    save_signatures_pcd(str(path), [np.ones(SIGNATURE_SIZE)])
    text = path.read_text().splitlines()
    text[-1] = ' '.join(text[-1].split()[:100])
    path.write_text('\n'.join(text) + '\n')

    with pytest.raises(ValueError, match="expected 210"):
        load_signatures_pcd(str(path))


def test_signature_count_must_match_header(tmp_path):
    path = tmp_path / "out.pcd"
    save_signatures_pcd(str(path), [np.ones(SIGNATURE_SIZE), np.zeros(SIGNATURE_SIZE)])
    lines = path.read_text().splitlines()[:-1]
    path.write_text('\n'.join(lines) + '\n')

    with pytest.raises(ValueError, match="header announces 2"):
        load_signatures_pcd(str(path))


def test_point_cloud_file_is_not_a_signature_file(tmp_path, sphere_cloud):
    path = str(tmp_path / "sphere.pcd")
    save_pcd_point_normal(path, sphere_cloud)
    with pytest.raises(ValueError):
        load_signatures_pcd(path)
