"""Tests for the SCurV estimator and signature comparison."""

import numpy as np
import pytest

from scurv import (
    CONCAVE, CONVEX, FLAT, N_CATEGORIES, N_DISTRIBUTIONS, N_RESAMPLE, SIGNATURE_SIZE,
    DegenerateGeometryError, InsufficientNeighborsError, InvalidParameterError,
    MissingInputError, SCurVConfig, SCurVEstimation, category_fractions,
    compare_signatures, reshape_signature,
)
from shape_pointcloud_generator import add_measurement_noise, generate_plane


def _compute(cloud, normals=None, **config):
    scurv = SCurVEstimation(SCurVConfig(**config))
    scurv.set_input_cloud(cloud)
    scurv.set_input_normals(cloud if normals is None else normals)
    output = []
    signature = scurv.compute(output)
    assert len(output) == 1
    assert output[0] is signature
    return signature


def test_defaults():
    scurv = SCurVEstimation()
    assert scurv.get_k_search() == 19
    assert scurv.feature_name == "SCurVEstimation"


def test_signature_has_210_values(sphere_cloud):
    signature = _compute(sphere_cloud)
    assert signature.shape == (SIGNATURE_SIZE,)
    assert SIGNATURE_SIZE == N_CATEGORIES * N_DISTRIBUTIONS * N_RESAMPLE == 210
    assert np.all(np.isfinite(signature))


def test_curves_are_monotone_and_bounded(bowl_cloud):
    curves = reshape_signature(_compute(bowl_cloud))
    assert np.all(np.diff(curves, axis=2) >= -1e-12)
    assert curves.min() >= -1e-12
    assert curves.max() <= 1.0 + 1e-12
    # Each category's curves end at the same fraction
    np.testing.assert_allclose(curves[:, :, -1], curves[:, :1, -1].repeat(5, axis=1))
    assert curves[:, 0, -1].sum() == pytest.approx(1.0)


def test_flat_plane(plane_cloud):
    curves = reshape_signature(_compute(plane_cloud))
    assert np.all(curves[CONVEX] == 0.0)
    assert np.all(curves[CONCAVE] == 0.0)
    np.testing.assert_allclose(curves[FLAT, :, -1], 1.0)


def test_sphere_is_mostly_convex(sphere_cloud):
    fractions = category_fractions(_compute(sphere_cloud))
    assert fractions['convex'] > 0.95
    assert fractions['concave'] == 0.0


def test_inward_sphere_is_mostly_concave(inward_sphere_cloud):
    fractions = category_fractions(_compute(inward_sphere_cloud))
    assert fractions['concave'] > 0.95
    assert fractions['convex'] == 0.0


def test_scale_invariance(sphere_cloud):
    scaled = sphere_cloud.copy()
    scaled[:, :3] = scaled[:, :3] * 7.5 + [100.0, -20.0, 3.0]
    np.testing.assert_allclose(_compute(scaled), _compute(sphere_cloud), atol=1e-9)


@pytest.mark.parametrize("factor", [0.1, 3.0, 7.5, 1e3, 1e-3])
def test_scale_invariance_on_regular_grid(factor):
    # Grid coordinates fall exactly on histogram bin edges
    grid = generate_plane(11, 11)
    scaled = grid.copy()
    scaled[:, :3] *= factor
    np.testing.assert_allclose(_compute(scaled), _compute(grid), atol=1e-9)


def test_noisy_sphere_is_mostly_convex(sphere_cloud):
    noisy = add_measurement_noise(sphere_cloud, 0.001, seed=1)
    assert category_fractions(_compute(noisy))["convex"] > 0.8


def test_deterministic(bowl_cloud):
    np.testing.assert_array_equal(_compute(bowl_cloud), _compute(bowl_cloud))


def test_threaded_matches_sequential(sphere_cloud):
    sequential = _compute(sphere_cloud)
    threaded = _compute(sphere_cloud, workers=4, chunk_size=97)
    np.testing.assert_array_equal(threaded, sequential)


def test_separate_point_and_normal_arrays(sphere_cloud):
    combined = _compute(sphere_cloud)
    separate = _compute(sphere_cloud[:, :3].copy(), sphere_cloud[:, 3:].copy())
    np.testing.assert_array_equal(combined, separate)


def test_input_is_not_modified(sphere_cloud):
    before = sphere_cloud.copy()
    _compute(sphere_cloud)
    np.testing.assert_array_equal(sphere_cloud, before)


def test_custom_search_method(sphere_cloud, counting_search):
    scurv = SCurVEstimation()
    scurv.set_search_method(counting_search)
    scurv.set_input_cloud(sphere_cloud)
    scurv.set_input_normals(sphere_cloud)
    scurv.compute([])
    assert counting_search.input_calls == 1
    assert counting_search.queries == len(sphere_cloud)


def test_set_k_search():
    scurv = SCurVEstimation()
    scurv.set_k_search(7)
    assert scurv.get_k_search() == 7


def test_set_k_search_leaves_shared_config_alone():
    config = SCurVConfig()
    a = SCurVEstimation(config)
    b = SCurVEstimation(config)
    a.set_k_search(5)
    assert a.get_k_search() == 5
    assert b.get_k_search() == 19
    assert config.k_search == 19


@pytest.mark.parametrize("k", [1, 0, -3, 2.5, True])
def test_invalid_k(k):
    with pytest.raises(InvalidParameterError):
        SCurVEstimation().set_k_search(k)


def test_invalid_k_in_config():
    with pytest.raises(InvalidParameterError):
        SCurVEstimation(SCurVConfig(k_search=1))


def test_insufficient_neighbors(random_cloud):
    points, normals = random_cloud(5)
    scurv = SCurVEstimation()
    scurv.set_input_cloud(points)
    scurv.set_input_normals(normals)
    output = []
    with pytest.raises(InsufficientNeighborsError):
        scurv.compute(output)
    assert output == []


def test_misaligned_normals_fail_before_search(random_cloud, counting_search):
    points, normals = random_cloud(100)
    scurv = SCurVEstimation()
    scurv.set_search_method(counting_search)
    scurv.set_input_cloud(points)
    scurv.set_input_normals(normals[:99])
    output = []
    with pytest.raises(MissingInputError):
        scurv.compute(output)
    assert output == []
    assert counting_search.input_calls == 0
    assert counting_search.queries == 0


def test_missing_normals(random_cloud):
    points, _ = random_cloud(30)
    scurv = SCurVEstimation()
    scurv.set_input_cloud(points)
    with pytest.raises(MissingInputError):
        scurv.compute([])


def test_missing_cloud():
    with pytest.raises(MissingInputError):
        SCurVEstimation().compute([])


def test_degenerate_cloud():
    cloud = np.tile([1.0, 2.0, 3.0, 0.0, 0.0, 1.0], (25, 1))
    scurv = SCurVEstimation()
    scurv.set_input_cloud(cloud)
    scurv.set_input_normals(cloud)
    output = []
    with pytest.raises(DegenerateGeometryError):
        scurv.compute(output)
    assert output == []


def test_compare_identical_signatures(sphere_cloud):
    signature = _compute(sphere_cloud)
    metrics = compare_signatures(signature, signature)
    assert metrics['l1'] == 0.0
    assert metrics['emd'] == 0.0
    assert metrics['correlation'] == pytest.approx(1.0)


def test_compare_distinguishes_shapes(sphere_cloud, inward_sphere_cloud, plane_cloud):
    convex = _compute(sphere_cloud)
    concave = _compute(inward_sphere_cloud)
    flat = _compute(plane_cloud)
    # Same points, only the normal orientation differs
    assert compare_signatures(convex, concave)['emd'] > 0.1
    assert compare_signatures(convex, flat)['l2'] > compare_signatures(convex, convex)['l2']


def test_reshape_rejects_wrong_length():
    with pytest.raises(InvalidParameterError):
        reshape_signature(np.zeros(209))
