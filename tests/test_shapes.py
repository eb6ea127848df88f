import math

import numpy as np
import pytest

from particle_morph import shapes
from particle_morph.shapes import generate, heart_implicit, heart_points
from particle_morph.types import ShapeType


ALL_SHAPES = list(ShapeType) + ["Cube"]


def _points(shape, n=3000, seed=0):
    return generate(shape, n, rng=np.random.default_rng(seed)).reshape(-1, 3).astype(np.float64)


@pytest.mark.parametrize("shape", ALL_SHAPES)
@pytest.mark.parametrize("count", [0, 1, 7, 2500])
def test_buffer_length_matches_count(shape, count):
    buf = generate(shape, count, rng=np.random.default_rng(1))
    assert buf.shape == (3 * count,)
    assert buf.dtype == np.float32
    assert np.all(np.isfinite(buf))


def test_shape_names_are_accepted():
    assert generate("Heart", 10, rng=np.random.default_rng(0)).shape == (30,)


def test_negative_count_rejected():
    with pytest.raises(ValueError):
        generate(ShapeType.SPHERE, -1)


@pytest.mark.parametrize("shape", list(ShapeType))
def test_same_seed_same_cloud(shape):
    a = generate(shape, 500, rng=np.random.default_rng(123))
    b = generate(shape, 500, rng=np.random.default_rng(123))
    np.testing.assert_array_equal(a, b)


def test_sphere_lies_on_radius_15():
    r = np.linalg.norm(_points(ShapeType.SPHERE), axis=1)
    np.testing.assert_allclose(r, 15.0, atol=1e-3)


def test_heart_points_satisfy_implicit_inequality():
    pts = _points(ShapeType.HEART) / shapes.HEART_SCALE
    values = heart_implicit(pts[:, 0], pts[:, 1], pts[:, 2])
    assert np.all(values <= 1e-4)
    # the cloud fills the volume rather than collapsing to the origin
    assert np.count_nonzero(np.any(pts != 0, axis=1)) == len(pts)


def test_heart_shortfall_filled_at_origin():
    rng = np.random.default_rng(0)
    assert np.all(heart_points(rng, 50, max_attempts=0) == 0)

    pts = heart_points(rng, 50, max_attempts=20)
    assert pts.shape == (50, 3)
    # at most 20 candidates were drawn, so at least 30 particles are degenerate
    assert np.count_nonzero(np.all(pts == 0, axis=1)) >= 30


def test_galaxy_core_then_ring():
    n = 1000
    r = np.linalg.norm(_points(ShapeType.GALAXY, n), axis=1)
    n_core = 400
    np.testing.assert_allclose(r[:n_core], 10.0, atol=1e-3)
    assert np.all(r[n_core:] > 11.9)
    assert np.all(r[n_core:] < 16.1)


def test_galaxy_ring_is_tilted():
    pts = _points(ShapeType.GALAXY, 1000)[400:]
    # a flat ring would keep |y| <= 0.2
    assert np.abs(pts[:, 1]).max() > 3.0


def test_tree_fits_trunk_and_cone():
    pts = _points(ShapeType.TREE)
    assert pts[:, 1].min() >= -10.0
    assert pts[:, 1].max() <= 20.0
    radial = np.hypot(pts[:, 0], pts[:, 2])
    assert np.all(radial <= 10.0 + 1e-4)
    # leaves above the trunk shrink toward the apex
    top = pts[pts[:, 1] > 15.0]
    assert np.all(np.hypot(top[:, 0], top[:, 2]) <= 2.0 + 1e-4)


def test_flower_is_a_bud_on_a_stem():
    pts = _points(ShapeType.FLOWER, 5000)
    assert pts[:, 1].min() >= -20.0
    assert pts[:, 1].max() <= 16.0
    assert np.all(np.abs(pts[:, [0, 2]]) <= 20.0)
    # roughly 10% of the particles make up the stem below the bud
    stem_share = np.mean(pts[:, 1] < -3.0)
    assert 0.05 < stem_share < 0.15


def test_stamen_uses_golden_angle_per_index():
    index = np.array([0, 1, 2, 10, 377])
    pts = shapes._stamen(np.random.default_rng(3), index)
    theta = np.arctan2(pts[:, 2], pts[:, 0])
    expected = index * shapes.GOLDEN_ANGLE
    # compare on the circle
    np.testing.assert_allclose(np.angle(np.exp(1j * (theta - expected))), 0.0, atol=1e-9)
    assert np.all(np.hypot(pts[:, 0], pts[:, 2]) <= 1.5)
    assert np.all((pts[:, 1] >= 1.0) & (pts[:, 1] <= 3.0))


def test_petal_layer_shares():
    layer = shapes.petal_layers(np.random.default_rng(11), 20000)
    shares = np.bincount(layer, minlength=3) / len(layer)
    np.testing.assert_allclose(shares, [0.30, 0.35, 0.35], atol=0.02)


def test_petal_layers_interlock():
    layer = np.array([0, 0, 1, 2, 2])
    petal_idx = np.array([0, 1, 0, 0, 1])
    angles = shapes.petal_base_angles(layer, petal_idx)
    np.testing.assert_allclose(
        angles,
        [math.pi / 5, 3 * math.pi / 5, math.pi / 7, 0.0, 2 * math.pi / 9],
    )


def test_snowman_bounds():
    pts = _points(ShapeType.SNOWMAN, 5000)
    assert pts[:, 1].min() >= -15.0 - 1e-3
    assert pts[:, 1].max() <= 7.0 + 5.5 * 0.8 + 7.0 + 1e-3
    assert np.abs(pts[:, 0]).max() <= 16.0 + 1e-3


def test_unknown_shape_falls_back_to_cube():
    pts = _points("Cube")
    assert pts.min() >= -10.0
    assert pts.max() <= 10.0
