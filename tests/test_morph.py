import numpy as np
import pytest

from particle_morph.morph import AUTO_ROTATE_RATE, MORPH_BLEND, MorphEngine
from particle_morph.shapes import generate
from particle_morph.types import ShapeType


def _engine(**kwargs):
    start = generate(ShapeType.SPHERE, 500, rng=np.random.default_rng(0))
    target = generate(ShapeType.HEART, 500, rng=np.random.default_rng(1))
    return MorphEngine(start, target=target, **kwargs)


def _gap(engine):
    return np.abs(engine.target.astype(np.float64) - engine.live.astype(np.float64))


def test_converges_monotonically_without_overshoot():
    engine = _engine()
    sign0 = np.sign(engine.target - engine.live)
    prev = _gap(engine).max()
    for i in range(60):
        engine.tick(elapsed=i / 60.0, speed=0.5, noise_strength=0.0)
        gap = _gap(engine).max()
        assert gap < prev
        prev = gap
        sign = np.sign(engine.target - engine.live)
        assert np.all((sign == sign0) | (sign == 0))
    assert prev > 0.0


def test_blend_covers_fixed_fraction_per_tick():
    engine = MorphEngine(np.zeros(3, dtype=np.float32), target=np.full(3, 10.0, dtype=np.float32))
    engine.tick(elapsed=0.0, speed=1.0, noise_strength=0.0)
    np.testing.assert_allclose(engine.live, 10.0 * MORPH_BLEND, rtol=1e-6)


def test_noise_below_threshold_is_ignored():
    quiet = _engine()
    noisy = _engine()
    quiet.tick(elapsed=1.0, speed=1.0, noise_strength=0.0)
    noisy.tick(elapsed=1.0, speed=1.0, noise_strength=0.005)
    np.testing.assert_array_equal(quiet.live, noisy.live)


def test_noise_perturbs_each_axis():
    quiet = _engine()
    noisy = _engine()
    quiet.tick(elapsed=1.3, speed=1.0, noise_strength=1.0)
    noisy.tick(elapsed=1.3, speed=1.0, noise_strength=0.0)
    diff = (quiet.live - noisy.live).reshape(-1, 3)
    assert np.all(np.abs(diff) <= 0.1 + 1e-5)
    assert np.all(np.abs(diff).max(axis=0) > 0.01)


def test_noise_phase_uses_other_axis():
    engine = MorphEngine(np.array([0.0, 2.0, 0.0], dtype=np.float32))
    engine.tick(elapsed=0.0, speed=1.0, noise_strength=1.0)
    # x moves by sin(0.5 * y), y by cos(0.5 * x), z by sin(0.5 * z)
    np.testing.assert_allclose(engine.live, [0.1 * np.sin(1.0), 2.0 + 0.1, 0.0], atol=1e-6)


def test_returns_auto_rotation_increment():
    engine = _engine()
    assert engine.tick(elapsed=0.0, speed=2.0, noise_strength=0.0) == pytest.approx(AUTO_ROTATE_RATE * 2.0)


def test_set_target_keeps_live_buffer():
    engine = _engine()
    before = engine.live.copy()
    engine.set_target(generate(ShapeType.TREE, 500, rng=np.random.default_rng(2)))
    np.testing.assert_array_equal(engine.live, before)


def test_set_target_length_mismatch():
    engine = _engine()
    with pytest.raises(ValueError):
        engine.set_target(np.zeros(3, dtype=np.float32))


def test_frame_rate_independent_blend():
    engine = _engine(frame_rate_independent=True)
    assert engine.blend_factor(1 / 60) == pytest.approx(MORPH_BLEND)
    assert engine.blend_factor(1 / 30) == pytest.approx(1 - (1 - MORPH_BLEND) ** 2)
    assert engine.blend_factor(None) == MORPH_BLEND

    fixed = _engine()
    assert fixed.blend_factor(1 / 30) == MORPH_BLEND
