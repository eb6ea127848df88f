import numpy as np
import pytest

from particle_morph.config import default_config
from particle_morph.morph import AUTO_ROTATE_RATE
from particle_morph.system import ParticleSystem
from particle_morph.types import ConceptResult, ParticleConfig, ShapeType


def _system(shape=ShapeType.SPHERE, count=15000):
    return ParticleSystem(default_config(shape, count), rng=np.random.default_rng(7))


def test_shape_change_swaps_target_but_not_live():
    system = _system()
    assert system.live.shape == (3 * 15000,)
    sphere_target = system.target
    live_before = system.live.copy()

    system.set_shape(ShapeType.HEART)
    assert system.target is not sphere_target
    assert system.morph.target is system.target
    np.testing.assert_array_equal(system.live, live_before)

    system.tick(elapsed=0.0)
    assert not np.array_equal(system.live, live_before)
    gap_before = np.abs(system.target - live_before).max()
    assert np.abs(system.target - system.live).max() < gap_before


def test_live_buffer_is_mutated_in_place():
    system = _system(count=200)
    live = system.live
    system.tick(elapsed=0.5)
    system.set_shape(ShapeType.TREE)
    system.tick(elapsed=0.6)
    assert system.live is live


def test_colors_follow_target_and_palette_only():
    system = _system(count=200)
    colors = system.colors
    assert colors.shape == (600,)

    system.tick(elapsed=0.1)
    system.sync()
    assert system.colors is colors

    system.set_palette_color(0, "#ff00ff")
    assert system.colors is not colors
    colors = system.colors

    system.set_shape(ShapeType.GALAXY)
    assert system.colors is not colors


def test_tick_spins_group_by_speed():
    system = _system(count=50)
    system.config.speed = 2.0
    system.tick(elapsed=0.0)
    system.tick(elapsed=0.016)
    assert system.transform.rotation_y == pytest.approx(2 * AUTO_ROTATE_RATE * 2.0)


def test_apply_concept_updates_config():
    system = _system(count=100)
    palette = ("#110000", "#220000", "#330000", "#440000", "#550000")
    system.apply_concept(
        ConceptResult(
            color_hex="#ff0000",
            color_palette=palette,
            speed=1.2,
            noise_strength=0.9,
            shape=ShapeType.HEART,
            reasoning="love",
        )
    )
    cfg = system.config
    assert cfg.shape is ShapeType.HEART
    assert cfg.color_palette == list(palette)
    assert (cfg.speed, cfg.noise_strength, cfg.color) == (1.2, 0.9, "#ff0000")
    assert system.morph.target is system.target


def test_count_is_fixed_for_session():
    system = _system(count=100)
    with pytest.raises(ValueError):
        system.apply_config(default_config(count=200))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"color_palette": ["#000000"] * 4},
        {"speed": -0.1},
        {"noise_strength": -1.0},
        {"count": 0},
        {"shape": "Pyramid"},
    ],
)
def test_config_invariants(kwargs):
    base = dict(color_palette=["#000000"] * 5)
    base.update(kwargs)
    with pytest.raises(ValueError):
        ParticleConfig(**base)


def test_bad_palette_color_leaves_config_untouched():
    system = _system(count=100)
    palette = list(system.config.color_palette)
    colors = system.colors
    with pytest.raises(ValueError):
        system.set_palette_color(2, "not-a-color")
    assert system.config.color_palette == palette
    system.sync()
    assert system.colors is colors

    system.set_palette_color(2, "#0f0")
    assert system.config.color_palette[2] == "#0f0"
