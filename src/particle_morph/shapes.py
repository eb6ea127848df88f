"""
Procedural point-cloud generators.

Every generator takes a numpy random `Generator` and a particle count and returns
a `(count, 3)` float array. `generate` flattens the result into the
`3 * count` float32 buffer the renderer consumes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import numpy as np

from .config import PARTICLE_COUNT
from .types import ShapeType


TWO_PI = 2.0 * math.pi
GOLDEN_ANGLE = 2.39996

SPHERE_RADIUS = 15.0

HEART_SCALE = 12.0
HEART_BOUND = 1.5
HEART_MAX_ATTEMPTS_FACTOR = 20

GALAXY_CORE_RADIUS = 10.0
GALAXY_RING_TILT = math.radians(20.0)

SNOWMAN_HEAD_Y = 7.0
SNOWMAN_HEAD_RADIUS = 5.5
SNOWMAN_BODY_RADIUS = 9.0
SNOWMAN_BODY_Y = -6.0


@dataclass(frozen=True)
class PetalLayer:
    count: int
    radius_offset: float
    tilt: float
    length: float
    width: float
    y_base: float
    inward_curl: float


# inner (tight, almost closed), middle, outer (wrapping everything)
PETAL_LAYERS = (
    PetalLayer(count=5, radius_offset=0.5, tilt=0.1, length=9.0, width=4.0, y_base=0.5, inward_curl=1.2),
    PetalLayer(count=7, radius_offset=1.2, tilt=0.25, length=11.0, width=5.5, y_base=0.2, inward_curl=1.0),
    PetalLayer(count=9, radius_offset=2.0, tilt=0.4, length=12.0, width=7.0, y_base=-0.5, inward_curl=0.8),
)
PETAL_LAYER_THRESHOLDS = (0.30, 0.65)


def _cylindrical(r: np.ndarray, theta: np.ndarray, y: np.ndarray) -> np.ndarray:
    return np.column_stack([r * np.cos(theta), y, r * np.sin(theta)])


def sphere_surface(rng: np.random.Generator, n: int, radius: float) -> np.ndarray:
    """Uniform samples on a sphere surface centred at the origin."""
    theta = rng.uniform(0.0, TWO_PI, n)
    phi = np.arccos(2.0 * rng.random(n) - 1.0)
    return np.column_stack(
        [
            radius * np.sin(phi) * np.cos(theta),
            radius * np.sin(phi) * np.sin(theta),
            radius * np.cos(phi),
        ]
    )


def sphere_points(rng: np.random.Generator, n: int) -> np.ndarray:
    return sphere_surface(rng, n, SPHERE_RADIUS)


def heart_implicit(x, y, z):
    """Implicit heart surface; points with a value <= 0 lie inside."""
    x2 = x * x
    z2 = z * z
    y3 = y * y * y
    a = x2 + 2.25 * z2 + y * y - 1.0
    return a ** 3 - x2 * y3 - 0.1125 * z2 * y3


def heart_points(rng: np.random.Generator, n: int, max_attempts: Optional[int] = None) -> np.ndarray:
    """
    Rejection-sample the heart volume.

    At most `max_attempts` candidates are drawn (20 per particle by default). Any
    particles left unfilled stay at the origin.
    """
    if max_attempts is None:
        max_attempts = n * HEART_MAX_ATTEMPTS_FACTOR
    out = np.zeros((n, 3))
    filled = 0
    attempts = 0
    while filled < n and attempts < max_attempts:
        batch = min(n, max_attempts - attempts)
        cand = rng.uniform(-HEART_BOUND, HEART_BOUND, size=(batch, 3))
        attempts += batch
        inside = cand[heart_implicit(cand[:, 0], cand[:, 1], cand[:, 2]) <= 0.0]
        take = min(len(inside), n - filled)
        out[filled : filled + take] = inside[:take] * HEART_SCALE
        filled += take
    return out


def _stem(rng: np.random.Generator, n: int) -> np.ndarray:
    t = rng.random(n)  # 0 bottom -> 1 top
    y = -18.0 + t * 18.0
    r = 0.5 + (1.0 - t) * 0.4
    theta = rng.uniform(0.0, TWO_PI, n)

    # gentle S-curve
    x = np.cos(theta) * r + np.sin(t * math.pi) * 1.5
    z = np.sin(theta) * r + np.cos(t * math.pi * 0.5) * 0.5

    thorn = rng.random(n) < 0.1
    x = x + np.where(thorn, np.cos(theta) * 0.5, 0.0)
    z = z + np.where(thorn, np.sin(theta) * 0.5, 0.0)

    leaf = (t > 0.3) & (t < 0.7) & (rng.random(n) > 0.95)
    leaf_u = rng.random(n)
    leaf_v = (rng.random(n) - 0.5) * 2.0
    side = np.where(y < -9.0, 1.0, -1.0)
    leaf_w = 3.0 * np.sin(leaf_u * math.pi)
    lx = side * leaf_u * 8.0
    ly = leaf_u * 3.0 + leaf_v * leaf_w * 0.2 - leaf_u * leaf_u * 4.0  # curls down at the tip
    lz = leaf_v * leaf_w

    return np.column_stack(
        [
            x + np.where(leaf, lx, 0.0),
            y + np.where(leaf, ly, 0.0),
            z + np.where(leaf, lz, 0.0),
        ]
    )


def _stamen(rng: np.random.Generator, index: np.ndarray) -> np.ndarray:
    n = len(index)
    r = 1.5 * np.sqrt(rng.random(n))
    theta = index * GOLDEN_ANGLE
    dome_y = np.sqrt(1.0 - (r / 1.5) ** 2) * 2.0 * rng.random(n)
    return _cylindrical(r, theta, dome_y + 1.0)


def _per_layer(layer: np.ndarray, attr: str) -> np.ndarray:
    return np.array([getattr(cfg, attr) for cfg in PETAL_LAYERS], dtype=float)[layer]


def petal_layers(rng: np.random.Generator, n: int) -> np.ndarray:
    """Layer index (0 inner, 1 middle, 2 outer) for each of `n` petal particles."""
    return np.digitize(rng.random(n), PETAL_LAYER_THRESHOLDS)


def petal_base_angles(layer: np.ndarray, petal_idx: np.ndarray) -> np.ndarray:
    count = _per_layer(layer, "count")
    angle_per_petal = TWO_PI / count
    # odd-length layers sit half a petal over so neighbouring layers interlock
    angle_offset = np.mod(_per_layer(layer, "length"), 2.0) * (angle_per_petal / 2.0)
    return petal_idx * angle_per_petal + angle_offset


def _petals(rng: np.random.Generator, n: int) -> np.ndarray:
    layer = petal_layers(rng, n)

    def per_layer(attr: str) -> np.ndarray:
        return _per_layer(layer, attr)

    length = per_layer("length")
    width = per_layer("width")

    petal_idx = np.floor(rng.random(n) * per_layer("count"))
    base_angle = petal_base_angles(layer, petal_idx)

    u = rng.random(n)  # base -> tip
    v = (rng.random(n) - 0.5) * 2.0  # left -> right

    width_profile = np.sin(u ** 0.7 * math.pi) * width
    cupping = v * v * 2.5 * u

    lx = v * width_profile
    ly = u * length
    lz = cupping

    tilt = per_layer("tilt") - u ** 1.5 * per_layer("inward_curl")
    cos_t = np.cos(tilt)
    sin_t = np.sin(tilt)
    ry = ly * cos_t - lz * sin_t + per_layer("y_base")
    rz = ly * sin_t + lz * cos_t + per_layer("radius_offset")

    cos_a = np.cos(base_angle)
    sin_a = np.sin(base_angle)
    return np.column_stack([lx * cos_a - rz * sin_a, ry, lx * sin_a + rz * cos_a])


def flower_points(rng: np.random.Generator, n: int) -> np.ndarray:
    """Rose bud: 10% stem, 15% stamen hidden in the bud, 75% layered petals."""
    out = np.empty((n, 3))
    seed = rng.random(n)
    stem = seed < 0.10
    stamen = (seed >= 0.10) & (seed < 0.25)
    petals = seed >= 0.25
    out[stem] = _stem(rng, int(stem.sum()))
    out[stamen] = _stamen(rng, np.flatnonzero(stamen))
    out[petals] = _petals(rng, int(petals.sum()))
    return out


def tree_points(rng: np.random.Generator, n: int) -> np.ndarray:
    out = np.empty((n, 3))
    trunk = rng.random(n) < 0.1
    k = int(trunk.sum())
    out[trunk] = np.column_stack([rng.uniform(-1, 1, k), rng.uniform(-10, 0, k), rng.uniform(-1, 1, k)])

    k = n - k
    h = rng.random(k) * 25.0
    max_r = 10.0 * (1.0 - h / 25.0)
    out[~trunk] = _cylindrical(rng.random(k) * max_r, rng.uniform(0.0, TWO_PI, k), h - 5.0)
    return out


def _snowman_hat(rng: np.random.Generator, n: int) -> np.ndarray:
    out = np.empty((n, 3))
    base_y = SNOWMAN_HEAD_Y + SNOWMAN_HEAD_RADIUS * 0.8
    brim = rng.random(n) < 0.4

    k = int(brim.sum())
    out[brim] = _cylindrical(
        np.sqrt(rng.random(k)) * 7.0, rng.uniform(0.0, TWO_PI, k), base_y + rng.uniform(-0.2, 0.2, k)
    )
    k = n - k
    out[~brim] = _cylindrical(
        np.sqrt(rng.random(k)) * 4.0, rng.uniform(0.0, TWO_PI, k), base_y + rng.random(k) * 7.0
    )
    return out


def _snowman_arms(rng: np.random.Generator, n: int) -> np.ndarray:
    side = np.where(rng.random(n) > 0.5, 1.0, -1.0)
    t = rng.random(n)
    start_x = side * 7.0
    end_x = side * 16.0
    return np.column_stack([start_x + (end_x - start_x) * t, t * 4.0, rng.uniform(-1, 1, n)])


def _snowman_face(rng: np.random.Generator, n: int) -> np.ndarray:
    out = np.empty((n, 3))
    r_head = SNOWMAN_HEAD_RADIUS
    feature = np.digitize(rng.random(n), (0.3, 0.6))

    eyes = feature == 0
    k = int(eyes.sum())
    eye_side = np.where(rng.random(k) > 0.5, 1.0, -1.0)
    eye_z = math.sqrt(r_head * r_head - 1.8 * 1.8 - 1.5 * 1.5) + 0.5
    out[eyes] = sphere_surface(rng, k, 0.4) + np.column_stack(
        [eye_side * 1.8, np.full(k, SNOWMAN_HEAD_Y + 1.5), np.full(k, eye_z)]
    )

    # carrot nose: cone pointing out along +z from the head surface
    nose = feature == 1
    k = int(nose.sum())
    t = rng.random(k)
    cur_r = 0.5 * (1.0 - t)
    theta = rng.uniform(0.0, TWO_PI, k)
    out[nose] = np.column_stack([cur_r * np.cos(theta), SNOWMAN_HEAD_Y + cur_r * np.sin(theta), r_head + t * 3.5])

    mouth = feature == 2
    k = int(mouth.sum())
    mx = rng.uniform(-2.0, 2.0, k)
    my = SNOWMAN_HEAD_Y - 1.5 + mx * mx * 0.15 + rng.uniform(-0.1, 0.1, k)
    mz = np.sqrt(r_head * r_head - mx * mx - 2.0 * 2.0) + rng.uniform(0.0, 0.2, k)
    out[mouth] = np.column_stack([mx, my, mz])
    return out


def snowman_points(rng: np.random.Generator, n: int) -> np.ndarray:
    out = np.empty((n, 3))
    region = np.digitize(rng.random(n), (0.45, 0.70, 0.85, 0.90))

    body = region == 0
    out[body] = sphere_surface(rng, int(body.sum()), SNOWMAN_BODY_RADIUS) + (0.0, SNOWMAN_BODY_Y, 0.0)
    head = region == 1
    out[head] = sphere_surface(rng, int(head.sum()), SNOWMAN_HEAD_RADIUS) + (0.0, SNOWMAN_HEAD_Y, 0.0)
    hat = region == 2
    out[hat] = _snowman_hat(rng, int(hat.sum()))
    arms = region == 3
    out[arms] = _snowman_arms(rng, int(arms.sum()))
    face = region == 4
    out[face] = _snowman_face(rng, int(face.sum()))
    return out


def galaxy_points(rng: np.random.Generator, n: int) -> np.ndarray:
    """Planet-like core (first 40% of indices) inside a tilted ring."""
    n_core = -(-n * 2 // 5)
    core = sphere_surface(rng, n_core, GALAXY_CORE_RADIUS)

    k = n - n_core
    angle = rng.uniform(0.0, TWO_PI, k)
    r = rng.uniform(12.0, 16.0, k)
    x = np.cos(angle) * r
    z = np.sin(angle) * r
    y = rng.uniform(-0.2, 0.2, k)
    cos_t = math.cos(GALAXY_RING_TILT)
    sin_t = math.sin(GALAXY_RING_TILT)
    ring = np.column_stack([x, y * cos_t - z * sin_t, y * sin_t + z * cos_t])
    return np.concatenate([core, ring])


def cube_points(rng: np.random.Generator, n: int) -> np.ndarray:
    return rng.uniform(-10.0, 10.0, size=(n, 3))


GENERATORS: Dict[ShapeType, Callable[[np.random.Generator, int], np.ndarray]] = {
    ShapeType.SPHERE: sphere_points,
    ShapeType.FLOWER: flower_points,
    ShapeType.HEART: heart_points,
    ShapeType.TREE: tree_points,
    ShapeType.SNOWMAN: snowman_points,
    ShapeType.GALAXY: galaxy_points,
}


def generate(
    shape: Union[ShapeType, str],
    count: int = PARTICLE_COUNT,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Build a flat float32 buffer of `3 * count` coordinates for `shape`.

    Unknown shapes produce a uniform cube. Pass a seeded `rng` for reproducible output.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if rng is None:
        rng = np.random.default_rng()
    try:
        fn = GENERATORS.get(ShapeType(shape), cube_points)
    except ValueError:
        fn = cube_points
    points = fn(rng, count)
    return np.ascontiguousarray(points, dtype=np.float32).reshape(-1)
