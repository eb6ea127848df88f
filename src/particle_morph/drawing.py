from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import DEFAULT_SIZE
from .detector import HAND_CONNECTIONS
from .interaction import OrbitCamera
from .types import GestureMode, Landmark, SceneTransform


FOV_DEG = 60.0
NEAR = 0.1
PARTICLE_OPACITY = 0.8
MAX_SPRITE_RADIUS = 4
FINGERTIPS = (4, 8, 12, 16, 20)


def draw_point(frame, pt: Tuple[int, int], color=(0, 0, 255), radius=4):
    cv2.circle(frame, pt, radius, color, -1, lineType=cv2.LINE_AA)
    return frame


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def apply_transform(points: np.ndarray, transform: SceneTransform) -> np.ndarray:
    """Scale, then roll about Z, then spin about Y (the group's local -> world transform)."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3) * transform.scale

    cz, sz = math.cos(transform.rotation_z), math.sin(transform.rotation_z)
    x = pts[:, 0] * cz - pts[:, 1] * sz
    y = pts[:, 0] * sz + pts[:, 1] * cz
    z = pts[:, 2]

    cy, sy = math.cos(transform.rotation_y), math.sin(transform.rotation_y)
    return np.column_stack([x * cy + z * sy, y, -x * sy + z * cy])


def focal_length(height: int, fov_deg: float = FOV_DEG) -> float:
    return (height / 2.0) / math.tan(math.radians(fov_deg) / 2.0)


def _depth(points: np.ndarray, camera: OrbitCamera) -> np.ndarray:
    return (points - camera.position()) @ camera.basis()[2]


def project(points: np.ndarray, camera: OrbitCamera, width: int, height: int, fov_deg: float = FOV_DEG):
    """Perspective-project world points. Returns integer pixel coords and a visibility mask."""
    right, up, forward = camera.basis()
    rel = points - camera.position()
    depth = rel @ forward
    visible = depth > NEAR
    safe_depth = np.where(visible, depth, 1.0)

    focal = focal_length(height, fov_deg)
    px = np.round(width / 2.0 + (rel @ right) / safe_depth * focal).astype(np.int64)
    py = np.round(height / 2.0 - (rel @ up) / safe_depth * focal).astype(np.int64)
    visible &= (px >= 0) & (px < width) & (py >= 0) & (py < height)
    return px, py, visible


def sprite_radii(depth: np.ndarray, size: float, height: int, fov_deg: float = FOV_DEG) -> np.ndarray:
    """Pixel radius of each particle sprite; `size` is in world units and shrinks with distance."""
    diameter = size * focal_length(height, fov_deg) / np.maximum(depth, NEAR)
    return np.clip(np.round(diameter / 2.0), 0, MAX_SPRITE_RADIUS).astype(np.int64)


def draw_particles(
    canvas_bgr,
    live: np.ndarray,
    colors: np.ndarray,
    transform: SceneTransform,
    camera: OrbitCamera,
    size: float = DEFAULT_SIZE,
):
    """Additively splat the live buffer onto `canvas_bgr` using the per-particle RGB colors."""
    h, w = canvas_bgr.shape[:2]
    world = apply_transform(live, transform)
    px, py, visible = project(world, camera, w, h)
    radii = sprite_radii(_depth(world, camera), size, h)

    bgr = np.asarray(colors, dtype=np.float32).reshape(-1, 3)[:, ::-1] * (255.0 * PARTICLE_OPACITY)
    acc = canvas_bgr.astype(np.float32)
    for r in np.unique(radii[visible]):
        sel = visible & (radii == r)
        sx, sy, sc = px[sel], py[sel], bgr[sel]
        for dy in range(-r, r + 1):
            for dx in range(-r, r + 1):
                x, y = sx + dx, sy + dy
                inside = (x >= 0) & (x < w) & (y >= 0) & (y < h)
                np.add.at(acc, (y[inside], x[inside]), sc[inside])
    np.clip(acc, 0, 255, out=acc)
    canvas_bgr[:] = acc.astype(np.uint8)
    return canvas_bgr


def draw_hand_preview(
    frame_bgr,
    landmarks: Optional[Sequence[Landmark]],
    mode: GestureMode,
    size: Tuple[int, int] = (192, 144),
    mirror: bool = True,
):
    """Small camera thumbnail with the hand skeleton and the active mode label."""
    thumb = cv2.resize(frame_bgr, size)
    if mirror:
        thumb = cv2.flip(thumb, 1)
    thumb = (thumb * 0.5).astype(np.uint8)
    if not landmarks:
        return thumb

    w, h = size

    def to_px(lm: Landmark) -> Tuple[int, int]:
        x = 1.0 - lm.x if mirror else lm.x
        return (int(round(x * (w - 1))), int(round(lm.y * (h - 1))))

    pts = [to_px(lm) for lm in landmarks]
    for a, b in HAND_CONNECTIONS:
        cv2.line(thumb, pts[a], pts[b], (255, 255, 0), 1, cv2.LINE_AA)

    color = (170, 170, 170) if mode is GestureMode.IDLE else (0, 255, 0)
    for idx in FINGERTIPS:
        draw_point(thumb, pts[idx], color=color, radius=3)
    draw_text(thumb, mode.value, pts[0], color=color, scale=0.45, thickness=1)
    return thumb


def blit(dst_bgr, src_bgr, x: int, y: int):
    h, w = src_bgr.shape[:2]
    dst_bgr[y : y + h, x : x + w] = src_bgr
    return dst_bgr
