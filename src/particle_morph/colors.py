from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .utils import hex_to_rgb


GRADIENT_STOPS = 5
BAND_WIDTH = 1.0 / (GRADIENT_STOPS - 1)


def palette_to_array(palette: Sequence[str]) -> np.ndarray:
    if len(palette) != GRADIENT_STOPS:
        raise ValueError(f"Palette needs exactly {GRADIENT_STOPS} colors, got {len(palette)}")
    return np.array([hex_to_rgb(c) for c in palette], dtype=np.float64)


def gradient_colors(target: np.ndarray, palette: Sequence[str]) -> np.ndarray:
    """
    Color each particle by its height within the target shape.

    The vertical range of `target` is normalized to [0, 1] and mapped piecewise-linearly
    across the five palette stops (bottom -> top). Returns a flat float32 RGB buffer
    parallel to `target`.
    """
    stops = palette_to_array(palette)
    y = np.asarray(target, dtype=np.float64).reshape(-1, 3)[:, 1]
    if y.size == 0:
        return np.zeros(0, dtype=np.float32)

    min_y = y.min()
    height = y.max() - min_y
    if height == 0:
        height = 1.0
    t = np.clip((y - min_y) / height, 0.0, 1.0)

    # t == 1.0 belongs to the last band
    band = np.minimum((t / BAND_WIDTH).astype(int), GRADIENT_STOPS - 2)
    frac = ((t - band * BAND_WIDTH) / BAND_WIDTH)[:, None]
    lo = stops[band]
    hi = stops[band + 1]
    colors = lo * (1.0 - frac) + hi * frac
    return colors.astype(np.float32).reshape(-1)


class GradientColorMapper:
    """Keeps the color buffer in sync with the target buffer and palette."""

    def __init__(self) -> None:
        self.colors: np.ndarray = np.zeros(0, dtype=np.float32)
        self._target: Optional[np.ndarray] = None
        self._palette: Optional[tuple] = None

    def update(self, target: np.ndarray, palette: Sequence[str]) -> bool:
        """Recompute colors if the target buffer or palette changed. Returns True if recomputed."""
        key = tuple(palette)
        if target is self._target and key == self._palette:
            return False
        self.colors = gradient_colors(target, palette)
        self._target = target
        self._palette = key
        return True
