from __future__ import annotations

from typing import Optional

import numpy as np


MORPH_BLEND = 0.05  # fraction of the remaining distance covered per tick
REFERENCE_FPS = 60.0
NOISE_THRESHOLD = 0.01
NOISE_SCALE = 0.1
NOISE_PHASE_SCALE = 0.5
AUTO_ROTATE_RATE = 0.001  # radians per tick per unit of speed


class MorphEngine:
    """
    Owns the live buffer and relaxes it toward the target buffer once per render tick.

    By default the blend is a fixed fraction per tick, so the morph runs faster at higher
    frame rates. With `frame_rate_independent=True` the blend is derived from the frame
    delta so that it matches the fixed blend at `REFERENCE_FPS`.
    """

    def __init__(
        self,
        initial: np.ndarray,
        target: Optional[np.ndarray] = None,
        blend: float = MORPH_BLEND,
        frame_rate_independent: bool = False,
    ) -> None:
        if not 0.0 < blend <= 1.0:
            raise ValueError(f"blend must be in (0, 1], got {blend}")
        self.live = np.array(initial, dtype=np.float32).reshape(-1)
        self.target = self.live.copy() if target is None else target
        self._check_length(self.target)
        self.blend = blend
        self.frame_rate_independent = frame_rate_independent

    def _check_length(self, target: np.ndarray) -> None:
        if target.shape != self.live.shape:
            raise ValueError(f"Target buffer has shape {target.shape}, live buffer has {self.live.shape}")

    def set_target(self, target: np.ndarray) -> None:
        """Swap in a new target. The live buffer keeps morphing from where it is."""
        self._check_length(target)
        self.target = target

    def blend_factor(self, delta: Optional[float]) -> float:
        if not self.frame_rate_independent or delta is None:
            return self.blend
        return 1.0 - (1.0 - self.blend) ** (max(delta, 0.0) * REFERENCE_FPS)

    def tick(self, elapsed: float, speed: float, noise_strength: float, delta: Optional[float] = None) -> float:
        """
        Advance one render frame in place.

        Returns the group rotation increment about the vertical axis for this frame.
        """
        live = self.live
        live += (self.target - live) * np.float32(self.blend_factor(delta))

        if noise_strength > NOISE_THRESHOLD:
            pts = live.reshape(-1, 3)
            amp = noise_strength * NOISE_SCALE
            phase = elapsed * speed
            noise_x = np.sin(phase + pts[:, 1] * NOISE_PHASE_SCALE) * amp
            noise_y = np.cos(phase + pts[:, 0] * NOISE_PHASE_SCALE) * amp
            noise_z = np.sin(phase + pts[:, 2] * NOISE_PHASE_SCALE) * amp
            pts += np.column_stack([noise_x, noise_y, noise_z]).astype(np.float32)

        return AUTO_ROTATE_RATE * speed
