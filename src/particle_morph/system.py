from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Union

import numpy as np

from . import shapes
from .colors import GradientColorMapper
from .config import default_config
from .morph import MorphEngine
from .types import ConceptResult, ParticleConfig, SceneTransform, ShapeType
from .utils import hex_to_rgb


logger = logging.getLogger(__name__)


class ParticleSystem:
    """
    The particle group: target, live and color buffers plus the transform node.

    The target buffer is regenerated whenever the shape changes and colors are
    recomputed only when the target or the palette changes. The live buffer is
    allocated once and morphs in place.
    """

    def __init__(
        self,
        config: Optional[ParticleConfig] = None,
        rng: Optional[np.random.Generator] = None,
        frame_rate_independent: bool = False,
    ) -> None:
        self.config = config if config is not None else default_config()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.transform = SceneTransform()

        self._shape = self.config.shape
        self.target = self._generate(self._shape)
        # Start from an independent sample of the same shape.
        self.morph = MorphEngine(
            self._generate(self._shape),
            target=self.target,
            frame_rate_independent=frame_rate_independent,
        )
        self.color_mapper = GradientColorMapper()
        self.color_mapper.update(self.target, self.config.color_palette)

    @property
    def count(self) -> int:
        return self.config.count

    @property
    def live(self) -> np.ndarray:
        return self.morph.live

    @property
    def colors(self) -> np.ndarray:
        return self.color_mapper.colors

    def _generate(self, shape: ShapeType) -> np.ndarray:
        logger.debug("Generating %d particles for %s", self.config.count, shape.value)
        return shapes.generate(shape, self.config.count, rng=self.rng)

    def sync(self) -> None:
        """Bring the target and color buffers in line with the current config."""
        if self.config.shape is not self._shape:
            self._shape = self.config.shape
            self.target = self._generate(self._shape)
            self.morph.set_target(self.target)
        if self.color_mapper.update(self.target, self.config.color_palette):
            logger.debug("Recomputed particle colors")

    def set_shape(self, shape: Union[ShapeType, str]) -> None:
        self.config.shape = ShapeType(shape)
        self.sync()

    def set_palette_color(self, index: int, color: str) -> None:
        hex_to_rgb(color)
        palette = list(self.config.color_palette)
        palette[index] = color
        self.config.color_palette = palette
        self.sync()

    def apply_config(self, config: ParticleConfig) -> None:
        if config.count != self.config.count:
            raise ValueError("Particle count is fixed for the session")
        self.config = config
        self.sync()

    def apply_concept(self, result: ConceptResult) -> None:
        self.apply_config(
            replace(
                self.config,
                shape=result.shape,
                color=result.color_hex,
                color_palette=list(result.color_palette),
                speed=result.speed,
                noise_strength=result.noise_strength,
            )
        )

    def tick(self, elapsed: float, delta: Optional[float] = None) -> None:
        """Advance one render frame: morph, noise and auto-rotation."""
        cfg = self.config
        self.transform.rotation_y += self.morph.tick(elapsed, cfg.speed, cfg.noise_strength, delta=delta)
