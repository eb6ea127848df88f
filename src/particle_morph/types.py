from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence


class ShapeType(str, Enum):
    SPHERE = "Sphere"
    FLOWER = "Flower"
    HEART = "Heart"
    TREE = "Tree"
    SNOWMAN = "Snowman"
    GALAXY = "Galaxy"


class GestureMode(str, Enum):
    IDLE = "IDLE"  # no specific gesture
    ROTATE_VIEW = "VIEW"  # thumb + index
    ROTATE_Z = "ROLL"  # thumb + index + middle
    SCALE_UP = "EXPAND"  # open palm
    SCALE_DOWN = "SHRINK"  # fist


@dataclass(frozen=True)
class Landmark:
    """A single normalized hand landmark (image coordinates in [0, 1])."""

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class GestureState:
    """Latest classifier output. Replaced wholesale on every polling tick."""

    mode: GestureMode = GestureMode.IDLE
    detected: bool = False
    scale_target: float = 1.0
    rotation_z: float = 0.0  # radians, meaningful in ROTATE_Z only
    x: float = 0.0
    y: float = 0.0
    fingers_count: int = 0


@dataclass
class ParticleConfig:
    """Live visual parameters of the particle system."""

    shape: ShapeType = ShapeType.SPHERE
    color_palette: List[str] = field(default_factory=list)  # 5 hex colors, bottom -> top
    speed: float = 0.5
    noise_strength: float = 0.2
    size: float = 0.15
    color: str = "#00ffff"
    count: int = 15000

    def __post_init__(self) -> None:
        self.shape = ShapeType(self.shape)
        self.color_palette = list(self.color_palette)
        if len(self.color_palette) != 5:
            raise ValueError(f"color_palette needs exactly 5 entries, got {len(self.color_palette)}")
        if self.speed < 0 or self.noise_strength < 0:
            raise ValueError("speed and noise_strength must be non-negative")
        if self.count <= 0:
            raise ValueError(f"count must be positive, got {self.count}")


@dataclass(frozen=True)
class ConceptResult:
    """Visual settings suggested for a free-text concept."""

    color_hex: str
    color_palette: Sequence[str]
    speed: float
    noise_strength: float
    shape: ShapeType
    reasoning: str


@dataclass
class SceneTransform:
    """Transform node applied by the renderer to the whole particle group."""

    scale: float = 1.0
    rotation_y: float = 0.0
    rotation_z: float = 0.0
