"""Session defaults and tunable constants."""

from __future__ import annotations

import os
from typing import List, Optional

from .types import ParticleConfig, ShapeType


PARTICLE_COUNT = 15000

DEFAULT_PALETTE: List[str] = ["#8B4513", "#2E8B57", "#3CB371", "#90EE90", "#FFD700"]
DEFAULT_SPEED = 0.5
DEFAULT_NOISE_STRENGTH = 0.2
DEFAULT_SIZE = 0.15
DEFAULT_COLOR = "#00ffff"

# Gesture polling (~30 Hz) and the low-res capture used for detection.
GESTURE_POLL_INTERVAL_S = 0.033
CAPTURE_WIDTH = 320
CAPTURE_HEIGHT = 240

GEMINI_MODEL = "gemini-2.5-flash"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")

TASKS_MODEL_PATH = "models/hand_landmarker.task"


def default_config(shape: ShapeType = ShapeType.SPHERE, count: int = PARTICLE_COUNT) -> ParticleConfig:
    return ParticleConfig(
        shape=shape,
        color_palette=list(DEFAULT_PALETTE),
        speed=DEFAULT_SPEED,
        noise_strength=DEFAULT_NOISE_STRENGTH,
        size=DEFAULT_SIZE,
        color=DEFAULT_COLOR,
        count=count,
    )


def api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None
