from .gestures import GestureChannel, GestureClassifier
from .interaction import InteractionRig, OrbitCamera
from .shapes import generate
from .system import ParticleSystem
from .types import GestureMode, GestureState, ParticleConfig, ShapeType

__all__ = [
    "GestureChannel",
    "GestureClassifier",
    "GestureMode",
    "GestureState",
    "InteractionRig",
    "OrbitCamera",
    "ParticleConfig",
    "ParticleSystem",
    "ShapeType",
    "generate",
]
