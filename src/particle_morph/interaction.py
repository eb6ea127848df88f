from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import numpy as np

from .types import GestureMode, GestureState, SceneTransform
from .utils import clamp, lerp


LERP_RATE = 5.0  # per second
IDLE_RATE_FACTOR = 0.5
VIEW_SENSITIVITY = 12.0
ROLL_OFFSET = math.pi / 2
REST_SCALE = 1.0
POLAR_EPS = 1e-6


class OrbitControl(Protocol):
    """Camera-orbit collaborator driven by the rig while a gesture is active."""

    enabled: bool

    def get_azimuthal_angle(self) -> float: ...

    def set_azimuthal_angle(self, angle: float) -> None: ...

    def get_polar_angle(self) -> float: ...

    def set_polar_angle(self, angle: float) -> None: ...

    def update(self) -> None: ...


class OrbitCamera:
    """
    Minimal orbit camera looking at the origin.

    Azimuth rotates about the vertical axis, polar is measured from +Y and kept
    strictly inside (0, pi).
    """

    def __init__(self, distance: float = 40.0, azimuth: float = 0.0, polar: float = math.pi / 2) -> None:
        self.enabled = True
        self.distance = distance
        self._azimuth = azimuth
        self._polar = self._safe_polar(polar)

    @staticmethod
    def _safe_polar(angle: float) -> float:
        return clamp(angle, POLAR_EPS, math.pi - POLAR_EPS)

    def get_azimuthal_angle(self) -> float:
        return self._azimuth

    def set_azimuthal_angle(self, angle: float) -> None:
        self._azimuth = angle

    def get_polar_angle(self) -> float:
        return self._polar

    def set_polar_angle(self, angle: float) -> None:
        self._polar = self._safe_polar(angle)

    def update(self) -> None:
        self._azimuth = math.remainder(self._azimuth, 2.0 * math.pi)

    def drag(self, d_azimuth: float, d_polar: float) -> None:
        """User (mouse) orbit; ignored while the control is disabled."""
        if not self.enabled:
            return
        self.set_azimuthal_angle(self._azimuth + d_azimuth)
        self.set_polar_angle(self._polar + d_polar)
        self.update()

    def position(self) -> np.ndarray:
        s = math.sin(self._polar)
        return self.distance * np.array(
            [s * math.sin(self._azimuth), math.cos(self._polar), s * math.cos(self._azimuth)]
        )

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(right, up, forward) unit vectors of the camera frame in world space."""
        pos = self.position()
        forward = -pos / np.linalg.norm(pos)
        right = np.cross(forward, (0.0, 1.0, 0.0))
        right /= np.linalg.norm(right)
        up = np.cross(right, forward)
        return right, up, forward


@dataclass
class InteractionState:
    current_scale: float = REST_SCALE
    current_roll: float = 0.0
    last_hand_position: Optional[Tuple[float, float]] = None


class InteractionRig:
    """
    Applies the latest gesture to the scene once per render tick.

    Exactly one channel is driven per mode: scale (EXPAND / SHRINK, and locked to 1 while
    rotating), view orbit (VIEW) or roll (ROLL). Smoothing uses `delta * LERP_RATE`, so it
    is independent of the frame rate.
    """

    def __init__(self, lerp_rate: float = LERP_RATE, view_sensitivity: float = VIEW_SENSITIVITY) -> None:
        self.lerp_rate = lerp_rate
        self.view_sensitivity = view_sensitivity
        self.state = InteractionState()

    def tick(
        self,
        gesture: GestureState,
        delta: float,
        transform: SceneTransform,
        orbit: Optional[OrbitControl] = None,
        enabled: bool = True,
    ) -> None:
        if orbit is not None:
            # Only one control source may rotate the scene at a time.
            orbit.enabled = not (enabled and gesture.mode is not GestureMode.IDLE)
        if not enabled:
            return

        st = self.state
        speed = delta * self.lerp_rate
        mode = gesture.mode

        if mode in (GestureMode.ROTATE_VIEW, GestureMode.ROTATE_Z):
            st.current_scale = lerp(st.current_scale, REST_SCALE, speed)
        elif mode in (GestureMode.SCALE_UP, GestureMode.SCALE_DOWN):
            st.current_scale = lerp(st.current_scale, gesture.scale_target, speed)
        elif mode is GestureMode.IDLE:
            st.current_scale = lerp(st.current_scale, REST_SCALE, speed * IDLE_RATE_FACTOR)
        else:
            raise ValueError(f"Unhandled gesture mode: {mode!r}")
        transform.scale = st.current_scale

        if mode is GestureMode.ROTATE_VIEW and orbit is not None:
            if st.last_hand_position is not None and gesture.detected:
                dx = gesture.x - st.last_hand_position[0]
                dy = gesture.y - st.last_hand_position[1]
                orbit.set_azimuthal_angle(orbit.get_azimuthal_angle() - dx * self.view_sensitivity)
                orbit.set_polar_angle(orbit.get_polar_angle() - dy * self.view_sensitivity)
                orbit.update()
            st.last_hand_position = (gesture.x, gesture.y)
        else:
            # next VIEW engagement starts without a jump
            st.last_hand_position = None

        if mode is GestureMode.ROTATE_Z:
            target_roll = -gesture.rotation_z + ROLL_OFFSET
            st.current_roll = lerp(st.current_roll, target_roll, speed)
        else:
            st.current_roll = lerp(st.current_roll, 0.0, speed * IDLE_RATE_FACTOR)
        transform.rotation_z = st.current_roll
