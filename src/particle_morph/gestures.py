from __future__ import annotations

import math
import threading
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple

from .types import GestureMode, GestureState, Landmark
from .utils import distance_2d


NUM_LANDMARKS = 21
WRIST = 0
HAND_CENTER = 9  # middle finger MCP
INDEX_TIP = 8
MIDDLE_TIP = 12

FINGERS = ("thumb", "index", "middle", "ring", "pinky")

# (tip, proximal joint) per finger
FINGER_JOINTS: Dict[str, Tuple[int, int]] = {
    "thumb": (4, 2),
    "index": (8, 6),
    "middle": (12, 10),
    "ring": (16, 14),
    "pinky": (20, 18),
}

SCALE_UP_TARGET = 3.0
SCALE_DOWN_TARGET = 1.0


def _check_landmarks(landmarks: Sequence[Landmark]) -> None:
    if len(landmarks) != NUM_LANDMARKS:
        raise ValueError(f"Expected {NUM_LANDMARKS} landmarks, got {len(landmarks)}")


def is_extended(landmarks: Sequence[Landmark], tip: int, joint: int) -> bool:
    """A finger is extended when its tip is farther from the wrist than its proximal joint."""
    wrist = landmarks[WRIST]
    d_tip = distance_2d(landmarks[tip].x, landmarks[tip].y, wrist.x, wrist.y)
    d_joint = distance_2d(landmarks[joint].x, landmarks[joint].y, wrist.x, wrist.y)
    return d_tip > d_joint


def finger_states(landmarks: Sequence[Landmark]) -> Dict[str, bool]:
    _check_landmarks(landmarks)
    return {name: is_extended(landmarks, tip, joint) for name, (tip, joint) in FINGER_JOINTS.items()}


def classify_mode(fingers: Dict[str, bool]) -> GestureMode:
    """Map a finger-extension pattern to a mode. Rotation gestures win over scale gestures."""
    thumb, index, middle, ring, pinky = (fingers[name] for name in FINGERS)
    count = sum(fingers.values())

    if thumb and index and middle and not ring and not pinky:
        return GestureMode.ROTATE_Z
    if thumb and index and not middle and not ring and not pinky:
        return GestureMode.ROTATE_VIEW
    if count == 5:
        return GestureMode.SCALE_UP
    if count == 0:
        return GestureMode.SCALE_DOWN
    return GestureMode.IDLE


def roll_angle(landmarks: Sequence[Landmark]) -> float:
    """In-plane angle of the index -> middle fingertip vector, in radians."""
    a = landmarks[INDEX_TIP]
    b = landmarks[MIDDLE_TIP]
    return math.atan2(b.y - a.y, b.x - a.x)


class GestureClassifier:
    """
    Turns one landmark sample per polling tick into a `GestureState`.

    Values that only make sense in a given mode (`rotation_z`, `scale_target`) keep
    their last value while another mode is active.
    """

    def __init__(self) -> None:
        self.state = GestureState()

    def update(self, landmarks: Optional[Sequence[Landmark]]) -> GestureState:
        prev = self.state

        if landmarks is None:
            # Last known position is discarded.
            self.state = replace(prev, mode=GestureMode.IDLE, detected=False, x=0.0, y=0.0)
            return self.state

        fingers = finger_states(landmarks)
        mode = classify_mode(fingers)
        center = landmarks[HAND_CENTER]

        rotation_z = prev.rotation_z
        scale_target = prev.scale_target
        if mode is GestureMode.ROTATE_Z:
            rotation_z = roll_angle(landmarks)
        elif mode is GestureMode.SCALE_UP:
            scale_target = SCALE_UP_TARGET
        elif mode is GestureMode.SCALE_DOWN:
            scale_target = SCALE_DOWN_TARGET

        self.state = GestureState(
            mode=mode,
            detected=True,
            scale_target=scale_target,
            rotation_z=rotation_z,
            x=float(center.x),
            y=float(center.y),
            fingers_count=sum(fingers.values()),
        )
        return self.state


class GestureChannel:
    """
    Latest-value hand-off between the polling thread (writer) and the render loop (reader).

    States are immutable, so a snapshot is always a complete record.
    """

    def __init__(self, initial: Optional[GestureState] = None) -> None:
        self._lock = threading.Lock()
        self._state = initial or GestureState()

    def publish(self, state: GestureState) -> None:
        with self._lock:
            self._state = state

    def snapshot(self) -> GestureState:
        with self._lock:
            return self._state
