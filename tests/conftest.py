from __future__ import annotations

import math
import time
from typing import Dict, List

import pytest

from particle_morph.gestures import FINGER_JOINTS, HAND_CENTER, NUM_LANDMARKS, WRIST
from particle_morph.types import Landmark


WRIST_POS = (0.5, 0.9)
CENTER_POS = (0.52, 0.62)

# Spread the fingers like a right hand seen by the camera.
FINGER_ANGLES = {
    "thumb": math.radians(200),
    "index": math.radians(240),
    "middle": math.radians(265),
    "ring": math.radians(290),
    "pinky": math.radians(315),
}


def make_hand(extended: Dict[str, bool], joint_dist: float = 0.2) -> List[Landmark]:
    pts = [Landmark(*WRIST_POS)] * NUM_LANDMARKS
    pts[WRIST] = Landmark(*WRIST_POS)
    pts[HAND_CENTER] = Landmark(*CENTER_POS)
    for name, (tip, joint) in FINGER_JOINTS.items():
        dx, dy = math.cos(FINGER_ANGLES[name]), math.sin(FINGER_ANGLES[name])
        tip_dist = joint_dist * 1.7 if extended.get(name, False) else joint_dist * 0.5
        pts[joint] = Landmark(WRIST_POS[0] + dx * joint_dist, WRIST_POS[1] + dy * joint_dist)
        pts[tip] = Landmark(WRIST_POS[0] + dx * tip_dist, WRIST_POS[1] + dy * tip_dist)
    return pts


def fingers(*names: str) -> Dict[str, bool]:
    return {name: name in names for name in FINGER_JOINTS}


@pytest.fixture
def hand():
    """Factory for synthetic 21-landmark hands: hand("thumb", "index")."""

    def _hand(*extended: str) -> List[Landmark]:
        return make_hand(fingers(*extended))

    return _hand


def wait_for(predicate, timeout_s: float = 2.0, interval_s: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval_s)
    return predicate()
