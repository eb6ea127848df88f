from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import cv2

from .config import TASKS_MODEL_PATH
from .model_assets import ensure_hand_landmarker_task
from .types import Landmark


logger = logging.getLogger(__name__)


HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm base
    (0, 17),
]


class HandDetector(Protocol):
    """Anything that maps one BGR frame to 21 landmarks of a single hand, or None."""

    def detect_hand(self, frame_bgr) -> Optional[List[Landmark]]: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    landmarker: object


def _try_create_solutions_backend(
    max_num_hands: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=False,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(mp=mp, hands=hands)


def _try_create_tasks_backend(
    model_path: str,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    Fallback for MediaPipe distributions that do not include `mp.solutions`.

    Uses the MediaPipe Tasks HandLandmarker API in VIDEO mode, which requires a `.task`
    model asset on disk.
    """

    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode  # type: ignore

    model_path = ensure_hand_landmarker_task(model_path)

    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    landmarker = HandLandmarker.create_from_options(options)
    return _TasksBackend(mp=mp, landmarker=landmarker)


def _to_landmarks(raw) -> List[Landmark]:
    return [Landmark(x=float(lm.x), y=float(lm.y), z=float(getattr(lm, "z", 0.0))) for lm in raw]


class HandLandmarkDetector:
    """
    Single-hand landmark detector using MediaPipe Hands.

    Input frames are expected as **BGR** images (OpenCV default). `detect_hand` returns the
    21 normalized landmarks of the first detected hand, or None when no hand is visible.
    """

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        tasks_model_path: str = TASKS_MODEL_PATH,
    ) -> None:
        self._solutions: Optional[_SolutionsBackend] = _try_create_solutions_backend(
            max_num_hands=1,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._tasks: Optional[_TasksBackend] = None
        self._last_timestamp_ms = -1

        if self._solutions is None:
            logger.info("mediapipe has no `solutions` module, using the Tasks HandLandmarker")
            try:
                self._tasks = _try_create_tasks_backend(
                    model_path=tasks_model_path,
                    max_num_hands=1,
                    min_detection_confidence=min_detection_confidence,
                    min_tracking_confidence=min_tracking_confidence,
                )
            except FileNotFoundError as e:
                raise RuntimeError(
                    "MediaPipe does not provide `mp.solutions` in your environment, so the Tasks\n"
                    "HandLandmarker is used instead, which needs a model file on disk:\n"
                    f"  {tasks_model_path}\n\n"
                    "Download the model and try again."
                ) from e
            except Exception as e:  # pragma: no cover
                raise RuntimeError(
                    "Could not initialize MediaPipe Hands.\n"
                    "Your installed `mediapipe` package does not expose `mp.solutions`, and the Tasks fallback\n"
                    "could not be initialized."
                ) from e

    def close(self) -> None:
        if self._solutions is not None:
            self._solutions.hands.close()
            self._solutions = None
        if self._tasks is not None:
            self._tasks.landmarker.close()
            self._tasks = None

    def __enter__(self) -> "HandLandmarkDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _next_timestamp_ms(self) -> int:
        # Tasks VIDEO mode requires strictly increasing timestamps.
        ts = max(int(time.monotonic() * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        return ts

    def detect_hand(self, frame_bgr) -> Optional[List[Landmark]]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            results = self._solutions.hands.process(frame_rgb)
            if not results.multi_hand_landmarks:
                return None
            return _to_landmarks(results.multi_hand_landmarks[0].landmark)

        if self._tasks is None:
            return None

        mp = self._tasks.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._tasks.landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        if not hand_landmarks_list:
            return None
        return _to_landmarks(hand_landmarks_list[0])
