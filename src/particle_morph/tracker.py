from __future__ import annotations

import logging
import platform
import threading
import time
from typing import Callable, List, Optional, Tuple

import cv2

from .config import CAPTURE_HEIGHT, CAPTURE_WIDTH, GESTURE_POLL_INTERVAL_S
from .detector import HandDetector, HandLandmarkDetector
from .gestures import GestureChannel, GestureClassifier
from .types import GestureState, Landmark


logger = logging.getLogger(__name__)


STATUS_INITIALIZING = "Initializing AI..."
STATUS_READY = "AI Ready. Waiting for Camera..."
STATUS_TRACKING = "Tracking Active"
STATUS_INIT_FAILED = "AI Init Failed."
STATUS_CAMERA_ERROR = "Camera Error"
STATUS_STOPPED = "Stopped"


def open_camera(index: int = 0, width: int = CAPTURE_WIDTH, height: int = CAPTURE_HEIGHT):
    # AVFoundation is the reliable backend on macOS and triggers the permission prompt.
    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(index, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        cap.release()
        raise RuntimeError(
            f"Could not open camera index {index}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
        )
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    return cap


class HandTracker:
    """
    The gesture-polling activity.

    A background thread reads camera frames at a bounded rate (~30 Hz), runs the hand
    detector, classifies the landmarks and publishes each `GestureState` on `channel`.
    Setup problems are reported through `status` and never raised into the render loop.
    `stop()` releases the camera and joins the thread; the detector survives restarts
    until `close()`.
    """

    def __init__(
        self,
        channel: GestureChannel,
        camera_index: int = 0,
        poll_interval_s: float = GESTURE_POLL_INTERVAL_S,
        detector_factory: Callable[[], HandDetector] = HandLandmarkDetector,
        capture_factory: Optional[Callable[[int], object]] = None,
    ) -> None:
        self.channel = channel
        self.camera_index = camera_index
        self.poll_interval_s = poll_interval_s
        self._detector_factory = detector_factory
        self._capture_factory = capture_factory or open_camera

        self._lock = threading.Lock()
        self._status = STATUS_STOPPED
        self._preview: Tuple[Optional[object], Optional[List[Landmark]]] = (None, None)
        self._detector: Optional[HandDetector] = None
        self._closed = False
        self._classifier = GestureClassifier()
        self._thread: Optional[threading.Thread] = None
        # Each polling thread owns its stop event; a new one is made per start().
        self._stop_event = threading.Event()

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    def _set_status(self, status: str) -> None:
        with self._lock:
            changed = status != self._status
            self._status = status
        if changed:
            logger.info("Hand tracker: %s", status)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def preview(self) -> Tuple[Optional[object], Optional[List[Landmark]]]:
        """Latest camera frame and the landmarks detected on it (for the HUD)."""
        with self._lock:
            return self._preview

    def start(self) -> None:
        """
        Start polling. No-op while already polling.

        If an earlier thread is still winding down after `stop()` (e.g. it is loading the
        detector), this blocks until it has exited so that at most one thread ever holds
        the camera.
        """
        thread = self._thread
        if thread is not None and thread.is_alive():
            if not self._stop_event.is_set():
                return
            logger.info("Waiting for the previous hand tracker thread to exit")
            thread.join()
        with self._lock:
            self._closed = False
            loading = self._detector is None
        if loading:
            self._set_status(STATUS_INITIALIZING)
        self._classifier = GestureClassifier()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="hand-tracker", daemon=True
        )
        self._thread.start()

    def stop(self, timeout_s: Optional[float] = 2.0) -> None:
        """
        Stop polling and publish an IDLE state.

        The thread reference is kept until the thread has actually exited; a thread that
        outlives `timeout_s` releases its camera and publishes IDLE itself on the way out.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout_s)
            if thread.is_alive():
                logger.warning("Hand tracker thread still busy after %ss, it will exit on its own", timeout_s)
            else:
                self._thread = None
        self._publish_idle()
        self._set_status(STATUS_STOPPED)

    def close(self, timeout_s: Optional[float] = 2.0) -> None:
        self.stop(timeout_s)
        with self._lock:
            self._closed = True
            detector, self._detector = self._detector, None
        if detector is not None:
            detector.close()

    def __enter__(self) -> "HandTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _publish_idle(self) -> None:
        self.channel.publish(GestureState())
        with self._lock:
            self._preview = (None, None)

    def _ensure_detector(self, stop_event: Optional[threading.Event] = None) -> bool:
        with self._lock:
            if self._detector is not None:
                return True
        if stop_event is None:
            self._set_status(STATUS_INITIALIZING)
        try:
            detector = self._detector_factory()
        except Exception:
            logger.exception("Hand detector initialization failed")
            self._set_status(STATUS_INIT_FAILED)
            return False

        with self._lock:
            discard = self._closed
            if not discard:
                self._detector = detector
        if discard:
            # close() ran while the detector was loading
            detector.close()
            return False
        if stop_event is None or not stop_event.is_set():
            self._set_status(STATUS_READY)
        return True

    def _run(self, stop_event: threading.Event) -> None:
        if not self._ensure_detector(stop_event) or stop_event.is_set():
            return
        try:
            cap = self._capture_factory(self.camera_index)
        except RuntimeError as e:
            logger.error("%s", e)
            self._set_status(STATUS_CAMERA_ERROR)
            return

        try:
            if not stop_event.is_set():
                self._set_status(STATUS_TRACKING)
            while not stop_event.is_set():
                started = time.monotonic()
                self.poll_once(cap, stop_event)
                remaining = self.poll_interval_s - (time.monotonic() - started)
                stop_event.wait(max(0.0, remaining))
        finally:
            cap.release()
            if stop_event.is_set():
                self._publish_idle()

    def poll_once(self, cap, stop_event: Optional[threading.Event] = None) -> Optional[GestureState]:
        """Run one polling tick. Returns the published state, or None if the tick was skipped."""
        ok, frame = cap.read()
        if not ok or frame is None:
            return None
        try:
            landmarks = self._detector.detect_hand(frame)
        except Exception:
            logger.warning("Hand detection failed, skipping frame", exc_info=True)
            return None

        state = self._classifier.update(landmarks)
        if stop_event is not None and stop_event.is_set():
            return None
        self.channel.publish(state)
        with self._lock:
            self._preview = (frame, landmarks)
        return state
