from __future__ import annotations

import argparse
import functools
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor

import cv2
import numpy as np

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from particle_morph.concept import GeminiConceptMapper, analyze_concept  # noqa: E402
from particle_morph.config import PARTICLE_COUNT, TASKS_MODEL_PATH, default_config  # noqa: E402
from particle_morph.detector import HandLandmarkDetector  # noqa: E402
from particle_morph.drawing import blit, draw_hand_preview, draw_particles, draw_text  # noqa: E402
from particle_morph.gestures import GestureChannel  # noqa: E402
from particle_morph.interaction import InteractionRig, OrbitCamera  # noqa: E402
from particle_morph.system import ParticleSystem  # noqa: E402
from particle_morph.tracker import HandTracker  # noqa: E402
from particle_morph.types import ShapeType  # noqa: E402


logger = logging.getLogger("particle_demo")

SHAPE_KEYS = {ord(str(i + 1)): shape for i, shape in enumerate(ShapeType)}
MOUSE_ORBIT_SENSITIVITY = 0.005
BACKGROUND = (5, 5, 5)


def prompt_concept(mapper):
    """Read one concept from the terminal and map it (runs on the worker thread)."""
    try:
        concept = input("Concept> ")
    except EOFError:
        return None
    return analyze_concept(mapper, concept)


def main() -> int:
    ap = argparse.ArgumentParser(description="Gesture-controlled morphing particle cloud.")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Window width")
    ap.add_argument("--height", type=int, default=720, help="Window height")
    ap.add_argument(
        "--shape",
        default=ShapeType.SPHERE.value,
        choices=[s.value for s in ShapeType],
        help="Starting shape (default: Sphere)",
    )
    ap.add_argument("--count", type=int, default=PARTICLE_COUNT, help="Number of particles")
    ap.add_argument("--gestures", action="store_true", help="Start with hand gestures enabled")
    ap.add_argument("--concept", default="", help="Free-text concept to style the particles with")
    ap.add_argument("--palette", nargs=5, metavar="HEX", help="Five gradient colors, bottom to top")
    ap.add_argument("--speed", type=float, help="Animation speed")
    ap.add_argument("--noise", type=float, help="Noise strength")
    ap.add_argument(
        "--tasks-model",
        default=TASKS_MODEL_PATH,
        help="Path to MediaPipe Tasks model (auto-downloaded if missing)",
    )
    ap.add_argument("--no-mirror", action="store_true", help="Do not mirror the camera preview")
    ap.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format="[%(levelname)s] %(message)s")

    system = ParticleSystem(default_config(ShapeType(args.shape), args.count))
    for i, color in enumerate(args.palette or ()):
        try:
            system.set_palette_color(i, color)
        except ValueError as e:
            ap.error(str(e))
    if args.speed is not None:
        system.config.speed = max(0.0, args.speed)
    if args.noise is not None:
        system.config.noise_strength = max(0.0, args.noise)
    camera = OrbitCamera()
    rig = InteractionRig()
    channel = GestureChannel()
    tracker = HandTracker(
        channel,
        camera_index=args.camera,
        detector_factory=functools.partial(HandLandmarkDetector, tasks_model_path=args.tasks_model),
    )

    # Concept requests run off the render loop.
    executor = ThreadPoolExecutor(max_workers=1)
    mapper = GeminiConceptMapper()
    pending = None
    message = ""
    if args.concept:
        pending = executor.submit(analyze_concept, mapper, args.concept)
        message = "Thinking..."

    gestures_enabled = args.gestures
    if gestures_enabled:
        tracker.start()

    window_name = "particle morph"
    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    drag = {"pos": None}

    def on_mouse(event, x, y, flags, _param):
        if event == cv2.EVENT_LBUTTONDOWN:
            drag["pos"] = (x, y)
        elif event == cv2.EVENT_LBUTTONUP:
            drag["pos"] = None
        elif event == cv2.EVENT_MOUSEMOVE and drag["pos"] is not None:
            px, py = drag["pos"]
            camera.drag(-(x - px) * MOUSE_ORBIT_SENSITIVITY, -(y - py) * MOUSE_ORBIT_SENSITIVITY)
            drag["pos"] = (x, y)

    cv2.setMouseCallback(window_name, on_mouse)

    start = last_t = time.monotonic()
    fps = 0.0
    try:
        while True:
            now = time.monotonic()
            delta = max(1e-6, now - last_t)
            last_t = now
            fps = 0.9 * fps + 0.1 / delta if fps > 0 else 1.0 / delta

            if pending is not None and pending.done():
                result = pending.result()
                pending = None
                if result is not None:
                    system.apply_concept(result)
                    message = result.reasoning
                else:
                    message = ""

            system.tick(now - start)
            gesture = channel.snapshot()
            rig.tick(gesture, delta, system.transform, camera, enabled=gestures_enabled)

            canvas = np.full((args.height, args.width, 3), BACKGROUND, dtype=np.uint8)
            draw_particles(canvas, system.live, system.colors, system.transform, camera, size=system.config.size)

            draw_text(canvas, f"shape: {system.config.shape.value} | fps: {fps:0.1f}", (12, 28))
            if gestures_enabled:
                draw_text(canvas, f"{tracker.status} | {gesture.mode.value} | fingers: {gesture.fingers_count}", (12, 56))
                frame, landmarks = tracker.preview()
                if frame is not None:
                    thumb = draw_hand_preview(frame, landmarks, gesture.mode, mirror=not args.no_mirror)
                    blit(canvas, thumb, args.width - thumb.shape[1] - 12, 12)
            if message:
                draw_text(canvas, message, (12, args.height - 16), color=(255, 200, 120), scale=0.5, thickness=1)
            draw_text(canvas, "1-6 shape | g gestures | c concept | drag orbit | q quit", (12, args.height - 44), scale=0.5, thickness=1)

            cv2.imshow(window_name, canvas)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            if key in SHAPE_KEYS:
                system.set_shape(SHAPE_KEYS[key])
                message = ""
            elif key == ord("c") and pending is None:
                pending = executor.submit(prompt_concept, mapper)
                message = "Type a concept in the terminal..."
            elif key == ord("g"):
                gestures_enabled = not gestures_enabled
                if gestures_enabled:
                    tracker.start()
                else:
                    tracker.stop()
    finally:
        tracker.close()
        executor.shutdown(wait=False)
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
