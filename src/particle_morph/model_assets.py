from __future__ import annotations

import logging
import os
import shutil
import subprocess
import urllib.request


logger = logging.getLogger(__name__)


HAND_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
)


def _remove_partial(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def _download_with_curl(model_path: str, url: str) -> str:
    if shutil.which("curl") is None:
        return "curl is not installed"
    proc = subprocess.run(
        ["curl", "-fL", "-o", model_path, url],
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    if proc.returncode == 0 and os.path.getsize(model_path) > 0:
        return ""
    return proc.stderr.strip() or f"curl exited with {proc.returncode}"


def ensure_hand_landmarker_task(model_path: str, *, url: str = HAND_LANDMARKER_TASK_URL, timeout_s: int = 30) -> str:
    """
    Ensure the hand landmarker model exists at `model_path`, downloading it if missing.

    Tries urllib first and falls back to curl, which often works when Python's SSL
    certificate store is misconfigured.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)
    logger.info("Downloading hand landmarker model to %s", model_path)

    try:
        with urllib.request.urlopen(url, timeout=timeout_s) as r, open(model_path, "wb") as f:
            f.write(r.read())
        return model_path
    except OSError as e:
        logger.warning("urllib download failed (%s), retrying with curl", e)
        _remove_partial(model_path)
        curl_err = _download_with_curl(model_path, url)
        if not curl_err:
            return model_path
        _remove_partial(model_path)
        raise RuntimeError(
            "Missing MediaPipe Tasks model file and auto-download failed.\n\n"
            f"Expected model at: {model_path}\n"
            f"URL: {url}\n\n"
            "Download it manually:\n"
            f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n'
            f'  curl -L -o "{model_path}" "{url}"\n\n'
            f"curl said: {curl_err}"
        ) from e
