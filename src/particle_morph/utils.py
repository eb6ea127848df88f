from __future__ import annotations

import math
from typing import Tuple


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def lerp(a: float, b: float, t: float) -> float:
    """Move `a` toward `b` by fraction `t`, with `t` clamped to [0, 1]."""
    t = clamp(t, 0.0, 1.0)
    return a + (b - a) * t


def distance_2d(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(ax - bx, ay - by)


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """
    Parse `#rrggbb` (or `#rgb`) into floats in [0, 1].

    >>> hex_to_rgb("#ff8000")
    (1.0, 0.5019607843137255, 0.0)
    """
    s = color.strip().lstrip("#")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        raise ValueError(f"Not a hex color: {color!r}")
    try:
        r, g, b = (int(s[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError as e:
        raise ValueError(f"Not a hex color: {color!r}") from e
    return (r / 255.0, g / 255.0, b / 255.0)
