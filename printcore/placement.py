"""
Placement engine for the room mockup.

Maps a wall quad marked on a room photo plus a normalized anchor and
scale to the poster rectangle, in normalized room-image coordinates.
Also solves the wall perspective transform for the CSS preview.

Corner order: top-left, top-right, bottom-right, bottom-left.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from printcore.errors import InputValidationError, InvalidWallCornersError

# Visible wall width in a typical room photo
ASSUMED_WALL_WIDTH_CM = 200.0

# Poster is never drawn narrower than this share of the wall (for scale >= 0.5)
MIN_WALL_SHARE = 0.10

# Wall share used when no physical size is known
DEFAULT_WALL_SHARE = 0.35

MIN_SCALE = 1e-3


@dataclass(frozen=True)
class Placement:
    left: float
    top: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.left + self.width / 2, self.top + self.height / 2

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """Pixel (left, top, width, height) on a room image of the given size."""
        return (
            round(self.left * image_width),
            round(self.top * image_height),
            max(1, round(self.width * image_width)),
            max(1, round(self.height * image_height)),
        )


FALLBACK_PLACEMENT = Placement(left=0.25, top=0.15, width=0.20, height=0.35)


def _point(corner, index: int) -> Tuple[float, float]:
    """Read a corner given as a mapping with x/y or an (x, y) pair."""
    try:
        if isinstance(corner, dict):
            x, y = corner['x'], corner['y']
        elif hasattr(corner, 'x') and hasattr(corner, 'y'):
            x, y = corner.x, corner.y
        else:
            x, y = corner
        x, y = float(x), float(y)
    except (KeyError, TypeError, ValueError):
        raise InvalidWallCornersError(corner, index)
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidWallCornersError(corner, index)
    return x, y


def normalize_corners(wall_corners: Optional[Sequence]) -> List[Tuple[float, float]]:
    """Validate corners; partial sets (not exactly 4) come back empty."""
    if not wall_corners or len(wall_corners) != 4:
        return []
    return [_point(corner, i) for i, corner in enumerate(wall_corners)]


def _require_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InputValidationError(f"{name} must be a number, got {value!r}", details={name: value})
    if not math.isfinite(value):
        raise InputValidationError(f"{name} must be finite, got {value}", details={name: value})
    return value


def calculate_poster_placement(wall_corners: Optional[Sequence],
                               position_x: float = 0.5,
                               position_y: float = 0.5,
                               scale: float = 1.0,
                               poster_aspect_ratio: float = 2 / 3,
                               poster_width_cm: float = None,
                               poster_height_cm: float = None) -> Placement:
    """
    Calculate the poster rectangle within the wall area.

    With physical dimensions the poster is sized relative to the assumed
    visible wall width, so scale=1.0 shows the true selected size.
    position_x/position_y of 0.5 centers the poster on the wall.
    """
    points = normalize_corners(wall_corners)
    if len(points) != 4:
        return FALLBACK_PLACEMENT

    position_x = _require_finite('position_x', position_x)
    position_y = _require_finite('position_y', position_y)
    scale = _require_finite('scale', scale)
    if scale <= 0:
        scale = MIN_SCALE

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    wall_left, wall_top = min(xs), min(ys)
    wall_width = max(xs) - wall_left
    wall_height = max(ys) - wall_top

    if poster_width_cm and poster_height_cm:
        width = (poster_width_cm / ASSUMED_WALL_WIDTH_CM) * wall_width * scale
        height = (poster_height_cm / ASSUMED_WALL_WIDTH_CM) * wall_width * scale

        min_width = wall_width * MIN_WALL_SHARE
        if 0 < width < min_width and scale >= 0.5:
            boost = min_width / width
            width *= boost
            height *= boost
    else:
        if not poster_aspect_ratio or poster_aspect_ratio <= 0:
            poster_aspect_ratio = 2 / 3
        width = wall_width * DEFAULT_WALL_SHARE * scale
        height = width / poster_aspect_ratio

    left = wall_left + wall_width * position_x - width / 2
    top = wall_top + wall_height * position_y - height / 2

    return Placement(left=left, top=top, width=width, height=height)


def placement_to_css(placement: Placement) -> Dict[str, str]:
    """Percent-based absolute positioning for the preview overlay."""
    return {
        'left': f"{placement.left * 100}%",
        'top': f"{placement.top * 100}%",
        'width': f"{placement.width * 100}%",
        'height': f"{placement.height * 100}%",
    }


def calculate_perspective_matrix(wall_corners: Sequence,
                                 poster_width: float, poster_height: float,
                                 container_width: float, container_height: float) -> Optional[np.ndarray]:
    """
    Solve the 3x3 homography mapping the poster rectangle onto the wall quad.

    Returns None when the quad is incomplete or degenerate.
    """
    points = normalize_corners(wall_corners)
    if len(points) != 4:
        return None

    src = [(0, 0), (poster_width, 0), (poster_width, poster_height), (0, poster_height)]
    dst = [(x * container_width, y * container_height) for x, y in points]

    a = []
    b = []
    for (sx, sy), (dx, dy) in zip(src, dst):
        a.append([sx, sy, 1, 0, 0, 0, -dx * sx, -dx * sy])
        b.append(dx)
        a.append([0, 0, 0, sx, sy, 1, -dy * sx, -dy * sy])
        b.append(dy)

    try:
        h = np.linalg.solve(np.array(a, dtype=float), np.array(b, dtype=float))
    except np.linalg.LinAlgError:
        logger.debug(f"Degenerate wall quad: {points}")
        return None

    return np.append(h, 1.0).reshape(3, 3)


def perspective_css(wall_corners: Sequence,
                    poster_width: float, poster_height: float,
                    container_width: float, container_height: float) -> str:
    """CSS matrix3d() for the wall perspective, or 'none'."""
    m = calculate_perspective_matrix(wall_corners, poster_width, poster_height,
                                     container_width, container_height)
    if m is None:
        return 'none'

    # column-major 4x4 with z passthrough
    values = [
        m[0, 0], m[1, 0], 0, m[2, 0],
        m[0, 1], m[1, 1], 0, m[2, 1],
        0, 0, 1, 0,
        m[0, 2], m[1, 2], 0, m[2, 2],
    ]
    return "matrix3d(" + ",".join(f"{v:.10g}" for v in values) + ")"
