"""Pure helpers for mapping provider observations onto device values.

Safe nested lookup, wind compass points, and camera photo URLs.
"""

from typing import Any, Sequence, Union

from ..protocol.constants import FULLSIZE_SUFFIX

PathKey = Union[str, int]

# Clockwise from the first slice after north; north also closes the circle
COMPASS_POINTS = [
    "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE", "S",
    "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW", "N",
]

NORTH_LIMIT = 11.25
SLICE_DEGREES = 22.5


def get_path(data: Any, path: Sequence[PathKey], default: Any = 0) -> Any:
    """Walk nested dicts/lists by key path.

    Returns ``default`` when any segment is missing, an index is out of
    range, or the final value is None. Partial observations are normal for
    this provider, so this never raises.
    """
    obj = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(obj, list) or not -len(obj) <= key < len(obj):
                return default
            obj = obj[key]
        else:
            if not isinstance(obj, dict):
                return default
            obj = obj.get(key)
        if obj is None:
            return default
    return obj


def compass_point(degrees: float) -> str:
    """16-point compass label for a wind direction in degrees.

    0-11.25 is N, then each 22.5 degree slice moves one point clockwise,
    wrapping back to N past 348.75.
    """
    value = float(degrees) % 360
    if value <= NORTH_LIMIT:
        return "N"
    idx = int((value - NORTH_LIMIT) / SLICE_DEGREES)
    if idx >= len(COMPASS_POINTS):
        return "N"
    return COMPASS_POINTS[idx]


def camera_image_url(camera) -> str:
    """Photo URL for a camera, preferring the full-size variant."""
    if camera.has_full_size_photo:
        return f"{camera.photo_url}{FULLSIZE_SUFFIX}"
    return camera.photo_url
