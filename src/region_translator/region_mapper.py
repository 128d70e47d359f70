"""Geometry between the on-screen video view and the source video frame.

The video is usually shown scaled: a 1920x1080 camera frame may be painted
into a 640x360 widget area. Pointer events arrive in widget coordinates,
cropping happens in source pixels. Both axes are scaled independently.
"""

from __future__ import annotations

from dataclasses import dataclass

# Smaller drags are treated as accidental clicks, not selections.
MIN_REGION_SIZE = 50


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in display (widget) coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Region:
    """Selected area of interest in source-frame pixels."""

    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height

    def clamped(self, frame_width: int, frame_height: int) -> Region | None:
        """Clip to frame bounds. Returns None if nothing is left."""
        left = max(0, self.x)
        top = max(0, self.y)
        right = min(frame_width, self.x + self.width)
        bottom = min(frame_height, self.y + self.height)
        if right <= left or bottom <= top:
            return None
        return Region(left, top, right - left, bottom - top)


_EMPTY_RECT = Rect(0.0, 0.0, 0.0, 0.0)
_ORIGIN = Point(0.0, 0.0)


def full_frame(width: int, height: int) -> Region:
    return Region(0, 0, width, height)


def _has_area(display_rect: Rect, source_size: tuple[int, int]) -> bool:
    src_w, src_h = source_size
    return not display_rect.is_empty and src_w > 0 and src_h > 0


def to_source_space(
    point: Point, display_rect: Rect, source_size: tuple[int, int],
) -> Point:
    """Map a pointer position onto source-frame pixels.

    ``point`` and ``display_rect`` share one coordinate system (usually the
    view widget); the rect is where the frame is painted. Degenerate inputs
    give the origin, which downstream turns into "no region".
    """
    if not _has_area(display_rect, source_size):
        return _ORIGIN
    src_w, src_h = source_size
    scale_x = src_w / display_rect.width
    scale_y = src_h / display_rect.height
    return Point(
        (point.x - display_rect.x) * scale_x,
        (point.y - display_rect.y) * scale_y,
    )


def to_display_space(
    region: Region, display_rect: Rect, source_size: tuple[int, int],
) -> Rect:
    """Inverse of to_source_space for a whole region."""
    if not _has_area(display_rect, source_size):
        return _EMPTY_RECT
    src_w, src_h = source_size
    scale_x = display_rect.width / src_w
    scale_y = display_rect.height / src_h
    return Rect(
        display_rect.x + region.x * scale_x,
        display_rect.y + region.y * scale_y,
        region.width * scale_x,
        region.height * scale_y,
    )


def region_from_drag(
    start: Point, end: Point, min_size: int = MIN_REGION_SIZE,
) -> Region | None:
    """Build a region from two source-space points of a drag gesture.

    The drag may go in any direction. Returns None when either side is
    shorter than ``min_size`` source pixels.
    """
    left = min(start.x, end.x)
    top = min(start.y, end.y)
    width = abs(end.x - start.x)
    height = abs(end.y - start.y)
    if width < min_size or height < min_size:
        return None
    return Region(round(left), round(top), round(width), round(height))


def fit_rect(
    source_size: tuple[int, int], bounds_width: int, bounds_height: int,
) -> Rect:
    """Largest rect with the source aspect ratio, centered in the bounds.

    This is where the view paints the frame, so it is the ``display_rect``
    for the mapping functions above.
    """
    src_w, src_h = source_size
    if src_w <= 0 or src_h <= 0 or bounds_width <= 0 or bounds_height <= 0:
        return _EMPTY_RECT
    scale = min(bounds_width / src_w, bounds_height / src_h)
    width = src_w * scale
    height = src_h * scale
    return Rect(
        (bounds_width - width) / 2,
        (bounds_height - height) / 2,
        width,
        height,
    )
