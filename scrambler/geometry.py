# scrambler/geometry.py
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from scrambler.errors import MalformedGeometryError
from scrambler.key_grid import KEY_GRID, KeyGrid


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Geometry:
    """
    Rendering parameters the client used for one keystroke.

    key_widths[r] lists the pixel width of every key in row r, left to right;
    row_offsets[r] is the x coordinate where row r's first key starts.
    """
    width: float
    height: float
    key_widths: tuple[tuple[float, ...], ...]
    row_offsets: tuple[float, ...]

    @classmethod
    def from_lists(
        cls,
        width: float,
        height: float,
        key_widths: Sequence[Sequence[float]],
        row_offsets: Sequence[float],
    ) -> "Geometry":
        return cls(
            width=width,
            height=height,
            key_widths=tuple(tuple(row) for row in key_widths),
            row_offsets=tuple(row_offsets),
        )


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate(point: Point, geometry: Geometry, grid: KeyGrid = KEY_GRID) -> None:
    if not _finite(point.x) or not _finite(point.y):
        raise MalformedGeometryError("pointer coordinates must be finite numbers")

    if not _finite(geometry.height) or geometry.height <= 0:
        raise MalformedGeometryError("height must be a positive finite number")
    if not _finite(geometry.width):
        raise MalformedGeometryError("width must be a finite number")

    if len(geometry.key_widths) != len(grid):
        raise MalformedGeometryError(
            f"expected key widths for {len(grid)} rows, got {len(geometry.key_widths)}"
        )
    if len(geometry.row_offsets) != len(grid):
        raise MalformedGeometryError(
            f"expected {len(grid)} row offsets, got {len(geometry.row_offsets)}"
        )

    for r, widths in enumerate(geometry.key_widths):
        if not widths:
            raise MalformedGeometryError(f"row {r} has no key widths")
        if len(widths) > len(grid[r]):
            raise MalformedGeometryError(
                f"row {r} declares {len(widths)} keys but the keyboard row has {len(grid[r])}"
            )
        if any(not _finite(w) or w < 0 for w in widths):
            raise MalformedGeometryError(f"row {r} has a negative or non-finite key width")
        if not _finite(geometry.row_offsets[r]):
            raise MalformedGeometryError(f"row {r} offset must be a finite number")


def resolve_row(y: float, height: float, row_count: int) -> Optional[int]:
    row_height = height / row_count
    if not math.isfinite(row_height) or row_height <= 0:
        return None
    quotient = y / row_height
    # huge y over a tiny row height overflows to inf
    if not math.isfinite(quotient):
        return None
    row = math.floor(quotient)
    if row < 0 or row >= row_count:
        return None
    return row


def resolve_column(x: float, widths: Sequence[float], offset: float) -> Optional[int]:
    """
    Walk the row's keys left to right from `offset`. Intervals are inclusive
    on both ends, so a point on a shared edge belongs to the lower-index key.
    """
    left = offset
    for col, w in enumerate(widths):
        if left <= x <= left + w:
            return col
        left += w
    return None


def resolve(point: Point, geometry: Geometry, grid: KeyGrid = KEY_GRID) -> Optional[tuple[int, int]]:
    validate(point, geometry, grid)

    row = resolve_row(point.y, geometry.height, len(grid))
    if row is None:
        return None

    col = resolve_column(point.x, geometry.key_widths[row], geometry.row_offsets[row])
    if col is None:
        return None
    return row, col
