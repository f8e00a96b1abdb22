"""Slice placement and target size for the showcase strip."""

import math
from dataclasses import dataclass
from typing import List, Tuple


SHOWCASE_WIDTH = 766
SLICE_WIDTH = 150
GAP_WIDTH = 4
SLICE_COUNT = 5


def slice_offsets(slice_count: int, slice_width: int, gap_width: int) -> List[int]:
    """
    Compute the left edge of every slice.

    Args:
        slice_count: Number of slices (at least 1)
        slice_width: Width of each slice in pixels (positive)
        gap_width: Blank space between neighbouring slices in pixels

    Returns:
        Offsets in slice-index order, offset[i] = i * (slice_width + gap_width)

    Raises:
        ValueError: If any argument is out of range
    """
    if slice_count < 1:
        raise ValueError(f"slice_count must be at least 1, got {slice_count}")
    if slice_width <= 0:
        raise ValueError(f"slice_width must be positive, got {slice_width}")
    if gap_width < 0:
        raise ValueError(f"gap_width must not be negative, got {gap_width}")

    stride = slice_width + gap_width
    return [index * stride for index in range(slice_count)]


def valid_slices(
    frame_width: int,
    slice_count: int = SLICE_COUNT,
    slice_width: int = SLICE_WIDTH,
    gap_width: int = GAP_WIDTH
) -> List[Tuple[int, int]]:
    """
    List the (index, offset) pairs of the slices that fit inside a frame.

    Slices are checked in index order and the walk stops at the first one
    that would overrun the frame; later slices are skipped, never cropped.
    """
    fitting = []
    for index, offset in enumerate(slice_offsets(slice_count, slice_width, gap_width)):
        if offset + slice_width > frame_width:
            break
        fitting.append((index, offset))
    return fitting


def scaled_height(strip_width: int, source_width: int, source_height: int) -> int:
    """Height that keeps the source aspect ratio at strip_width, rounded half up."""
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Invalid source resolution: {source_width}x{source_height}")
    return int(math.floor(strip_width * source_height / source_width + 0.5))


@dataclass(frozen=True)
class TargetGeometry:
    """Output layout derived once per run from the source resolution."""
    target_height: int
    strip_width: int = SHOWCASE_WIDTH
    slice_width: int = SLICE_WIDTH
    gap_width: int = GAP_WIDTH
    slice_count: int = SLICE_COUNT

    def __post_init__(self):
        if self.target_height <= 0:
            raise ValueError(f"Target height must be positive, got {self.target_height}")

    @classmethod
    def for_source(cls, source_width: int, source_height: int) -> "TargetGeometry":
        """Build the geometry for a source of the given native resolution."""
        return cls(target_height=scaled_height(SHOWCASE_WIDTH, source_width, source_height))

    @property
    def strip_size(self) -> Tuple[int, int]:
        """(width, height) every kept frame is resized to."""
        return self.strip_width, self.target_height

    @property
    def slice_size(self) -> Tuple[int, int]:
        """(width, height) of each output GIF."""
        return self.slice_width, self.target_height

    def offsets(self) -> List[int]:
        return slice_offsets(self.slice_count, self.slice_width, self.gap_width)

    def valid_slices(self, frame_width: int) -> List[Tuple[int, int]]:
        return valid_slices(frame_width, self.slice_count, self.slice_width, self.gap_width)
