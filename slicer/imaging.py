"""Frame resizing, slicing and still-GIF writing with Pillow."""

import logging
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image


def resample_filter(quality_mode: int) -> Image.Resampling:
    """
    Pick the strip resize filter for a quality mode.

    Quality 2 and above average source pixels (area resampling) for cleaner
    downscales; lower modes use the cheaper bilinear filter.
    """
    if quality_mode >= 2:
        return Image.Resampling.BOX
    return Image.Resampling.BILINEAR


def resize_frame(frame: np.ndarray, size: Tuple[int, int], quality_mode: int) -> np.ndarray:
    """
    Resize an RGB frame to (width, height).

    Args:
        frame: uint8 array of shape (H, W, 3)
        size: Target (width, height)
        quality_mode: 0-3, selects the resample filter

    Returns:
        New uint8 array of shape (height, width, 3)
    """
    image = Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8))
    if image.size != tuple(size):
        image = image.resize(size, resample=resample_filter(quality_mode))
    return np.asarray(image, dtype=np.uint8)


def crop_slice(frame: np.ndarray, offset: int, slice_width: int) -> np.ndarray:
    """Return a contiguous copy of the full-height column [offset, offset + slice_width)."""
    return frame[:, offset:offset + slice_width, :].copy()


def write_static_gif(region: np.ndarray, output_path: Path) -> None:
    """
    Save a single-frame GIF.

    Raises:
        OSError: If the file cannot be written
    """
    image = Image.fromarray(np.ascontiguousarray(region, dtype=np.uint8))
    image.save(output_path, format="GIF")
    logging.debug(f"Wrote static GIF {output_path.name} ({image.width}x{image.height})")
