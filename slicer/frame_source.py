"""Decoded frame producers for still images and videos."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Optional

import imageio_ffmpeg
import numpy as np
from PIL import Image, UnidentifiedImageError

from slicer.errors import OpenFailed
from slicer.sampling import DEFAULT_SOURCE_FPS


IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".webp"}


class FrameSource(ABC):
    """Pull-based producer of RGB frames (uint8 arrays of shape (H, W, 3))."""

    width: int
    height: int

    @property
    @abstractmethod
    def is_still(self) -> bool:
        """True for single-image sources."""

    @property
    def fps(self) -> Optional[float]:
        """Declared frame rate; None for still images."""
        return None

    @abstractmethod
    def next_frame(self) -> Optional[np.ndarray]:
        """Return the next frame, or None once the source is exhausted."""

    def close(self) -> None:
        """Release decoder resources. Safe to call more than once."""

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class ImageFrameSource(FrameSource):
    """Yields a single decoded image exactly once."""

    def __init__(self, image_path: Path):
        """
        Decode an image file.

        Args:
            image_path: Path to a PNG/JPEG/BMP/WebP file

        Raises:
            OpenFailed: If the file cannot be decoded or is empty
        """
        try:
            with Image.open(image_path) as image:
                rgb = image.convert("RGB")
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logging.error(f"Failed to decode image {image_path}: {e}")
            raise OpenFailed(f"Cannot decode image: {image_path}") from e

        if rgb.width == 0 or rgb.height == 0:
            raise OpenFailed(f"Image has no pixels: {image_path}")

        self.width, self.height = rgb.size
        self._frame: Optional[np.ndarray] = np.asarray(rgb, dtype=np.uint8)
        logging.info(f"Image source opened: {image_path.name} ({self.width}x{self.height})")

    @property
    def is_still(self) -> bool:
        return True

    def next_frame(self) -> Optional[np.ndarray]:
        frame, self._frame = self._frame, None
        return frame

    def close(self) -> None:
        self._frame = None


class VideoFrameSource(FrameSource):
    """
    Streams raw rgb24 frames out of an ffmpeg decoder process.

    The stream is lazy, finite and cannot be restarted. Resolution and frame
    rate are known as soon as the source is constructed.
    """

    def __init__(self, video_path: Path):
        """
        Start decoding a video file.

        Args:
            video_path: Path to any container ffmpeg can read

        Raises:
            OpenFailed: If the container cannot be read or yields no frame
        """
        self._reader: Optional[Iterator] = None
        self._pending: Optional[np.ndarray] = None
        self.frames_read = 0

        if not video_path.is_file():
            raise OpenFailed(f"Video file does not exist: {video_path}")

        try:
            self._reader = imageio_ffmpeg.read_frames(str(video_path.absolute()), pix_fmt="rgb24")
            meta = next(self._reader)
        except (OSError, RuntimeError, StopIteration) as e:
            logging.error(f"Failed to open video {video_path}: {e}")
            self.close()
            raise OpenFailed(f"Cannot open video: {video_path}") from e

        try:
            self.width, self.height = (int(v) for v in meta["size"])
            declared_fps = float(meta.get("fps") or 0.0)
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Unexpected video metadata for {video_path}: {meta}")
            self.close()
            raise OpenFailed(f"Unreadable video metadata: {video_path}") from e

        self._fps = declared_fps if declared_fps > 0 else DEFAULT_SOURCE_FPS
        if declared_fps <= 0:
            logging.warning(f"Video declares no frame rate, assuming {DEFAULT_SOURCE_FPS:g} fps")

        # An empty first read means nothing can be decoded at all
        self._pending = self._read()
        if self._pending is None:
            self.close()
            raise OpenFailed(f"Video contains no decodable frames: {video_path}")

        logging.info(
            f"Video source opened: {video_path.name} "
            f"({self.width}x{self.height} @ {self._fps:.2f} fps, codec={meta.get('codec', 'unknown')})"
        )

    @property
    def is_still(self) -> bool:
        return False

    @property
    def fps(self) -> Optional[float]:
        return self._fps

    def _read(self) -> Optional[np.ndarray]:
        if self._reader is None:
            return None
        try:
            raw = next(self._reader)
        except StopIteration:
            return None
        except RuntimeError as e:
            # A frame that fails to decode ends the stream
            logging.warning(f"Video decode stopped after {self.frames_read} frames: {e}")
            self.close()
            return None

        self.frames_read += 1
        return np.frombuffer(raw, dtype=np.uint8).reshape(self.height, self.width, 3)

    def next_frame(self) -> Optional[np.ndarray]:
        if self._pending is not None:
            frame, self._pending = self._pending, None
            return frame
        return self._read()

    def close(self) -> None:
        reader, self._reader = self._reader, None
        self._pending = None
        if reader is not None:
            try:
                reader.close()
            except RuntimeError as e:
                logging.debug(f"Decoder shutdown reported: {e}")


def open_frame_source(source_path: Path) -> FrameSource:
    """
    Open the right frame source for a file, chosen by extension.

    Raises:
        OpenFailed: If the source cannot be decoded at all
    """
    source_path = Path(source_path)
    if source_path.suffix.lower() in IMAGE_EXTENSIONS:
        return ImageFrameSource(source_path)
    return VideoFrameSource(source_path)
