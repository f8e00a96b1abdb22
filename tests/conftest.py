import time
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import pytest
from PIL import Image

from slicer.errors import EncoderInitFailed
from slicer.frame_source import FrameSource


GIF_FRAME_LIMIT = 50


class FakeFrameSource(FrameSource):
    """Synthetic video: frame i is a solid colour whose every channel is i % 256."""

    def __init__(
        self,
        width: int = 383,
        height: int = 200,
        frame_count: int = 30,
        fps: Optional[float] = 30.0,
        on_pull: Optional[Callable[[int], None]] = None
    ):
        self.width = width
        self.height = height
        self.frame_count = frame_count
        self._fps = fps
        self.on_pull = on_pull
        self.pulled = 0
        self.closed = False

    @property
    def is_still(self) -> bool:
        return False

    @property
    def fps(self) -> Optional[float]:
        return self._fps

    def next_frame(self) -> Optional[np.ndarray]:
        if self.pulled >= self.frame_count:
            return None
        index = self.pulled
        self.pulled += 1
        if self.on_pull is not None:
            self.on_pull(self.pulled)
        return np.full((self.height, self.width, 3), index % 256, dtype=np.uint8)

    def close(self) -> None:
        self.closed = True


class RecordingEncoder:
    """Stands in for SliceEncoder; writes a real GIF of what it was fed on finish."""

    def __init__(self, index: int, fail_open: bool = False):
        self.index = index
        self.fail_open = fail_open
        self.opened = False
        self.open_args = None
        self.pushed_values: List[int] = []
        self.finish_calls = 0
        self.output_path: Optional[Path] = None
        self._size = None

    def open(self, output_path, width, height, frame_rate, quality_mode):
        self.open_args = (Path(output_path), width, height, frame_rate, quality_mode)
        if self.fail_open:
            raise EncoderInitFailed(f"fake failure for slice {self.index}")
        self.output_path = Path(output_path)
        self.output_path.open("wb").close()
        self._size = (width, height)
        self.opened = True

    def push(self, frame):
        assert frame.shape == (self._size[1], self._size[0], 3)
        self.pushed_values.append(int(frame[0, 0, 0]))

    def finish(self) -> bool:
        self.finish_calls += 1
        if not self.opened or self.finish_calls > 1:
            return False
        if self.pushed_values:
            frames = [
                Image.new("RGB", self._size, (value, 0, 0))
                for value in self.pushed_values[:GIF_FRAME_LIMIT]
            ]
            frames[0].save(
                self.output_path,
                format="GIF",
                save_all=True,
                append_images=frames[1:],
                duration=100,
                loop=0
            )
        return True


class RecordingEncoderFactory:
    """Hands out RecordingEncoders in creation order, optionally failing one."""

    def __init__(self, fail_at: Optional[int] = None):
        self.fail_at = fail_at
        self.encoders: List[RecordingEncoder] = []

    def __call__(self) -> RecordingEncoder:
        index = len(self.encoders)
        encoder = RecordingEncoder(index, fail_open=(index == self.fail_at))
        self.encoders.append(encoder)
        return encoder


class PatcherSpy:
    def __init__(self, wrapped=None):
        self.wrapped = wrapped
        self.calls: List[Path] = []

    def __call__(self, path: Path) -> bool:
        self.calls.append(Path(path))
        if self.wrapped is not None:
            return self.wrapped(path)
        return True


@pytest.fixture
def encoder_factory():
    return RecordingEncoderFactory()


@pytest.fixture
def patcher_spy():
    return PatcherSpy()


@pytest.fixture
def source_path(tmp_path: Path) -> Path:
    # Only its name is used by fake openers
    path = tmp_path / "input.mp4"
    path.write_bytes(b"")
    return path


@pytest.fixture
def write_png(tmp_path: Path):
    def _write(width: int, height: int, name: str = "input.png", color=(10, 120, 230)) -> Path:
        path = tmp_path / name
        Image.new("RGB", (width, height), color).save(path, format="PNG")
        return path
    return _write


@pytest.fixture
def ffmpeg_exe() -> str:
    imageio_ffmpeg = pytest.importorskip("imageio_ffmpeg")
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        pytest.skip(f"ffmpeg not available: {e}")


@pytest.fixture
def write_video(tmp_path: Path, ffmpeg_exe):
    """Encode a short synthetic clip with the bundled ffmpeg."""
    import imageio_ffmpeg

    def _write(width: int = 64, height: int = 48, frame_count: int = 12, fps: int = 10) -> Path:
        path = tmp_path / "clip.mp4"
        writer = imageio_ffmpeg.write_frames(str(path), (width, height), fps=fps, pix_fmt_in="rgb24")
        writer.send(None)
        for index in range(frame_count):
            frame = np.full((height, width, 3), (index * 20) % 256, dtype=np.uint8)
            writer.send(frame.tobytes())
        writer.close()
        return path
    return _write


def wait_until(predicate, timeout: float = 10.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
