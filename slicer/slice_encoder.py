"""Streaming GIF encoder for a single showcase slice."""

import functools
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, List, Optional

import imageio_ffmpeg
import numpy as np

from slicer.errors import EncoderInitFailed, IoFailed


# Scaler used by the rgb24 -> rgb8 conversion, indexed by quality mode
SWS_FLAGS = {
    0: "neighbor",  # fastest, pixelated
    1: "bilinear",  # balanced
    2: "bicubic",   # high
    3: "lanczos",   # best, slowest
}

FINISH_TIMEOUT_SECONDS = 120


class EncoderState(Enum):
    """Lifecycle of one encoding session."""
    CLOSED = "closed"
    OPEN = "open"
    ENCODING = "encoding"
    FLUSHING = "flushing"


@functools.lru_cache(maxsize=None)
def gif_encoder_available(ffmpeg_exe: str) -> bool:
    """Check once per binary that ffmpeg was built with the GIF encoder."""
    try:
        result = subprocess.run(
            [ffmpeg_exe, "-hide_banner", "-encoders"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=30
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logging.error(f"Could not query ffmpeg encoders: {e}")
        return False

    return any(line.split()[1:2] == ["gif"] for line in result.stdout.splitlines() if line.strip())


def build_encoder_command(
    ffmpeg_exe: str,
    output_path: Path,
    width: int,
    height: int,
    frame_rate: int,
    quality_mode: int
) -> List[str]:
    """
    Build the ffmpeg command that turns raw rgb24 frames on stdin into a GIF.

    Args:
        ffmpeg_exe: Path to the ffmpeg binary
        output_path: GIF file to write
        width: Frame width in pixels
        height: Frame height in pixels
        frame_rate: Output frames per second
        quality_mode: 0-3, selects the scaler and frame diffing

    Returns:
        Command as an argument list
    """
    sws_flags = SWS_FLAGS.get(quality_mode, SWS_FLAGS[1])

    command = [
        ffmpeg_exe,
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        # Raw frames from the pipe
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(frame_rate),
        "-i", "-",
        # Colour conversion to the GIF palette format
        "-sws_flags", sws_flags,
        "-pix_fmt", "rgb8",
        "-c:v", "gif",
    ]
    if quality_mode >= 2:
        # Lower modes keep ffmpeg's default frame diffing
        command += ["-gifflags", "+transdiff"]
    command += ["-f", "gif", str(output_path.absolute())]
    return command


@dataclass
class _EncoderSession:
    """Everything an open encoder owns. Released only through close()."""
    process: subprocess.Popen
    stderr_file: IO[bytes]
    output_path: Path
    width: int
    height: int
    stderr_text: str = ""

    @property
    def frame_shape(self):
        return (self.height, self.width, 3)

    def close(self, timeout: float) -> int:
        """
        Signal end of stream, wait for the trailer and release handles.

        Whatever ffmpeg printed is kept in stderr_text.

        Returns:
            The encoder's exit code
        """
        try:
            if self.process.stdin is not None and not self.process.stdin.closed:
                try:
                    self.process.stdin.close()
                except (BrokenPipeError, OSError) as e:
                    logging.debug(f"Encoder stdin for {self.output_path.name} already closed: {e}")

            try:
                return self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logging.warning(f"Encoder for {self.output_path.name} did not exit, killing it")
                self.process.kill()
                return self.process.wait()
        finally:
            self.stderr_text = self.read_stderr()
            self.stderr_file.close()

    def read_stderr(self) -> str:
        try:
            self.stderr_file.seek(0)
            return self.stderr_file.read().decode("utf-8", "ignore").strip()
        except (OSError, ValueError):
            return ""


class SliceEncoder:
    """Owns one GIF encoding session: open, push frames in order, finish once."""

    def __init__(self, finish_timeout: float = FINISH_TIMEOUT_SECONDS):
        self.finish_timeout = finish_timeout
        self.state = EncoderState.CLOSED
        self.frame_count = 0
        self.output_path: Optional[Path] = None
        self._session: Optional[_EncoderSession] = None
        self._finished = False

    def open(self, output_path: Path, width: int, height: int, frame_rate: int, quality_mode: int) -> None:
        """
        Create the output file and start the encoder. ffmpeg writes the GIF
        header together with the first frame.

        Args:
            output_path: GIF file to write (truncated if present)
            width: Frame width in pixels
            height: Frame height in pixels
            frame_rate: Output frames per second
            quality_mode: 0-3

        Raises:
            EncoderInitFailed: If ffmpeg or its GIF encoder is unavailable, or the
                output file cannot be created. The encoder stays closed.
        """
        if self._finished or self._session is not None:
            raise EncoderInitFailed("Encoder sessions cannot be reopened")
        if width <= 0 or height <= 0 or frame_rate <= 0:
            raise EncoderInitFailed(f"Invalid encoder geometry {width}x{height} @ {frame_rate} fps")

        output_path = Path(output_path)
        self.output_path = output_path
        logging.info(
            f"[Init] {output_path.name}: {width}x{height} @ {frame_rate} fps, "
            f"scaler={SWS_FLAGS.get(quality_mode, SWS_FLAGS[1])}"
        )

        try:
            ffmpeg_exe = imageio_ffmpeg.get_ffmpeg_exe()
        except RuntimeError as e:
            logging.error(f"[Init] ffmpeg not found: {e}")
            raise EncoderInitFailed("ffmpeg executable not found") from e

        if not gif_encoder_available(ffmpeg_exe):
            logging.error(f"[Init] GIF encoder not available in {ffmpeg_exe}")
            raise EncoderInitFailed("GIF encoder not available")

        try:
            output_path.open("wb").close()
        except OSError as e:
            logging.error(f"[Init] Cannot create {output_path}: {e}")
            raise EncoderInitFailed(f"Cannot create output file: {output_path}") from e

        command = build_encoder_command(ffmpeg_exe, output_path, width, height, frame_rate, quality_mode)
        logging.debug(f"FFmpeg encoder command: {' '.join(command)}")

        stderr_file = tempfile.TemporaryFile()
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=stderr_file
            )
        except OSError as e:
            stderr_file.close()
            logging.error(f"[Init] Failed to start encoder for {output_path.name}: {e}")
            raise EncoderInitFailed(f"Cannot start encoder for {output_path}") from e

        session = _EncoderSession(process, stderr_file, output_path, width, height)
        if process.poll() is not None:
            session.close(timeout=self.finish_timeout)
            logging.error(f"[Init] Encoder for {output_path.name} exited immediately: {session.stderr_text}")
            raise EncoderInitFailed(f"Encoder exited during setup: {output_path}")

        self._session = session
        self.frame_count = 0
        self.state = EncoderState.OPEN

    def push(self, frame: np.ndarray) -> None:
        """
        Submit one rgb24 frame. Ignored unless the session is open.

        Raises:
            ValueError: If the frame does not match the session geometry
            IoFailed: If the encoder process stopped accepting data
        """
        if self._session is None or self.state not in (EncoderState.OPEN, EncoderState.ENCODING):
            return

        session = self._session
        if frame.shape != session.frame_shape:
            raise ValueError(f"Frame shape {frame.shape} does not match encoder {session.frame_shape}")

        self.state = EncoderState.ENCODING
        try:
            session.process.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            # Hand every byte to ffmpeg now so nothing piles up on our side
            session.process.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            logging.error(
                f"Encoder for {session.output_path.name} stopped accepting frames "
                f"at pts {self.frame_count}: {e}"
            )
            raise IoFailed(f"Encoder pipe closed: {session.output_path}") from e

        self.frame_count += 1

    def finish(self) -> bool:
        """
        Flush buffered frames, write the GIF trailer and release the session.

        Safe to call repeatedly and on an encoder that never opened. A session
        that never received a frame leaves no file behind.

        Returns:
            True if the encoder exited cleanly
        """
        session, self._session = self._session, None
        self._finished = True
        if session is None:
            self.state = EncoderState.CLOSED
            return False

        self.state = EncoderState.FLUSHING
        try:
            return_code = session.close(timeout=self.finish_timeout)
        finally:
            self.state = EncoderState.CLOSED

        if self.frame_count == 0:
            # ffmpeg writes nothing until the first frame arrives
            logging.info(f"No frames reached {session.output_path.name}, removing it")
            try:
                session.output_path.unlink(missing_ok=True)
            except OSError as e:
                logging.warning(f"Could not remove empty {session.output_path}: {e}")
            return False

        if return_code != 0:
            logging.error(
                f"Encoder for {session.output_path.name} exited with code {return_code}: "
                f"{session.stderr_text[-1000:]}"
            )
            return False

        logging.info(f"Finished {session.output_path.name} ({self.frame_count} frames)")
        return True

    @property
    def is_open(self) -> bool:
        return self._session is not None
