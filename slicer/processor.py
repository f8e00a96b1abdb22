"""Slice-and-encode orchestration for showcase GIF strips."""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from slicer import messages
from slicer.data_models import RunOutcome, RunState, RunStatus, TaskParameters
from slicer.errors import EncoderInitFailed, IoFailed, OpenFailed, SlicerError
from slicer.frame_source import FrameSource, open_frame_source
from slicer.geometry import TargetGeometry
from slicer.imaging import crop_slice, resize_frame, write_static_gif
from slicer.patcher import apply_hex_patch
from slicer.sampling import SamplingCadence
from slicer.slice_encoder import SliceEncoder
from slicer.status import EventKind, StatusChannel, UpdateCallback
from slicer.stop_flag import StopFlag


PROGRESS_INTERVAL = 10

ERROR_MESSAGES = {
    OpenFailed: messages.ERR_OPEN_FAILED,
    EncoderInitFailed: messages.ERR_ENCODER_INIT,
    IoFailed: messages.ERR_IO_FAILED,
}


def slice_filename(index: int) -> str:
    """Output name for a zero-based slice index (slice_1.gif ... slice_5.gif)."""
    return f"slice_{index + 1}.gif"


class SliceRun:
    """
    One pass from a source file to a set of patched GIF slices.

    A run moves IDLE -> INITIALIZING -> RUNNING -> DRAINING -> FINISHED and is
    never restarted. All collaborators are injectable so the state machine can
    be driven without ffmpeg.
    """

    def __init__(
        self,
        params: TaskParameters,
        channel: StatusChannel,
        stop_flag: StopFlag,
        encoder_factory: Callable[[], SliceEncoder] = SliceEncoder,
        source_opener: Callable[[Path], FrameSource] = open_frame_source,
        patcher: Callable[[Path], bool] = apply_hex_patch
    ):
        self.params = params
        self.channel = channel
        self.stop_flag = stop_flag
        self.encoder_factory = encoder_factory
        self.source_opener = source_opener
        self.patcher = patcher

        self.state = RunState.IDLE
        self.kept_frames = 0
        self.frames_pulled = 0
        self.output_paths: List[Path] = []
        self.geometry: Optional[TargetGeometry] = None
        self._error_kind: Optional[str] = None

    def output_path(self, index: int) -> Path:
        return self.params.output_dir / slice_filename(index)

    def _set_state(self, state: RunState):
        logging.debug(f"Run state {self.state.value} -> {state.value}")
        self.state = state

    def execute(self) -> RunOutcome:
        """
        Run to completion on the calling thread.

        Every failure is logged and published on the channel; nothing is raised.

        Returns:
            RunOutcome describing what was produced
        """
        started = time.monotonic()
        self._set_state(RunState.INITIALIZING)
        self.channel.publish(EventKind.STARTED, messages.LOG_STARTING)
        logging.info(
            f"Run started: source={self.params.source_path}, output={self.params.output_dir}, "
            f"sampling_rate={self.params.sampling_rate}, quality_mode={self.params.quality_mode}"
        )

        try:
            status = self._run()
        except SlicerError as e:
            status = self._fail(e, ERROR_MESSAGES.get(type(e), messages.ERR_UNEXPECTED))
        except Exception as e:
            logging.error(f"Unexpected error during run: {e}", exc_info=True)
            status = self._fail(e, messages.ERR_UNEXPECTED)
        finally:
            self._set_state(RunState.FINISHED)

        elapsed = time.monotonic() - started
        logging.info(
            f"Run finished: {status.value}, {self.kept_frames} kept frames, "
            f"{len(self.output_paths)} files, {elapsed:.1f}s"
        )
        return RunOutcome(
            status=status,
            output_paths=list(self.output_paths),
            last_message=self.channel.last_message,
            kept_frames=self.kept_frames,
            error_kind=self._error_kind,
            elapsed_seconds=elapsed,
            slice_size=self.geometry.slice_size if self.geometry is not None else None
        )

    def _fail(self, error: Exception, message: str) -> RunStatus:
        self._error_kind = type(error).__name__
        logging.error(f"Run failed ({self._error_kind}): {error}")
        self.channel.publish(EventKind.ERROR, message, self.kept_frames)
        return RunStatus.FAILED

    def _run(self) -> RunStatus:
        try:
            self.params.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailed(f"Cannot create output directory {self.params.output_dir}: {e}") from e

        with self.source_opener(self.params.source_path) as source:
            try:
                geometry = TargetGeometry.for_source(source.width, source.height)
            except ValueError as e:
                raise OpenFailed(f"Unusable source resolution: {e}") from e
            self.geometry = geometry

            logging.info(
                f"Target strip {geometry.strip_width}x{geometry.target_height}, "
                f"{geometry.slice_count} slices of {geometry.slice_width}px with {geometry.gap_width}px gaps"
            )

            if source.is_still:
                return self._run_still(source, geometry)
            return self._run_video(source, geometry)

    def _run_still(self, source: FrameSource, geometry: TargetGeometry) -> RunStatus:
        """Resize the single frame once and write each slice as a static GIF."""
        frame = source.next_frame()
        if frame is None:
            raise OpenFailed(f"Image yielded no frame: {self.params.source_path}")

        if self.stop_flag.is_stop_requested():
            return self._cancelled()

        self._set_state(RunState.RUNNING)
        resized = resize_frame(frame, geometry.strip_size, self.params.quality_mode)
        for index, offset in geometry.valid_slices(resized.shape[1]):
            path = self.output_path(index)
            try:
                write_static_gif(crop_slice(resized, offset, geometry.slice_width), path)
            except OSError as e:
                raise IoFailed(f"Cannot write {path}: {e}") from e
            self.output_paths.append(path)
        self.kept_frames = 1

        self._set_state(RunState.DRAINING)
        return self._complete()

    def _run_video(self, source: FrameSource, geometry: TargetGeometry) -> RunStatus:
        cadence = SamplingCadence.from_rate(self.params.sampling_rate)
        frame_rate = cadence.target_fps(source.fps)
        logging.info(f"Sampling 1 of every {cadence.divisor} frames, output {frame_rate} fps")

        encoders = self._open_encoders(geometry, frame_rate)

        self._set_state(RunState.RUNNING)
        try:
            cancelled = self._pump(source, geometry, cadence, encoders)
        finally:
            self._set_state(RunState.DRAINING)
            self._finish_encoders(encoders)
            if self.kept_frames == 0:
                # GIFs without a single frame are not kept
                self._remove_outputs(list(self.output_paths))

        if cancelled:
            return self._cancelled()
        if self.kept_frames == 0:
            logging.warning("Source ended before any frame was kept")
            self.channel.publish(EventKind.FINISHED, f"{messages.LOG_NO_FRAMES}{self.params.output_dir}")
            return RunStatus.PARTIAL
        return self._complete()

    def _open_encoders(self, geometry: TargetGeometry, frame_rate: int) -> Dict[int, SliceEncoder]:
        """
        Open one encoder per slice in index order.

        If any slice fails, every session opened so far is finished and the
        files of this run are removed before the error propagates.
        """
        encoders: Dict[int, SliceEncoder] = {}
        for index, _ in geometry.valid_slices(geometry.strip_width):
            path = self.output_path(index)
            encoder = self.encoder_factory()
            try:
                encoder.open(
                    path,
                    geometry.slice_width,
                    geometry.target_height,
                    frame_rate,
                    self.params.quality_mode
                )
            except EncoderInitFailed:
                logging.error(f"Encoder for slice {index + 1} failed to open, closing {len(encoders)} opened")
                encoder.finish()
                self._finish_encoders(encoders)
                self._remove_outputs([self.output_path(i) for i in range(index + 1)])
                raise
            encoders[index] = encoder
            self.output_paths.append(path)
        return encoders

    def _pump(
        self,
        source: FrameSource,
        geometry: TargetGeometry,
        cadence: SamplingCadence,
        encoders: Dict[int, SliceEncoder]
    ) -> bool:
        """
        Pull, sample, resize and fan out frames until the source ends.

        Returns:
            True if the loop stopped because of a cancellation request
        """
        while True:
            # Checked before every pull, so nothing is decoded past a stop request
            if self.stop_flag.is_stop_requested():
                logging.info(f"Cancellation observed after {self.frames_pulled} pulled frames")
                return True

            frame = source.next_frame()
            if frame is None:
                logging.info(f"Source exhausted after {self.frames_pulled} frames")
                return False

            frame_index = self.frames_pulled
            self.frames_pulled += 1
            if not cadence.keeps(frame_index):
                continue

            resized = resize_frame(frame, geometry.strip_size, self.params.quality_mode)
            for index, offset in geometry.valid_slices(resized.shape[1]):
                encoder = encoders.get(index)
                if encoder is not None:
                    encoder.push(crop_slice(resized, offset, geometry.slice_width))

            self.kept_frames += 1
            if self.kept_frames % PROGRESS_INTERVAL == 0:
                self.channel.publish(
                    EventKind.PROGRESS,
                    f"{messages.LOG_ENCODING}{self.kept_frames}",
                    self.kept_frames
                )

    def _finish_encoders(self, encoders: Dict[int, SliceEncoder]):
        for index in sorted(encoders):
            try:
                if not encoders[index].finish():
                    logging.warning(f"Slice {index + 1} encoder did not finish cleanly")
            except Exception as e:
                # Keep draining the remaining slices
                logging.error(f"Error finishing slice {index + 1}: {e}", exc_info=True)

    def _remove_outputs(self, paths: List[Path]):
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logging.warning(f"Could not remove {path}: {e}")
        self.output_paths = [p for p in self.output_paths if p not in paths]

    def _cancelled(self) -> RunStatus:
        logging.info(f"Run cancelled with {self.kept_frames} kept frames, skipping hex patch")
        self.channel.publish(
            EventKind.CANCELLED,
            f"{messages.LOG_CANCELLED}{self.params.output_dir}",
            self.kept_frames
        )
        return RunStatus.PARTIAL

    def _complete(self) -> RunStatus:
        self.channel.publish(EventKind.PATCHING, messages.LOG_HEX_HACK, self.kept_frames)
        patched = 0
        for path in self.output_paths:
            if self.patcher(path):
                patched += 1
            else:
                logging.warning(f"Hex patch not applied to {path.name}")
        logging.info(f"Hex patch applied to {patched}/{len(self.output_paths)} files")

        self.channel.publish(
            EventKind.FINISHED,
            f"{messages.LOG_FINISHED}{self.params.output_dir}",
            self.kept_frames
        )
        return RunStatus.SUCCESS


class ShowcaseProcessor:
    """
    Runs slicing jobs on a background thread, one at a time.

    Starting a new job cancels and joins the active one first. Progress is
    read from the StatusChannel returned by start().
    """

    def __init__(
        self,
        encoder_factory: Callable[[], SliceEncoder] = SliceEncoder,
        source_opener: Callable[[Path], FrameSource] = open_frame_source,
        patcher: Callable[[Path], bool] = apply_hex_patch
    ):
        self.encoder_factory = encoder_factory
        self.source_opener = source_opener
        self.patcher = patcher

        self.channel = StatusChannel()
        self._lock = threading.RLock()
        self._busy = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stop_flag: Optional[StopFlag] = None
        self._run: Optional[SliceRun] = None
        self._outcome: Optional[RunOutcome] = None

    def start(self, params: TaskParameters, on_update: Optional[UpdateCallback] = None) -> StatusChannel:
        """
        Begin a new run in the background.

        Args:
            params: Resolved task parameters
            on_update: Optional callback receiving each status message

        Returns:
            The channel the new run publishes to
        """
        with self._lock:
            self.cancel()

            channel = StatusChannel(on_update)
            stop_flag = StopFlag()
            run = SliceRun(
                params,
                channel,
                stop_flag,
                encoder_factory=self.encoder_factory,
                source_opener=self.source_opener,
                patcher=self.patcher
            )
            thread = threading.Thread(target=self._work, args=(run,), name="showcase-slicer", daemon=True)

            self.channel = channel
            self._stop_flag = stop_flag
            self._run = run
            self._outcome = None
            self._thread = thread
            self._busy.set()
            thread.start()
            return channel

    def _work(self, run: SliceRun):
        try:
            self._outcome = run.execute()
        finally:
            self._busy.clear()

    def request_cancel(self):
        """Ask the active run to stop before its next frame. Does not block."""
        stop_flag = self._stop_flag
        if stop_flag is not None and self.is_active():
            stop_flag.request_stop()

    def cancel(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        """
        Stop the active run and wait until its encoders are drained.

        Calling this from the worker thread only requests the stop.
        """
        self.request_cancel()
        if threading.current_thread() is self._thread:
            return None
        return self.wait(timeout)

    def wait(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        """Join the worker and return the outcome, or None if it is still running."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                return None
        return self._outcome

    def is_active(self) -> bool:
        return self._busy.is_set()

    @property
    def state(self) -> RunState:
        run = self._run
        return run.state if run is not None else RunState.IDLE

    @property
    def outcome(self) -> Optional[RunOutcome]:
        return self._outcome

    def __enter__(self) -> "ShowcaseProcessor":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cancel()
