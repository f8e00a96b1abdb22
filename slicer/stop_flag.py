"""Stop flag for cooperative cancellation of a slicing run."""

import logging
import signal
import threading
from typing import Callable, Optional


class StopFlag:
    """Thread-safe stop flag, polled by the worker between frames."""

    def __init__(self):
        """Initialize the stop flag."""
        self._event = threading.Event()
        self._previous_handlers = {}

    def request_stop(self):
        """Request a graceful stop before the next frame is pulled."""
        if not self._event.is_set():
            logging.info("[STOP] Stop requested - flushing encoded frames and exiting...")
        self._event.set()

    def is_stop_requested(self) -> bool:
        """Check if stop has been requested."""
        return self._event.is_set()

    def register_signal_handlers(self, on_stop: Optional[Callable[[], None]] = None):
        """
        Route Ctrl+C and termination signals to a stop request.

        Args:
            on_stop: Called instead of request_stop when given
        """
        if self._previous_handlers:
            return

        def signal_handler(signum, frame):
            """Handle interrupt signals gracefully."""
            if on_stop is not None:
                on_stop()
            else:
                self.request_stop()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self._previous_handlers[signum] = signal.signal(signum, signal_handler)
            except (ValueError, OSError) as e:
                # Not on the main thread, or the signal is unsupported here
                logging.debug(f"Could not register handler for signal {signum}: {e}")

    def restore_signal_handlers(self):
        """Put back whatever handlers were installed before."""
        for signum, handler in self._previous_handlers.items():
            if handler is None:
                continue
            try:
                signal.signal(signum, handler)
            except (ValueError, OSError) as e:
                logging.debug(f"Could not restore handler for signal {signum}: {e}")
        self._previous_handlers = {}
