#!/usr/bin/env python3
"""
Steam Showcase Slicer
Main entry point: turns one image or video into five patched GIF slices.
"""

import logging
import os
import sys
from pathlib import Path

from slicer import messages
from slicer.config_manager import ConfigManager, ConfigurationError
from slicer.data_models import RunStatus
from slicer.platform_utils import open_directory
from slicer.processor import ShowcaseProcessor
from slicer.status import EventKind
from slicer.stop_flag import StopFlag
from slicer.validator import Validator


LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

POLL_INTERVAL_SECONDS = 0.2


def configure_logging():
    """Console logging at INFO; the root logger stays open for a DEBUG file handler."""
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    logging.basicConfig(
        level=logging.DEBUG,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[console]
    )


def attach_debug_log(log_file: Path) -> bool:
    """
    Write DEBUG output to a log file, truncated for every run.

    Args:
        log_file: Path of the debug log

    Returns:
        True if the file handler was attached
    """
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    except OSError as e:
        logging.warning(f"Debug log disabled, cannot open {log_file}: {e}")
        return False

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    logging.debug("=== Showcase Slicer Debug Log ===")
    return True


def log_event(event):
    """Write one status event to the log at a matching level."""
    if event.kind is EventKind.ERROR:
        logging.error(event.message)
    elif event.kind is EventKind.CANCELLED:
        logging.warning(event.message)
    else:
        logging.info(event.message)


def main():
    """Main entry point for the showcase slicer."""
    configure_logging()

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("Steam Showcase Slicer - Starting")
    logger.info("=" * 60)

    try:
        config = ConfigManager()
    except ConfigurationError as e:
        logger.error(f"Cannot start without a valid configuration: {e}")
        return EXIT_FAILED

    attach_debug_log(config.log_file)
    logger.info(f"  - Source: {config.source_path}")
    logger.info(f"  - Output directory: {config.output_directory}")
    logger.info(f"  - Sampling rate: {config.sampling_rate}")
    logger.info(f"  - Quality mode: {config.quality_mode}")

    if config.ffmpeg_path:
        os.environ["IMAGEIO_FFMPEG_EXE"] = config.ffmpeg_path
        logger.info(f"  - ffmpeg: {config.ffmpeg_path}")

    try:
        params = config.to_task_parameters()
    except ValueError as e:
        logger.error(f"Invalid task parameters: {e}")
        return EXIT_FAILED

    processor = ShowcaseProcessor()
    stop_flag = StopFlag()
    stop_flag.register_signal_handlers(processor.request_cancel)

    try:
        channel = processor.start(params)
        while True:
            event = channel.get(timeout=POLL_INTERVAL_SECONDS)
            if event is not None:
                log_event(event)
                continue
            if not processor.is_active():
                for event in channel.drain():
                    log_event(event)
                break
    finally:
        processor.cancel()
        stop_flag.restore_signal_handlers()

    outcome = processor.wait()
    if outcome is None:
        logger.error("Worker did not report an outcome")
        return EXIT_FAILED

    if outcome.status is RunStatus.FAILED:
        logger.error(f"Run failed ({outcome.error_kind}) after {outcome.elapsed_seconds:.1f}s")
        return EXIT_FAILED

    if outcome.output_paths:
        validation = Validator().validate_outputs(outcome)
        if not validation.valid:
            logger.warning(f"Output check failed: {validation.error_message}")

    logger.info("=" * 60)
    logger.info(
        f"{len(outcome.output_paths)} slice(s), {outcome.kept_frames} frame(s) each, "
        f"{outcome.elapsed_seconds:.1f}s"
    )

    if outcome.status is RunStatus.PARTIAL:
        logger.info("Steam Showcase Slicer - Stopped early, files were not patched")
        logger.info("=" * 60)
        return EXIT_CANCELLED

    logger.info(f"Upload each slice at {messages.UPLOAD_PAGE_URL}")
    logger.info(f"then run this in the browser console: {messages.UPLOAD_SNIPPET}")
    if config.open_output_directory:
        open_directory(config.output_directory)

    logger.info("Steam Showcase Slicer - Completed")
    logger.info("=" * 60)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
