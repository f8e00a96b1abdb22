"""Validates produced GIF slices for structure and size."""

import logging
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from slicer.data_models import RunOutcome, RunStatus, ValidationResult


GIF_SIGNATURES = (b"GIF87a", b"GIF89a")


class Validator:
    """Checks that every slice of a run is a readable GIF of the expected size."""

    def _check_file_exists(self, gif_path: Path) -> bool:
        """
        Verify that the slice file exists and is not empty.

        Args:
            gif_path: Path to the GIF file

        Returns:
            True if the file exists and has content, False otherwise
        """
        if not gif_path.is_file():
            logging.error(f"Slice file does not exist: {gif_path}")
            return False

        if gif_path.stat().st_size == 0:
            logging.error(f"Slice file is empty: {gif_path}")
            return False

        return True

    def _check_signature(self, gif_path: Path) -> bool:
        """Verify the GIF87a/GIF89a signature at the start of the file."""
        try:
            with open(gif_path, "rb") as f:
                signature = f.read(6)
        except OSError as e:
            logging.error(f"Error reading {gif_path}: {e}")
            return False

        if signature not in GIF_SIGNATURES:
            logging.error(f"{gif_path.name} is not a GIF (signature {signature!r})")
            return False
        return True

    def _read_size(self, gif_path: Path) -> Optional[Tuple[int, int]]:
        """
        Read the logical screen size with Pillow.

        Only the header and first image descriptor are parsed, so patched
        files with a rewritten trailer are still accepted.
        """
        try:
            with Image.open(gif_path) as image:
                if image.format != "GIF":
                    logging.error(f"{gif_path.name} decoded as {image.format}, expected GIF")
                    return None
                return image.size
        except (OSError, UnidentifiedImageError) as e:
            logging.error(f"Pillow could not open {gif_path.name}: {e}")
            return None

    def validate_outputs(
        self,
        outcome: RunOutcome,
        expected_size: Optional[Tuple[int, int]] = None
    ) -> ValidationResult:
        """
        Run all checks on the files a run produced.

        Args:
            outcome: RunOutcome returned by the processor
            expected_size: (width, height) every slice must have; defaults to
                the slice size recorded in the outcome

        Returns:
            ValidationResult with the first problem found, if any
        """
        if expected_size is None:
            expected_size = outcome.slice_size

        if outcome.status is RunStatus.FAILED:
            error_msg = f"Run failed: {outcome.last_message}"
            logging.error(error_msg)
            return ValidationResult(valid=False, error_message=error_msg)

        if not outcome.output_paths:
            error_msg = "Run produced no slice files"
            logging.error(error_msg)
            return ValidationResult(valid=False, error_message=error_msg)

        checked = []
        for gif_path in outcome.output_paths:
            if not self._check_file_exists(gif_path) or not self._check_signature(gif_path):
                return ValidationResult(
                    valid=False,
                    checked_files=checked,
                    error_message=f"Invalid slice file: {gif_path.name}"
                )

            size = self._read_size(gif_path)
            if size is None:
                return ValidationResult(
                    valid=False,
                    checked_files=checked,
                    error_message=f"Unreadable slice file: {gif_path.name}"
                )

            if expected_size is not None and size != tuple(expected_size):
                error_msg = f"{gif_path.name} is {size[0]}x{size[1]}, expected {expected_size[0]}x{expected_size[1]}"
                logging.error(error_msg)
                return ValidationResult(valid=False, checked_files=checked, error_message=error_msg)

            logging.debug(f"Validated {gif_path.name} ({size[0]}x{size[1]})")
            checked.append(gif_path)

        logging.info(f"Validation successful: {len(checked)} slice files checked")
        return ValidationResult(valid=True, checked_files=checked)
