"""Trailer byte patch applied to finished GIF slices."""

import logging
from pathlib import Path


GIF_TRAILER = 0x3B
PATCHED_TRAILER = 0x21


def apply_hex_patch(file_path: Path) -> bool:
    """
    Rewrite a trailing GIF terminator (0x3B) as 0x21 in place.

    The showcase upload pipeline re-compresses files that end with a normal
    GIF trailer. Only the final byte is read or written.

    Args:
        file_path: Finished, closed GIF file

    Returns:
        True if the byte was patched, False if the file ended with anything
        else or could not be opened
    """
    file_path = Path(file_path)
    try:
        with open(file_path, "r+b") as f:
            f.seek(-1, 2)
            last = f.read(1)
            if last != bytes([GIF_TRAILER]):
                logging.debug(f"No trailer to patch in {file_path.name} (last byte {last.hex() or 'none'})")
                return False

            f.seek(-1, 2)
            f.write(bytes([PATCHED_TRAILER]))
    except OSError as e:
        logging.warning(f"Could not patch {file_path}: {e}")
        return False

    logging.debug(f"Patched trailer of {file_path.name}")
    return True
