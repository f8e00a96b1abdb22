"""Desktop shell-outs used after a run."""

import logging
import os
import subprocess
import sys
from pathlib import Path


def open_directory(path: Path) -> bool:
    """
    Open a directory in the system file manager.

    Args:
        path: Directory to show

    Returns:
        True if the file manager was launched
    """
    path = Path(path)
    if not path.is_dir():
        logging.error(f"Cannot open missing directory: {path}")
        return False

    try:
        if sys.platform.startswith("win"):
            os.startfile(str(path.absolute()))
        else:
            opener = "open" if sys.platform == "darwin" else "xdg-open"
            subprocess.Popen(
                [opener, str(path.absolute())],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL
            )
    except OSError as e:
        logging.warning(f"Could not open {path} in the file manager: {e}")
        return False

    logging.debug(f"Opened {path} in the file manager")
    return True
