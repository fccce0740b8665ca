"""
ChatLink - Open files with the platform's default application.

- Windows: os.startfile
- macOS: open
- Linux and others: xdg-open
"""

import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def open_with_default_app(path: Union[str, Path]) -> bool:
    """
    Ask the OS to open ``path`` with its default application.

    Returns:
        True if the request was handed to the OS, False otherwise
    """
    file_path = Path(path)
    if not file_path.is_file():
        logger.warning(f"File not available to open: {file_path}")
        return False

    system = platform.system().lower()
    try:
        if system == "windows":
            os.startfile(str(file_path))
        elif system == "darwin":
            subprocess.Popen(["open", str(file_path)], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        else:
            if shutil.which("xdg-open") is None:
                logger.warning("Open operation not supported on this platform (no xdg-open)")
                return False
            subprocess.Popen(["xdg-open", str(file_path)], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        logger.warning(f"Unable to open {file_path}: {e}")
        return False

    logger.info(f"Opened file: {file_path}")
    return True
