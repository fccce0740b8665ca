"""
ChatLink - Destination paths for received files.

Every incoming file is stored as ``received_<epoch-ms>_<counter>_<name>``
inside the received files directory. Long names are shortened so the
whole entry fits in 255 bytes. The counter is shared by all namers in
the process, so two files with the same name received in the same
millisecond still get distinct paths.
"""

import itertools
import logging
import threading
import time
from pathlib import Path
from typing import Union

from .constants import MAX_FILENAME_BYTES, RECEIVED_DIR, RECEIVED_PREFIX
from .utils import sanitize_filename, truncate_filename

logger = logging.getLogger(__name__)

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def _next_sequence() -> int:
    with _counter_lock:
        return next(_counter)


class ReceivedFileNamer:
    """Generates collision free destinations for incoming file payloads.

    Attributes:
        directory: Directory received files are written to
    """

    def __init__(self, directory: Union[str, Path] = RECEIVED_DIR):
        self.directory = Path(directory)

    def name_for(self, original_name: str) -> Path:
        """Return a fresh destination path for a file named ``original_name``.

        The directory is created if it does not exist. The returned path
        did not exist when it was chosen.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        safe_name = sanitize_filename(original_name)

        while True:
            prefix = f"{RECEIVED_PREFIX}_{int(time.time() * 1000)}_{_next_sequence()}_"
            # The whole component must fit in one directory entry
            name = truncate_filename(safe_name, MAX_FILENAME_BYTES - len(prefix.encode("utf-8")))
            candidate = self.directory / (prefix + name)
            if not candidate.exists():
                break

        logger.debug(f"Destination for {original_name!r}: {candidate}")
        return candidate
