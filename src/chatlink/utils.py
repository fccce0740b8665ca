"""
ChatLink - Utility functions.

Provides helpers for formatting, validation, and filename handling.
"""

import logging
import re

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def validate_port(port: int) -> bool:
    """
    Validate a port number.

    Port 0 is accepted and asks the OS for an ephemeral port.

    Args:
        port: Port number to validate

    Returns:
        True if valid, False otherwise
    """
    return 0 <= port <= 65535


def truncate_filename(filename: str, max_bytes: int) -> str:
    """
    Shorten a filename to at most ``max_bytes`` UTF-8 bytes.

    The extension is kept and the stem is cut, never splitting a
    multi-byte character. An extension that would leave no room for the
    stem is treated as part of the stem.

    Args:
        filename: Filename to shorten
        max_bytes: Maximum encoded length

    Returns:
        Shortened filename
    """
    if len(filename.encode("utf-8")) <= max_bytes:
        return filename

    stem, dot, extension = filename.rpartition(".")
    suffix = dot + extension
    if not stem or len(suffix.encode("utf-8")) >= max_bytes // 2:
        stem, suffix = filename, ""

    budget = max_bytes - len(suffix.encode("utf-8"))
    stem = stem.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return stem + suffix


def format_size(num_bytes: int) -> str:
    """
    Format a byte count for display (e.g. ``1.5 MB``).

    Args:
        num_bytes: Size in bytes

    Returns:
        Human readable size
    """
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024 or unit == "TB":
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{num_bytes} B"


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a peer supplied filename so it can only name a file, never a path.

    Args:
        filename: Filename to sanitize

    Returns:
        Sanitized filename
    """
    # Keep only the last path component, whichever separator the peer used
    filename = re.split(r"[\\/]", filename)[-1]

    # Remove invalid characters
    invalid_chars = '<>:"|?*'
    for char in invalid_chars:
        filename = filename.replace(char, "_")
    filename = _CONTROL_CHARS.sub("_", filename)

    # Remove leading/trailing spaces and dots
    filename = filename.strip(". ")

    # Ensure not empty
    if not filename:
        filename = "unnamed"

    return filename
