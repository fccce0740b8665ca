"""
Unit tests for chatlink.utils and chatlink.errors.

Tests formatting, validation and filename helpers, and the error types.
"""

from chatlink.errors import (
    ChatLinkError,
    ConnectionClosedError,
    ErrorCode,
    FileTransferError,
    IOFailureError,
    NetworkError,
    TruncatedTransferError,
)
from chatlink.utils import format_size, sanitize_filename, truncate_filename, validate_port


class TestPortValidation:
    """Test port number validation."""

    def test_valid_ports(self):
        """Test that valid port numbers are accepted."""
        assert validate_port(0) is True
        assert validate_port(5000) is True
        assert validate_port(65535) is True

    def test_invalid_ports(self):
        """Test that invalid port numbers are rejected."""
        assert validate_port(-1) is False
        assert validate_port(65536) is False


class TestSanitizeFilename:
    """Test filename sanitization."""

    def test_plain_name_unchanged(self):
        assert sanitize_filename("report.pdf") == "report.pdf"

    def test_strips_directories(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\doc.txt") == "doc.txt"

    def test_replaces_invalid_characters(self):
        assert sanitize_filename('a<b>c:"d|e?f*.txt') == "a_b_c__d_e_f_.txt"
        assert sanitize_filename("tab\there") == "tab_here"

    def test_empty_becomes_unnamed(self):
        assert sanitize_filename("") == "unnamed"
        assert sanitize_filename("..") == "unnamed"
        assert sanitize_filename("dir/") == "unnamed"


class TestFormatting:
    """Test display helpers."""

    def test_format_size(self):
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"
        assert format_size(1536) == "1.5 KB"
        assert format_size(10 * 1024 * 1024) == "10.0 MB"


class TestTruncateFilename:
    """Test byte-bounded filename shortening."""

    def test_short_name_unchanged(self):
        assert truncate_filename("notes.txt", 255) == "notes.txt"

    def test_keeps_extension(self):
        result = truncate_filename("n" * 300 + ".txt", 100)

        assert result == "n" * 96 + ".txt"
        assert len(result.encode("utf-8")) == 100

    def test_never_splits_multibyte_characters(self):
        assert truncate_filename("é" * 100 + ".md", 51) == "é" * 24 + ".md"
        assert truncate_filename("é" * 100 + ".md", 50) == "é" * 23 + ".md"

    def test_oversized_extension_is_cut_with_stem(self):
        result = truncate_filename("a." + "x" * 200, 100)

        assert result == "a." + "x" * 98


class TestErrors:
    """Test the error hierarchy."""

    def test_codes_and_message(self):
        error = ConnectionClosedError("gone")

        assert isinstance(error, NetworkError)
        assert isinstance(error, ChatLinkError)
        assert error.code == ErrorCode.E203_CONNECTION_CLOSED
        assert str(error) == "[E203] gone"

    def test_to_dict(self):
        error = TruncatedTransferError("short", {"remaining": 3})

        assert isinstance(error, FileTransferError)
        assert error.to_dict() == {"code": "E607", "message": "short", "details": {"remaining": 3}}

    def test_io_failure_code_override(self):
        error = IOFailureError("slow", code=ErrorCode.E202_CONNECTION_TIMEOUT)

        assert error.code == ErrorCode.E202_CONNECTION_TIMEOUT
        assert IOFailureError().code == ErrorCode.E213_IO_FAILURE
