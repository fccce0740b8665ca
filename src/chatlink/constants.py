"""
ChatLink - Global Constants and Configuration Values

This module defines all constants used throughout the ChatLink package.
All magic numbers and configuration defaults are centralized here.

Author: chatlink contributors
Version: 1.0.0
"""

# Version Information
VERSION = "1.0.0"
APP_NAME = "ChatLink"

# Network Constants
DEFAULT_SERVER_PORT = 5000
DEFAULT_HOST = "0.0.0.0"
LOCALHOST = "127.0.0.1"

# Timeouts (seconds, 0 disables)
CONNECT_TIMEOUT = 10.0
READ_TIMEOUT = 0.0
WRITE_TIMEOUT = 0.0

# Wire format
FRAME_TAG_SIZE = 1
LENGTH_PREFIX_SIZE = 4
FILE_SIZE_FIELD_SIZE = 8
MAX_FILE_SIZE_FIELD = 2**64 - 1

# Frame Limits
MAX_TEXT_LENGTH = 1024 * 1024  # 1 MB of UTF-8
MAX_NAME_LENGTH = 4096
MAX_FILE_SIZE = 0  # 0 = unbounded

# File Transfer Constants
FILE_CHUNK_SIZE = 64 * 1024  # 64 KB chunks

# File Paths
RECEIVED_DIR = "received_files"
RECEIVED_PREFIX = "received"
MAX_FILENAME_BYTES = 255  # NAME_MAX on common filesystems
CONFIG_FILENAME = "chatlink.toml"
ENV_PREFIX = "CHATLINK"

# Logging Configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
