"""Utility functions for treesync."""

import posixpath
from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Constants for FTP replies
# =============================================================================

# Reply code for a successful MDTM (file status) command
MDTM_OK: str = "213"

# Reply codes for "command not implemented" (501 is sent by servers that
# reject the MLSD command or its arguments outright)
NOT_IMPLEMENTED_CODES: tuple[str, ...] = ("500", "501", "502", "504")


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_ftp_timestamp(value: Optional[str]) -> Optional[float]:
    """Parse an FTP time value (RFC 3659) into a Unix timestamp.

    MDTM replies and MLSD ``modify`` facts use ``YYYYMMDDHHMMSS`` in UTC,
    optionally followed by fractional seconds.

    Args:
        value: Time value such as "20171024143300" or "20171024143300.250"

    Returns:
        Unix timestamp (UTC) or None if the value cannot be parsed

    Examples:
        >>> parse_ftp_timestamp("19700101000100")
        60.0
        >>> parse_ftp_timestamp("19700101000100.5")
        60.5
        >>> parse_ftp_timestamp("garbage") is None
        True
    """
    if not value:
        return None

    value = value.strip()
    whole, _, fraction = value.partition(".")
    if len(whole) != 14 or not whole.isdigit():
        return None
    if fraction and not fraction.isdigit():
        return None

    try:
        dt = datetime.strptime(whole, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None

    timestamp = dt.timestamp()
    if fraction:
        timestamp += float(f"0.{fraction}")
    return timestamp


def parse_mdtm_response(response: Optional[str]) -> Optional[float]:
    """Parse a full MDTM reply line such as "213 20171024143300".

    Args:
        response: Reply line returned by the server

    Returns:
        Unix timestamp or None if the reply is not a successful MDTM reply
    """
    if not response:
        return None
    code, _, value = response.strip().partition(" ")
    if code != MDTM_OK:
        return None
    return parse_ftp_timestamp(value)


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format a transferred byte count in human-readable form.

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Path utilities
# =============================================================================


def normalize_remote_path(path: str) -> str:
    """Normalize a remote path to slash-separated form without trailing slash.

    Examples:
        >>> normalize_remote_path("/backup/docs/")
        '/backup/docs'
        >>> normalize_remote_path("backup//docs")
        'backup/docs'
        >>> normalize_remote_path("/")
        '/'
    """
    path = path.replace("\\", "/")
    if not path:
        return path
    normalized = posixpath.normpath(path)
    # posixpath keeps a leading "//" as-is
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def join_remote_path(parent: str, name: str) -> str:
    """Join a remote directory path and an entry name.

    Examples:
        >>> join_remote_path("/backup", "a.txt")
        '/backup/a.txt'
        >>> join_remote_path("/", "a.txt")
        '/a.txt'
    """
    if parent.endswith("/"):
        return f"{parent}{name}"
    return f"{parent}/{name}"
