"""
Utility functions and compiled regex patterns for the note daemon.

Contains the exception hierarchy, date helpers, path and content validation,
and the pre-compiled patterns shared by the parser.
"""

import re
from datetime import date, datetime
from pathlib import Path

from .config import DATE_FORMAT

# Pre-compiled regex patterns for performance
HEADING_PREFIX = "## "
TASK_LINE_PATTERN = re.compile(
    r'^\s*-\s*\[(?P<mark>[ xX])\]\s+\[(?P<id>T-[0-9A-Za-z_-]+)\]\s*(?P<rest>.*)$'
)
TIME_PREFIX_PATTERN = re.compile(
    r'^\s*-\s*(?P<time>[0-9]{1,2}:[0-9]{2}(?:\s?(?:am|pm))?)\s+(?P<rest>.*)$',
    re.IGNORECASE,
)
TASK_REF_PATTERN = re.compile(r'\[(T-[0-9A-Za-z_-]+)\]')

# Filename stems that carry a calendar date.
STEM_DATE_FORMATS = ("%Y-%m-%d", "%y-%m-%d")


# ============== Exceptions ==============

class NoteDaemonError(Exception):
    """Base class for errors raised by the note daemon."""
    pass


class VaultError(NoteDaemonError):
    """Raised when the vault cannot be listed, read or written."""
    pass


class PathValidationError(NoteDaemonError):
    """Raised when path validation fails."""
    pass


class ContentValidationError(NoteDaemonError):
    """Raised when content validation fails."""
    pass


class DateParseError(NoteDaemonError):
    """Raised when a date string is not in YYYY-MM-DD form."""
    pass


class NoteNotFoundError(NoteDaemonError):
    """Raised when a note id is not present in the index."""

    def __init__(self, note_id: str):
        super().__init__(f"note {note_id} not indexed")
        self.note_id = note_id


class TaskNotFoundError(NoteDaemonError):
    """Raised when a task id is not present in the index."""

    def __init__(self, task_id: str):
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class IndexConsistencyError(NoteDaemonError):
    """Raised when the index disagrees with the vault after a write."""
    pass


# ============== Helper Functions ==============

def parse_date(value: str) -> date:
    """Parse the canonical YYYY-MM-DD date form."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise DateParseError(f"invalid date '{value}'")


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def date_from_stem(stem: str) -> date | None:
    """Derive a note date from a filename stem like 2025-03-15 or 25-03-15."""
    for fmt in STEM_DATE_FORMATS:
        try:
            return datetime.strptime(stem, fmt).date()
        except ValueError:
            continue
    return None


# ============== Security Validation ==============

def validate_path_within_vault(path_str: str, vault_path: Path) -> Path:
    """Validate that a path is safely within the vault directory.

    Args:
        path_str: The vault-relative path to validate
        vault_path: The vault root path

    Returns:
        The validated absolute Path

    Raises:
        PathValidationError: If the path attempts to escape the vault
    """
    if not path_str or not path_str.strip():
        raise PathValidationError("Path cannot be empty")

    # Reject absolute paths
    if path_str.startswith("/") or (len(path_str) > 1 and path_str[1] == ":"):
        raise PathValidationError("Absolute paths are not allowed")

    full_path = (vault_path / path_str).resolve()
    vault_resolved = vault_path.resolve()

    try:
        full_path.relative_to(vault_resolved)
    except ValueError:
        raise PathValidationError(f"Path escapes vault directory: {path_str}")

    return full_path


def validate_content_size(content: str, max_size: int) -> str:
    """Validate content size.

    Raises:
        ContentValidationError: If the content exceeds max_size bytes
    """
    content_bytes = len(content.encode('utf-8'))

    if content_bytes > max_size:
        max_mb = max_size / (1024 * 1024)
        actual_mb = content_bytes / (1024 * 1024)
        raise ContentValidationError(
            f"Content size ({actual_mb:.2f}MB) exceeds maximum allowed size ({max_mb}MB)"
        )

    return content
