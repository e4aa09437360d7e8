"""Centralized regex patterns and archive type detection."""

import re

from errors import ConfigError


class Patterns:
    """Regex patterns used throughout fetch and extract."""

    # Zip container: logs.zip
    ZIP = re.compile(r"\.zip$", re.IGNORECASE)

    # Tarball, optionally compressed: logs.tar, logs.tar.gz, logs.tgz, ...
    TAR = re.compile(r"\.(tar|tar\.gz|tgz|tar\.bz2|tbz2|tar\.xz|txz)$", re.IGNORECASE)

    # Single gzip-compressed file: logcat.txt.gz (checked after TAR)
    GZIP = re.compile(r"\.gz$", re.IGNORECASE)

    # Jira issue key: PROJECT-123
    ISSUE_KEY = re.compile(r"^[A-Za-z][A-Za-z0-9_]*-\d+$")

    # Scheme of the configured server URL
    HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def archive_type(name: str) -> str | None:
    """Return "zip", "tar" or "gzip" for a recognized archive name, else None."""
    if Patterns.ZIP.search(name):
        return "zip"
    if Patterns.TAR.search(name):
        return "tar"
    if Patterns.GZIP.search(name):
        return "gzip"
    return None


def compile_regex(pattern: str, field_name: str) -> re.Pattern:
    """Compile a user-supplied pattern, raising ConfigError if it is invalid."""
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid {field_name} '{pattern}': {e}") from e
