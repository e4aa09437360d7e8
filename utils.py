"""Utility functions for getlogs: config loading and filesystem helpers."""

import json
import logging
import os
from pathlib import Path, PurePosixPath

from errors import ConfigError, IoError
from models import Config
from patterns import Patterns, compile_regex

# File paths
CONFIG_DIR = Path.home() / ".getlog"
CONFIG_FILE = CONFIG_DIR / "config.json"
EXTRACT_DIR_NAME = "extracted-logs"

DEFAULT_CONFIG = {
    "default_path": str(Path.home() / "logs"),
    "jira_url": "https://your-jira-server.com",
    "proxy": None,
    "bearer_token": None,
    "user_email": None,
    "api_token": None,
    "logfile_regex": r".*\.(logcat|dlt|txt)$",
    "archive_regex": None,
}

REQUIRED_FIELDS = ["default_path", "jira_url", "logfile_regex"]
OPTIONAL_FIELDS = ["proxy", "bearer_token", "user_email", "api_token", "archive_regex"]


def setup_logging(verbose: bool = False) -> None:
    """Send diagnostic logging to stderr; only DEBUG output when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if not verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_config(path: Path = CONFIG_FILE) -> dict:
    """Load the raw config dict from JSON."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_default_config(path: Path = CONFIG_FILE) -> None:
    """Create the config directory and write a config with default values."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(DEFAULT_CONFIG, f, indent=2)
        f.write("\n")


def validate_config(config: dict) -> list[str]:
    """Validate config structure and return list of error messages.

    Returns:
        Empty list if valid, otherwise list of error messages.
    """
    errors = []

    if not isinstance(config, dict):
        return ["Top level of config.json must be an object"]

    for key in REQUIRED_FIELDS:
        value = config.get(key)
        if not value:
            errors.append(f"Missing {key}")
        elif not isinstance(value, str):
            errors.append(f"{key} must be a string")

    for key in OPTIONAL_FIELDS:
        value = config.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"{key} must be a string or null")

    jira_url = config.get("jira_url")
    if isinstance(jira_url, str) and jira_url and not Patterns.HTTP_URL.match(jira_url):
        errors.append(f"jira_url must start with http:// or https:// (got '{jira_url}')")

    for key in ("logfile_regex", "archive_regex"):
        value = config.get(key)
        if isinstance(value, str) and value:
            try:
                compile_regex(value, key)
            except ConfigError as e:
                errors.append(str(e))

    return errors


def load_or_create_config(path: Path = CONFIG_FILE) -> Config:
    """Load and validate config.json, creating a default one on first run.

    Raises:
        ConfigError: If the file was just created, is not valid JSON, or
            fails validation.
    """
    path = Path(path).expanduser()

    if not path.exists():
        try:
            write_default_config(path)
        except OSError as e:
            raise ConfigError(f"Cannot create default config at {path}: {e}") from e
        raise ConfigError(
            f"Created default config at {path}. Please update it with either "
            "`bearer_token` or `user_email` + `api_token`, then rerun."
        )

    try:
        raw = load_config(path)
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} is not valid UTF-8 JSON: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"{path} is not valid JSON! Line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    errors = validate_config(raw)
    if errors:
        details = "\n".join(f"    - {err}" for err in errors)
        raise ConfigError(f"{path} is incomplete:\n{details}")

    return Config(
        default_path=Path(os.path.expanduser(raw["default_path"])),
        jira_url=raw["jira_url"].rstrip("/"),
        logfile_regex=raw["logfile_regex"],
        proxy=raw.get("proxy") or None,
        bearer_token=raw.get("bearer_token") or None,
        user_email=raw.get("user_email") or None,
        api_token=raw.get("api_token") or None,
        archive_regex=raw.get("archive_regex") or None,
    )


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if absent."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError(f"Cannot create directory {path}: {e}", path) from e
    return path


def safe_filename(name: str) -> str:
    """Reduce a remote filename to a bare name that stays inside its directory."""
    name = name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in ("", ".", ".."):
        return "attachment"
    return name


def safe_relpath(name: str) -> PurePosixPath | None:
    """Sanitize an archive member path: no absolute paths, no '..' parts.

    Returns None if nothing usable is left.
    """
    parts = [
        part for part in name.replace("\\", "/").split("/")
        if part not in ("", ".", "..")
    ]
    if not parts:
        return None
    return PurePosixPath(*parts)
