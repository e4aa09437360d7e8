"""Data models for getlogs."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    """Settings loaded from config.json."""

    default_path: Path
    jira_url: str
    logfile_regex: str
    proxy: str | None = None
    bearer_token: str | None = None
    user_email: str | None = None
    api_token: str | None = None
    archive_regex: str | None = None  # Falls back to logfile_regex

    def has_credentials(self) -> bool:
        """True if a bearer token or an email + API token pair is set."""
        return bool(self.bearer_token) or bool(self.user_email and self.api_token)

    def issue_dir(self, issue_key: str) -> Path:
        return self.default_path / issue_key


@dataclass
class Attachment:
    """An attachment reference from the issue metadata."""

    id: str
    filename: str
    content_url: str
    size: int | None = None

    @classmethod
    def from_json(cls, data: dict) -> "Attachment | None":
        """Build from a Jira attachment object, None if it is unusable."""
        if not isinstance(data, dict):
            return None
        filename = data.get("filename")
        content_url = data.get("content")
        if not isinstance(filename, str) or not isinstance(content_url, str):
            return None
        if not filename or not content_url:
            return None
        return cls(
            id=str(data.get("id", "")),
            filename=filename,
            content_url=content_url,
            size=data.get("size"),
        )


@dataclass
class ExtractResult:
    """Outcome of extracting logs for one issue."""

    copied: list[Path] = field(default_factory=list)
    extracted: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def total(self) -> int:
        return len(self.copied) + len(self.extracted)


@dataclass
class IssueResult:
    """Outcome of processing one issue key."""

    issue_key: str
    success: bool
    error: str | None = None
