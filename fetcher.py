"""Download all attachments of an issue into its output directory."""

from pathlib import Path

from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

from clients import JiraClient
from models import Attachment, Config
from utils import ensure_dir


def format_size(size: int) -> str:
    """Human-readable byte count: 512 B, 1.5 KB, 12.0 MB."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{size} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


class DownloadProgress:
    """Byte-level progress bar per attachment, cleared when the file is done."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self.tasks = {}

    def on_chunk(self, attachment: Attachment, size: int, total: int | None) -> None:
        task = self.tasks.get(attachment.content_url)
        if task is None:
            task = self.progress.add_task(escape(attachment.filename), total=total)
            self.tasks[attachment.content_url] = task
        self.progress.advance(task, size)

    def on_download(self, attachment: Attachment, path: Path, size: int) -> None:
        task = self.tasks.pop(attachment.content_url, None)
        if task is not None:
            self.progress.remove_task(task)
        print(f"    [+] {path.name} ({format_size(size)})")


def fetch_issue(client: JiraClient, config: Config, issue_key: str) -> list[Path]:
    """Create <default_path>/<issue_key> and download every attachment into it."""
    dest_dir = ensure_dir(config.issue_dir(issue_key))

    print(f"[*] Fetching attachments into {dest_dir}...")
    with Progress(
        SpinnerColumn(),
        TextColumn("    [progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TimeRemainingColumn(),
        transient=True,
    ) as progress:
        display = DownloadProgress(progress)
        paths = client.list_and_download_attachments(
            issue_key,
            dest_dir,
            on_download=display.on_download,
            on_chunk=display.on_chunk,
        )

    if paths:
        print(f"    Downloaded {len(paths)} attachment(s)")
    else:
        print("    No attachments found")
    return paths
