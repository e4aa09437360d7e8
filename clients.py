"""API client for Jira issue attachments."""

import logging
import os
from functools import partial
from pathlib import Path
from typing import Callable

import requests

from errors import AuthError, IoError, NetworkError, NotFoundError
from models import Attachment, Config
from utils import ensure_dir, safe_filename

logger = logging.getLogger(__name__)

METADATA_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 120
CHUNK_SIZE = 8192


def _handle_api_error(response: requests.Response, service: str) -> str:
    """Convert HTTP errors to user-friendly messages."""
    status = response.status_code

    messages = {
        401: f"{service}: Credentials rejected. Check bearer_token or user_email + api_token!",
        403: f"{service}: No permission to read this issue or its attachments.",
        404: f"{service}: Attachment is gone or was never visible to you.",
        429: f"{service}: Rate limited. Wait a moment and rerun for the remaining issues.",
        500: f"{service}: Server error while serving {response.url}.",
        502: f"{service}: Bad gateway. Check the proxy setting in config.json.",
        503: f"{service}: Service unavailable (maintenance?). Try again later.",
    }

    return messages.get(status, f"{service}: HTTP {status} - {response.reason}")


def _raise_for_status(response: requests.Response) -> None:
    if response.ok:
        return
    message = _handle_api_error(response, "Jira")
    if response.status_code in (401, 403):
        raise AuthError(message, response.status_code)
    raise NetworkError(message, response.status_code)


def _content_length(response: requests.Response) -> int | None:
    value = response.headers.get("Content-Length")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def unique_name(name: str, attachment_id: str, used: set) -> str:
    """Return name, or an "<id>_"-prefixed variant, that is not in used."""
    candidate = name
    counter = 1
    while candidate in used:
        prefix = attachment_id if counter == 1 else f"{attachment_id}-{counter}"
        candidate = f"{prefix}_{name}"
        counter += 1
    return candidate


class JiraClient:
    """Client for the Jira REST API, limited to what attachment download needs."""

    def __init__(self, config: Config):
        if not config.has_credentials():
            raise AuthError(
                "No authentication configured: set either bearer_token or "
                "user_email + api_token in config.json"
            )

        self.base_url = config.jira_url
        self.default_path = config.default_path
        self.headers = {}
        self.auth = None
        if config.bearer_token:
            self.headers["Authorization"] = f"Bearer {config.bearer_token}"
        else:
            self.auth = (config.user_email, config.api_token)

        self.proxies = None
        if config.proxy:
            self.proxies = {"http": config.proxy, "https": config.proxy}

    def _get(self, url: str, timeout: int, **kwargs) -> requests.Response:
        """Authenticated GET; connection problems become NetworkError."""
        headers = dict(self.headers)
        headers.update(kwargs.pop("headers", {}))
        logger.debug("GET %s", url)
        try:
            return requests.get(
                url,
                headers=headers,
                auth=self.auth,
                proxies=self.proxies,
                timeout=timeout,
                **kwargs,
            )
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Jira: Cannot connect to {self.base_url}. Check your network!") from e
        except requests.exceptions.Timeout as e:
            raise NetworkError("Jira: Connection timed out. The server may be slow.") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Jira: Request failed: {e}") from e

    def get_attachments(self, issue_key: str) -> list[Attachment]:
        """Fetch the attachment list of an issue."""
        r = self._get(
            f"{self.base_url}/rest/api/2/issue/{issue_key}",
            timeout=METADATA_TIMEOUT,
            headers={"Accept": "application/json"},
            params={"fields": "attachment"},
        )
        if r.status_code == 404:
            raise NotFoundError(f"Jira: Issue {issue_key} does not exist or is not visible.", 404)
        _raise_for_status(r)

        try:
            data = r.json()
        except ValueError as e:
            raise NetworkError(f"Jira: Unexpected response for {issue_key} (not JSON).", r.status_code) from e
        if not isinstance(data, dict):
            raise NetworkError(f"Jira: Unexpected response for {issue_key} (not an issue object).", r.status_code)

        fields = data.get("fields")
        raw_attachments = fields.get("attachment") if isinstance(fields, dict) else None
        if not isinstance(raw_attachments, list):
            raw_attachments = []
        attachments = []
        for raw in raw_attachments:
            attachment = Attachment.from_json(raw)
            if attachment is None:
                logger.debug("Skipping attachment without filename or content URL: %s", raw)
                continue
            attachments.append(attachment)
        return attachments

    def download_attachment(
        self,
        attachment: Attachment,
        dest: Path,
        on_chunk: Callable[[int, int | None], None] | None = None,
    ) -> int:
        """Stream an attachment to dest and return the number of bytes written.

        Data goes to "<dest>.part" first and is renamed once complete.
        on_chunk(chunk_size, total) is called per chunk; total comes from
        Content-Length and is None when the server does not send it.
        """
        r = self._get(attachment.content_url, timeout=DOWNLOAD_TIMEOUT, stream=True)
        part = dest.with_name(dest.name + ".part")
        written = 0
        try:
            _raise_for_status(r)
            total = _content_length(r)
            with open(part, "wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
                        if on_chunk:
                            on_chunk(len(chunk), total)
            os.replace(part, dest)
        except requests.exceptions.RequestException as e:
            part.unlink(missing_ok=True)
            raise NetworkError(f"Jira: Download of {attachment.filename} interrupted: {e}") from e
        except OSError as e:
            part.unlink(missing_ok=True)
            raise IoError(f"Cannot write {dest}: {e}", dest) from e
        finally:
            r.close()
        return written

    def list_and_download_attachments(
        self,
        issue_key: str,
        dest_dir: Path | None = None,
        on_download: Callable[[Attachment, Path, int], None] | None = None,
        on_chunk: Callable[[Attachment, int, int | None], None] | None = None,
    ) -> list[Path]:
        """Download every attachment of an issue into dest_dir, one at a time.

        Args:
            issue_key: Jira issue key, e.g. PROJECT-123
            dest_dir: Directory to write the files into (default: <default_path>/<issue_key>)
            on_download: Optional callback after each file (attachment, path, size)
            on_chunk: Optional callback per received chunk (attachment, chunk size, total)

        Returns:
            Paths of the downloaded files, one per attachment
        """
        dest_dir = ensure_dir(dest_dir or self.default_path / issue_key)
        paths = []
        used_names = set()
        for attachment in self.get_attachments(issue_key):
            name = unique_name(safe_filename(attachment.filename), attachment.id, used_names)
            used_names.add(name)

            dest = dest_dir / name
            chunk_callback = partial(on_chunk, attachment) if on_chunk else None
            size = self.download_attachment(attachment, dest, on_chunk=chunk_callback)
            paths.append(dest)
            if on_download:
                on_download(attachment, dest, size)
        return paths
