"""Shared fakes for tests that would otherwise talk to a Jira server."""

import pytest

import clients

BASE_URL = "https://jira.example.com"


class FakeResponse:
    """Just enough of requests.Response for the client."""

    def __init__(self, status_code=200, json_data=None, content=b"", reason="OK", chunks=None, headers=None):
        self.status_code = status_code
        self.reason = reason
        self.url = BASE_URL
        self._json = json_data
        self._chunks = chunks if chunks is not None else [content]
        if headers is None:
            length = sum(len(c) for c in self._chunks if isinstance(c, bytes))
            headers = {"Content-Length": str(length)}
        self.headers = headers
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON")
        return self._json

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def close(self):
        self.closed = True


class FakeServer:
    """Records requests and answers from a URL -> response table."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.routes[url]
        if isinstance(response, Exception):
            raise response
        return response

    def add_issue(self, issue_key: str, files: dict) -> None:
        """Serve an issue whose attachments are the given {filename: bytes}."""
        attachments = [attachment_json(str(i), name) for i, name in enumerate(files, start=100)]
        self.routes[issue_url(issue_key)] = FakeResponse(json_data=issue_json(*attachments))
        for att in attachments:
            self.routes[att["content"]] = FakeResponse(content=files[att["filename"]])


def issue_url(issue_key: str) -> str:
    return f"{BASE_URL}/rest/api/2/issue/{issue_key}"


def issue_json(*attachments):
    return {"fields": {"attachment": list(attachments)}}


def attachment_json(att_id, filename, size=None):
    return {
        "id": att_id,
        "filename": filename,
        "content": f"{BASE_URL}/secure/attachment/{att_id}/{filename}",
        "size": size,
    }


@pytest.fixture
def server(monkeypatch):
    fake = FakeServer({})
    monkeypatch.setattr(clients.requests, "get", fake.get)
    return fake
