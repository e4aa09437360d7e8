"""End-to-end tests for the getlogs command line."""

import io
import json
import zipfile

import pytest

import getlogs
from conftest import BASE_URL, FakeResponse, issue_url
from utils import DEFAULT_CONFIG


def zip_bytes(members: dict) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def logs_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def config_file(tmp_path, logs_dir):
    path = tmp_path / "config.json"
    data = dict(
        DEFAULT_CONFIG,
        default_path=str(logs_dir),
        jira_url=BASE_URL,
        bearer_token="tok",
        logfile_regex=r"\.log$",
    )
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def run(config_file, *args) -> int:
    return getlogs.main(["--config", str(config_file), *args])


class TestCommands:

    def test_all_fetches_and_extracts(self, config_file, logs_dir, server):
        server.add_issue("PROJ-1", {
            "a.log": b"plain",
            "a.txt": b"ignored",
            "bundle.zip": zip_bytes({"inner.log": b"inner"}),
        })

        assert run(config_file, "all", "PROJ-1") == getlogs.EXIT_OK

        out = logs_dir / "PROJ-1" / "extracted-logs"
        assert (out / "a.log").read_bytes() == b"plain"
        assert (out / "bundle.zip" / "inner.log").read_bytes() == b"inner"
        assert not (out / "a.txt").exists()

    def test_fetch_does_not_extract(self, config_file, logs_dir, server):
        server.add_issue("PROJ-1", {"a.log": b"plain"})

        assert run(config_file, "fetch", "PROJ-1") == getlogs.EXIT_OK

        assert (logs_dir / "PROJ-1" / "a.log").exists()
        assert not (logs_dir / "PROJ-1" / "extracted-logs").exists()

    def test_extract_works_offline(self, config_file, logs_dir, server):
        issue_dir = logs_dir / "PROJ-2"
        issue_dir.mkdir(parents=True)
        (issue_dir / "x.log").write_text("x")

        assert run(config_file, "extract", "PROJ-2") == getlogs.EXIT_OK

        assert (issue_dir / "extracted-logs" / "x.log").exists()
        assert server.calls == []

    def test_failed_issue_does_not_stop_others(self, config_file, logs_dir, server, capsys):
        server.routes[issue_url("GONE-1")] = FakeResponse(status_code=404)
        server.add_issue("PROJ-3", {"ok.log": b"ok"})

        code = run(config_file, "all", "GONE-1", "PROJ-3")

        assert code == getlogs.EXIT_ISSUE_FAILED
        assert (logs_dir / "PROJ-3" / "extracted-logs" / "ok.log").exists()
        out = capsys.readouterr().out
        assert "GONE-1" in out
        assert "1 of 2 issue(s) failed" in out

    def test_corrupt_archive_marks_issue_failed(self, config_file, logs_dir, server):
        server.add_issue("PROJ-4", {"broken.zip": b"garbage", "good.log": b"good"})

        assert run(config_file, "all", "PROJ-4") == getlogs.EXIT_ISSUE_FAILED

        assert (logs_dir / "PROJ-4" / "extracted-logs" / "good.log").exists()

    def test_extract_without_fetch_fails(self, config_file):
        assert run(config_file, "extract", "PROJ-5") == getlogs.EXIT_ISSUE_FAILED

    def test_unsafe_issue_key_is_rejected(self, config_file):
        assert run(config_file, "extract", "../escape") == getlogs.EXIT_ISSUE_FAILED


class TestStartup:

    def test_first_run_creates_config(self, tmp_path, capsys):
        path = tmp_path / "new" / "config.json"

        assert getlogs.main(["--config", str(path), "fetch", "PROJ-1"]) == getlogs.EXIT_FATAL

        assert path.exists()
        assert "Created default config" in capsys.readouterr().out

    def test_config_not_utf8_is_fatal(self, tmp_path, capsys):
        path = tmp_path / "config.json"
        path.write_bytes(b"\xff\xfe{}")

        assert getlogs.main(["--config", str(path), "fetch", "PROJ-1"]) == getlogs.EXIT_FATAL
        assert "not valid UTF-8" in capsys.readouterr().out

    def test_no_credentials_is_fatal_for_fetch(self, config_file, server, capsys):
        data = json.loads(config_file.read_text(encoding="utf-8"))
        data["bearer_token"] = None
        config_file.write_text(json.dumps(data), encoding="utf-8")

        assert run(config_file, "fetch", "PROJ-1") == getlogs.EXIT_FATAL
        assert server.calls == []
        assert "No authentication configured" in capsys.readouterr().out

    def test_no_credentials_is_fine_for_extract(self, config_file, logs_dir):
        data = json.loads(config_file.read_text(encoding="utf-8"))
        data["bearer_token"] = None
        config_file.write_text(json.dumps(data), encoding="utf-8")
        (logs_dir / "PROJ-1").mkdir(parents=True)

        assert run(config_file, "extract", "PROJ-1") == getlogs.EXIT_OK

    def test_issue_key_required(self, config_file):
        with pytest.raises(SystemExit) as exc_info:
            run(config_file, "fetch")
        assert exc_info.value.code == 2

    def test_unknown_command(self, config_file):
        with pytest.raises(SystemExit):
            run(config_file, "convert", "PROJ-1")
