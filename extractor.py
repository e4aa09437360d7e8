"""Extract log files from downloaded attachments, including nested archives."""

import gzip
import io
import logging
import lzma
import shutil
import tarfile
import zipfile
import zlib
from contextlib import closing
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterator

from errors import ExtractError, IoError
from models import Config, ExtractResult
from patterns import Patterns, archive_type, compile_regex
from utils import EXTRACT_DIR_NAME, ensure_dir, safe_relpath

logger = logging.getLogger(__name__)

MAX_DEPTH = 5  # Archives nested deeper than this are left alone
CHUNK_SIZE = 64 * 1024

# Everything a broken container can raise while being read
READ_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    tarfile.TarError,
    zlib.error,
    lzma.LZMAError,
    EOFError,
    OSError,
    RuntimeError,  # encrypted zip member
    NotImplementedError,  # unsupported zip compression
)


class LogExtractor:
    """Copies matching log files and extracts matching archive members."""

    def __init__(self, config: Config):
        self.config = config
        self.logfile_re = compile_regex(config.logfile_regex, "logfile_regex")
        if config.archive_regex:
            self.archive_re = compile_regex(config.archive_regex, "archive_regex")
        else:
            self.archive_re = self.logfile_re

    def extract_issue(self, issue_key: str) -> ExtractResult:
        """Process every downloaded file of an issue into its extracted-logs dir."""
        src_dir = self.config.issue_dir(issue_key)
        if not src_dir.is_dir():
            raise IoError(f"{src_dir} does not exist. Run fetch first.", src_dir)

        out_dir = ensure_dir(src_dir / EXTRACT_DIR_NAME)
        print(f"[*] Extracting logs into {out_dir}...")

        result = ExtractResult()
        for entry in sorted(src_dir.iterdir()):
            if entry.name == EXTRACT_DIR_NAME or not entry.is_file():
                continue
            if entry.name.endswith(".part"):
                continue

            try:
                if archive_type(entry.name):
                    written = self.extract_archive(entry, out_dir)
                    result.extracted.extend(written)
                    print(f"    [+] {entry.name}: {len(written)} file(s)")
                elif self.logfile_re.search(entry.name):
                    result.copied.append(self.copy_logfile(entry, out_dir))
                    print(f"    [+] {entry.name}")
                else:
                    logger.debug("Skipping %s (no match)", entry.name)
            except (ExtractError, IoError) as e:
                result.errors.append((entry, str(e)))
                print(f"    [!] {e}")

        print(f"    Extracted {result.total} file(s)")
        return result

    def copy_logfile(self, path: Path, out_dir: Path) -> Path:
        dest = out_dir / path.name
        try:
            shutil.copyfile(path, dest)
        except OSError as e:
            raise IoError(f"Cannot copy {path.name}: {e}", path) from e
        return dest

    def extract_archive(self, path: Path, out_dir: Path) -> list[Path]:
        """Extract matching members of an archive under out_dir/<archive name>/.

        Raises:
            ExtractError: If the archive (or one nested in it) is corrupt.
        """
        kind = archive_type(path.name)
        try:
            with open(path, "rb") as f:
                return self._walk(kind, f, path.name, out_dir / path.name, depth=0)
        except READ_ERRORS as e:
            raise ExtractError(f"Cannot read archive {path.name}: {e}", path) from e

    def _walk(self, kind: str, fileobj: BinaryIO, name: str, namespace: Path, depth: int) -> list[Path]:
        written = []
        with closing(self._members(kind, fileobj, name)) as members:
            for inner_name, member in members:
                with member:
                    written.extend(self._handle_member(inner_name, member, namespace, depth))
        return written

    def _members(self, kind: str, fileobj: BinaryIO, name: str) -> Iterator[tuple[str, BinaryIO]]:
        """Yield (inner path, readable file) for every regular file in a container."""
        if kind == "zip":
            with zipfile.ZipFile(fileobj) as zf:
                for info in zf.infolist():
                    if not info.is_dir():
                        yield info.filename, zf.open(info)
        elif kind == "tar":
            with tarfile.open(fileobj=fileobj, mode="r:*") as tar:
                for member in tar:
                    if member.isfile():
                        yield member.name, tar.extractfile(member)
        else:
            inner_name = Patterns.GZIP.sub("", PurePosixPath(name).name) or "data"
            yield inner_name, gzip.GzipFile(fileobj=fileobj, mode="rb")

    def _handle_member(self, inner_name: str, member: BinaryIO, namespace: Path, depth: int) -> list[Path]:
        rel = safe_relpath(inner_name)
        if rel is None:
            return []

        if self.archive_re.search(inner_name):
            dest = namespace / rel
            self._write_member(member, dest)
            logger.debug("Extracted %s -> %s", inner_name, dest)
            return [dest]

        kind = archive_type(rel.name)
        if kind and depth < MAX_DEPTH:
            logger.debug("Opening nested archive %s", inner_name)
            data = io.BytesIO(member.read())
            return self._walk(kind, data, rel.name, namespace / rel, depth + 1)

        logger.debug("Skipping member %s (no match)", inner_name)
        return []

    def _write_member(self, member: BinaryIO, dest: Path) -> None:
        ensure_dir(dest.parent)
        try:
            out = open(dest, "wb")
        except OSError as e:
            raise IoError(f"Cannot write {dest}: {e}", dest) from e

        with out:
            try:
                while True:
                    chunk = member.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    try:
                        out.write(chunk)
                    except OSError as e:
                        raise IoError(f"Cannot write {dest}: {e}", dest) from e
            except Exception:
                out.close()
                dest.unlink(missing_ok=True)
                raise


def extract_logs(config: Config, issue_key: str) -> ExtractResult:
    """Extract logs for one issue from <default_path>/<issue_key>."""
    return LogExtractor(config).extract_issue(issue_key)
