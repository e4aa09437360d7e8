"""
Fetch Jira attachments and extract log files from them.

Usage:
    # Download all attachments of one or more issues
    getlogs fetch PROJECT-123 PROJECT-456

    # Extract logs from what was downloaded before
    getlogs extract PROJECT-123

    # Both in one go
    getlogs all PROJECT-123
"""

import argparse
import logging
import sys
from pathlib import Path

from clients import JiraClient
from errors import ConfigError, GetlogsError
from extractor import LogExtractor
from fetcher import fetch_issue
from models import Config, IssueResult
from patterns import Patterns
from utils import CONFIG_FILE, load_or_create_config, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ISSUE_FAILED = 1
EXIT_FATAL = 2

COMMANDS = {
    "fetch": (True, False),  # (fetch, extract)
    "extract": (False, True),
    "all": (True, True),
}


def process_issue(
    issue_key: str,
    config: Config,
    client: JiraClient | None,
    extractor: LogExtractor | None,
) -> IssueResult:
    """Run the requested steps for one issue; errors are returned, not raised."""
    print()
    print(f"=== {issue_key} ===")

    # The key doubles as a directory name under default_path
    if issue_key in ("", ".", "..") or "/" in issue_key or "\\" in issue_key:
        print(f"[!] {issue_key}: not a valid issue key")
        return IssueResult(issue_key, False, "not a valid issue key")

    try:
        if client is not None:
            fetch_issue(client, config, issue_key)
        if extractor is not None:
            result = extractor.extract_issue(issue_key)
            if not result.ok:
                return IssueResult(
                    issue_key, False, f"{len(result.errors)} file(s) could not be extracted"
                )
    except GetlogsError as e:
        print(f"[!] {issue_key}: {e}")
        return IssueResult(issue_key, False, str(e))
    except OSError as e:
        logger.debug("Unexpected filesystem error", exc_info=True)
        print(f"[!] {issue_key}: {e}")
        return IssueResult(issue_key, False, str(e))

    return IssueResult(issue_key, True)


def run_command(command: str, issue_keys: list[str], config: Config) -> int:
    """Dispatch a verb over all issue keys and return the exit code.

    Raises:
        AuthError: If the command needs the server and no credentials are set.
    """
    do_fetch, do_extract = COMMANDS[command]
    client = JiraClient(config) if do_fetch else None
    extractor = LogExtractor(config) if do_extract else None

    results = []
    for issue_key in issue_keys:
        if not Patterns.ISSUE_KEY.match(issue_key):
            print(f"[!] Warning: '{issue_key}' does not look like an issue key (e.g. PROJECT-123)")
        results.append(process_issue(issue_key, config, client, extractor))

    failed = [r for r in results if not r.success]
    print()
    if failed:
        print(f"[!] {len(failed)} of {len(results)} issue(s) failed:")
        for r in failed:
            print(f"    - {r.issue_key}: {r.error}")
        return EXIT_ISSUE_FAILED

    print(f"[*] Done. {len(results)} issue(s) processed.")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="getlogs",
        description="Fetch Jira attachments and extract log files from them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    getlogs fetch PROJECT-123 PROJECT-456
    getlogs extract PROJECT-123
    getlogs all PROJECT-123

Configuration is read from {CONFIG_FILE} (created on first run).
        """,
    )
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="Path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")

    subparsers = parser.add_subparsers(dest="command", required=True)
    helps = {
        "fetch": "Download all attachments of the given issues",
        "extract": "Extract log files from downloaded attachments",
        "all": "Fetch, then extract",
    }
    for name, help_text in helps.items():
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("issues", nargs="+", metavar="ISSUE", help="Issue key, e.g. PROJECT-123")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_or_create_config(args.config)
    except ConfigError as e:
        print(f"[!] ERROR: {e}")
        return EXIT_FATAL

    try:
        return run_command(args.command, args.issues, config)
    except GetlogsError as e:
        # Only startup problems (no credentials, bad regex) get here
        print(f"[!] ERROR: {e}")
        return EXIT_FATAL


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
