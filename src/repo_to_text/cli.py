"""
repo_to_text: Export a hosted repository as LLM-friendly text.

Overview
--------
Given a GitHub, GitLab or Bitbucket repository URL (or a direct `.zip` link),
this tool downloads the repository archive, keeps the text-like source files
and writes a zip containing:

1) **`<owner>-<repo>-<branch>-combined.txt`**: every kept file, each wrapped in
   `----- BEGIN FILE: <path> -----` / `----- END FILE: <path> -----` markers.
2) **`manifest.json`**: what was exported and with which filters.
3) **`separated/`**: one `.txt` per kept file (disable with `--no-separated`).

Without `--ref`, the branches `main`, `master` and `default` are tried in
turn. A token (`--token` or `GITHUB_TOKEN`) enables private GitHub repos.

Usage
-----
Run `repo-to-text --help` for full options. Common examples:
    - Public repository, default branch:
        repo-to-text https://github.com/acme/widgets --output widgets.zip

    - Specific branch, combined file only:
        repo-to-text https://gitlab.com/acme/widgets --ref dev --no-separated

    - Private repository, logging to a file:
        GITHUB_TOKEN=... repo-to-text https://github.com/acme/private --log-file export.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from repo_to_text import __version__
from repo_to_text.config import OUTPUT_FILENAME
from repo_to_text.logging import add_log_file, logger, remove_log_file
from repo_to_text.service import handle_convert_request
from repo_to_text.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command-line arguments into `Settings`.

    Args:
        argv (Sequence[str] | None): arguments without the program name; None reads `sys.argv`

    Returns:
        Settings: the run configuration
    """
    p = argparse.ArgumentParser(
        prog="repo-to-text",
        description="Export a hosted repository as combined and per-file text (zip).",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("repo_url", type=str, help="Repository URL or direct .zip link.")
    p.add_argument("--ref", type=str, default=None, help="Branch, tag or commit.")
    p.add_argument(
        "--token",
        type=str,
        default=None,
        help="Access token for private repos (default: $GITHUB_TOKEN).",
    )
    p.add_argument(
        "--no-separated",
        dest="include_separated",
        action="store_false",
        help="Do not emit the separated/ per-file copies.",
    )
    p.add_argument(
        "--output",
        type=str,
        default=OUTPUT_FILENAME,
        help="Output zip path.",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds.",
    )
    args = p.parse_args(argv)
    values = {k: v for k, v in vars(args).items() if not (k == "token" and v is None)}
    return Settings(**values)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    handler = add_log_file(settings.log_file) if settings.log_file else None
    try:
        return run(settings)
    finally:
        if handler is not None:
            remove_log_file(handler)


def run(settings: Settings) -> int:
    """Convert the repository described by `settings` and write the zip.

    Args:
        settings (Settings): the run configuration

    Returns:
        int: the process exit code, 0 on success and 1 on failure
    """
    payload = {
        "repoUrl": settings.repo_url,
        "ref": settings.ref,
        "githubToken": settings.token.get_secret_value() if settings.token else None,
        "includeSeparated": settings.include_separated,
    }
    response = handle_convert_request(payload, timeout=settings.timeout)
    if not response.ok or response.export is None:
        print(response.error_payload().get("error", "conversion failed"), file=sys.stderr)
        return 1

    out_path = Path(settings.output)
    if out_path.parent != Path():
        out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(response.body)
    logger.info("wrote export", output=str(out_path), size=len(response.body))

    result = response.export.result
    print(f"Wrote {out_path} files={result.included_files} combined={result.combined_filename}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
