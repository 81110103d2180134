from __future__ import annotations

from typing import TYPE_CHECKING

from repo_to_text.config import ALLOWED_EXT_SET, IGNORE_DIR_PREFIXES, MAX_FILE_BYTES, SAFE_SEPARATOR

if TYPE_CHECKING:
    from collections.abc import Sequence


def to_posix(path: str) -> str:
    """Replace Windows separators with forward slashes.

    Args:
        path (str): the path to normalize

    Returns:
        str: the path with POSIX separators
    """
    return path.replace("\\", "/")


def should_ignore_path(rel_path: str) -> bool:
    """Check if a relative path lives under an ignored directory.

    Matching is a case-sensitive prefix match against `IGNORE_DIR_PREFIXES`,
    after separator normalization. A prefix appearing deeper in the path
    (e.g. `src/node_modules/x.js`) does not match.

    Args:
        rel_path (str): the archive-relative path to check

    Returns:
        bool: True if the path should be skipped, False otherwise
    """
    normalized = to_posix(rel_path)
    return any(normalized.startswith(prefix) for prefix in IGNORE_DIR_PREFIXES)


def file_extension(rel_path: str) -> str:
    """Return the lowercase substring after the final '.', or "" if there is none."""
    _, dot, ext = rel_path.rpartition(".")
    if not dot:
        return ""
    return ext.lower()


def looks_like_text(rel_path: str) -> bool:
    """Heuristic check if a path is a text-like source file, by extension.

    Args:
        rel_path (str): the archive-relative path to check

    Returns:
        bool: True if the extension is in `ALLOWED_EXTS` (case-insensitive),
            False for unlisted extensions and for paths without one
    """
    ext = file_extension(rel_path)
    if not ext:
        return False
    return ext in ALLOWED_EXT_SET


def is_within_size_limit(byte_length: int, max_bytes: int = MAX_FILE_BYTES) -> bool:
    """Check a decoded file's UTF-8 byte length against the size cap (inclusive)."""
    return byte_length <= max_bytes


def utf8_length(text: str) -> int:
    """Return the UTF-8 encoded byte length of `text`."""
    return len(text.encode("utf-8"))


def common_root_prefix(names: Sequence[str]) -> str:
    """Detect the wrapping folder a hosting provider puts around archive contents.

    Provider archives usually hold everything under one synthetic folder such
    as `widgets-main/`. The first name's leading segment is taken as the
    candidate and kept only if every name starts with it.

    Args:
        names (Sequence[str]): the non-directory entry names of the archive

    Returns:
        str: the shared prefix including its trailing slash, or "" when the
            entries do not share one
    """
    if not names:
        return ""
    first = to_posix(names[0])
    slash = first.find("/")
    if slash <= 0:
        return ""
    prefix = first[: slash + 1]
    if all(to_posix(n).startswith(prefix) for n in names):
        return prefix
    return ""


def strip_root_prefix(name: str, prefix: str) -> str:
    """Return `name` relative to the detected wrapping prefix.

    Args:
        name (str): the archive entry name
        prefix (str): the prefix returned by `common_root_prefix`

    Returns:
        str: the slash-normalized relative path, possibly empty
    """
    full = to_posix(name)
    if prefix and full.startswith(prefix):
        return full[len(prefix) :]
    return full


def flatten_path(rel_path: str) -> str:
    """Turn a relative path into a flat `.txt` filename for the separated export.

    Example:
        `src/app/main.ts` becomes `src__app__main.ts.txt`.

    Args:
        rel_path (str): the relative path to flatten

    Returns:
        str: the flattened filename
    """
    return to_posix(rel_path).replace("/", SAFE_SEPARATOR) + ".txt"
