from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from repo_to_text.config import (
    BEGIN_MARKER,
    END_MARKER,
    MANIFEST_FILENAME,
    MAX_FILE_BYTES,
    SEPARATED_DIR,
    ExportManifest,
    FilterSnapshot,
    RepoInfo,
    RepositoryReference,
    SourceEntry,
)
from repo_to_text.file_manipulation import (
    common_root_prefix,
    flatten_path,
    is_within_size_limit,
    looks_like_text,
    should_ignore_path,
    strip_root_prefix,
    utf8_length,
)
from repo_to_text.logging import logger
from repo_to_text.url_resolution import extract_repo_info

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_to_text.archive import ArchiveSink, ArchiveSource


def file_block(rel_path: str, content: str) -> str:
    """Wrap one file's content in BEGIN/END markers, dropping NUL characters.

    Args:
        rel_path (str): the file's path relative to the repository root
        content (str): the decoded file content

    Returns:
        str: the delimited block, starting and ending with a newline
    """
    body = content.replace("\x00", "")
    begin = BEGIN_MARKER.format(path=rel_path)
    end = END_MARKER.format(path=rel_path)
    return f"\n{begin}\n{body}\n{end}\n"


@dataclass(frozen=True)
class NormalizedEntry:
    """A file entry paired with its path relative to the repository root."""

    entry: SourceEntry
    rel_path: str


@dataclass
class ExportResult:
    """Everything one export produces, before it is written to an archive."""

    repo_info: RepoInfo
    combined_text: str
    manifest: ExportManifest
    separated: dict[str, str] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def included_files(self) -> int:
        return self.manifest.included_files

    @property
    def combined_filename(self) -> str:
        return self.manifest.combined_filename


class ExportBuilder:
    """Turn the entries of a fetched archive into the combined/separated text export.

    Only entries that are outside ignored directories, have an allowed
    extension and fit the byte cap contribute; each path contributes once.
    """

    def __init__(self, *, include_separated: bool = True, max_file_bytes: int = MAX_FILE_BYTES) -> None:
        self.include_separated = include_separated
        self.max_file_bytes = max_file_bytes

    def normalize(self, entries: Sequence[SourceEntry]) -> list[NormalizedEntry]:
        """Strip the provider's wrapping folder from every file entry.

        Directory entries are dropped, as are entries whose path is empty
        once the prefix is removed.

        Args:
            entries (Sequence[SourceEntry]): all entries of the source archive

        Returns:
            list[NormalizedEntry]: file entries with repository-relative paths, in archive order
        """
        files = [e for e in entries if not e.is_directory]
        prefix = common_root_prefix([e.path for e in files])
        if prefix:
            logger.info("stripping archive root prefix", prefix=prefix)
        out: list[NormalizedEntry] = []
        for entry in files:
            rel = strip_root_prefix(entry.path, prefix)
            if not rel:
                continue
            out.append(NormalizedEntry(entry=entry, rel_path=rel))
        return out

    def skip_reason(self, rel_path: str) -> str | None:
        """Return why a path is excluded before reading it, or None to read it."""
        if should_ignore_path(rel_path):
            return "ignored directory"
        if not looks_like_text(rel_path):
            return "extension not allowed"
        return None

    def build(self, reference: RepositoryReference, source: ArchiveSource) -> ExportResult:
        """Run normalization and filtering over `source` and assemble the export."""
        return self.accumulate(reference, source, self.normalize(source.list_entries()))

    def accumulate(
        self,
        reference: RepositoryReference,
        source: ArchiveSource,
        normalized: Sequence[NormalizedEntry],
    ) -> ExportResult:
        """Filter normalized entries and accumulate the combined and separated text.

        Args:
            reference (RepositoryReference): the repository the archive came from
            source (ArchiveSource): the archive to read entry contents from
            normalized (Sequence[NormalizedEntry]): output of `normalize`

        Returns:
            ExportResult: the combined text, separated copies and manifest
        """
        combined = io.StringIO()
        separated: dict[str, str] = {}
        skipped: dict[str, str] = {}
        seen: set[str] = set()
        included = 0

        for item in normalized:
            rel = item.rel_path
            if rel in seen:
                skipped.setdefault(rel, "duplicate entry")
                continue
            seen.add(rel)

            reason = self.skip_reason(rel)
            if reason is None and item.entry.size > self.max_file_bytes:
                # decoded text is never shorter than the stored bytes
                reason = "too large"
            if reason is None:
                content = source.read_entry_text(item.entry)
                if not is_within_size_limit(utf8_length(content), self.max_file_bytes):
                    reason = "too large"
            if reason is not None:
                skipped[rel] = reason
                logger.debug("skipping entry", path=rel, reason=reason)
                continue

            combined.write(file_block(rel, content))
            if self.include_separated:
                separated[f"{SEPARATED_DIR}/{flatten_path(rel)}"] = content
            included += 1

        repo_info = extract_repo_info(reference.url, reference.ref)
        manifest = ExportManifest(
            repo_url=reference.url,
            ref=reference.ref,
            included_files=included,
            include_separated=self.include_separated,
            combined_filename=repo_info.combined_filename,
            filters=FilterSnapshot(max_file_bytes=self.max_file_bytes),
        )
        logger.info("export assembled", included_files=included, skipped_files=len(skipped))
        return ExportResult(
            repo_info=repo_info,
            combined_text=combined.getvalue().lstrip(),
            manifest=manifest,
            separated=separated,
            skipped=skipped,
        )

    def package(self, result: ExportResult, sink: ArchiveSink) -> None:
        """Write the combined text, the manifest and the separated copies to `sink`."""
        sink.write_entry(result.combined_filename, result.combined_text)
        sink.write_entry(MANIFEST_FILENAME, result.manifest.to_json())
        for name, content in result.separated.items():
            sink.write_entry(name, content)
