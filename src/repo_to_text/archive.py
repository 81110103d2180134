"""Zip-backed archive capabilities: list and read a source archive, write an output one."""

from __future__ import annotations

import io
import zipfile
import zlib
from typing import Protocol

from repo_to_text.config import SourceEntry
from repo_to_text.exceptions import ArchiveDecodeError
from repo_to_text.file_manipulation import to_posix


class ArchiveSource(Protocol):
    """Read side of an archive container."""

    def list_entries(self) -> list[SourceEntry]:
        """Return the entries in archive order."""
        ...

    def read_entry_text(self, entry: SourceEntry) -> str:
        """Return the entry content decoded as text."""
        ...


class ArchiveSink(Protocol):
    """Write side of an archive container."""

    def write_entry(self, name: str, text: str) -> None:
        """Store `text` under `name`."""
        ...


def decode_text(data: bytes) -> str:
    """Decode bytes as UTF-8, replacing invalid sequences."""
    return data.decode("utf-8", errors="replace")


class ZipArchiveSource:
    """An `ArchiveSource` over zip bytes held in memory."""

    def __init__(self, data: bytes) -> None:
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise ArchiveDecodeError(message=f"Downloaded content is not a valid zip archive: {e}") from e
        self._names: dict[str, zipfile.ZipInfo] = {}

    def list_entries(self) -> list[SourceEntry]:
        entries: list[SourceEntry] = []
        for info in self._zip.infolist():
            path = to_posix(info.filename)
            self._names.setdefault(path, info)
            entries.append(SourceEntry(path=path, is_directory=info.is_dir(), size=info.file_size))
        return entries

    def read_entry_text(self, entry: SourceEntry) -> str:
        info = self._names.get(entry.path) or self._zip.getinfo(entry.path)
        try:
            return decode_text(self._zip.read(info))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, RuntimeError, EOFError) as e:
            raise ArchiveDecodeError(message=f"Could not read {entry.path} from archive: {e}") from e

    def close(self) -> None:
        self._zip.close()


class ZipArchiveSink:
    """An `ArchiveSink` collecting entries into an in-memory zip."""

    def __init__(self) -> None:
        self._buf = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buf, mode="w", compression=zipfile.ZIP_DEFLATED)
        self.names: list[str] = []

    def write_entry(self, name: str, text: str) -> None:
        self._zip.writestr(name, text.encode("utf-8"))
        self.names.append(name)

    def getvalue(self) -> bytes:
        """Finalize the archive and return its bytes."""
        self._zip.close()
        return self._buf.getvalue()

