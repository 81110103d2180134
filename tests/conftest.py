from __future__ import annotations

import io
import zipfile
from typing import TYPE_CHECKING

import pytest

from repo_to_text.config import SourceEntry
from repo_to_text.exceptions import TransportError
from repo_to_text.fetching import FetchResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


class FakeTransport:
    """In-memory transport: unknown URLs answer 404, exceptions are raised."""

    def __init__(self, responses: Mapping[str, FetchResponse | Exception] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, str]]] = []

    def fetch_bytes(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        self.calls.append((url, dict(headers)))
        res = self.responses.get(url, FetchResponse(status=404, reason="Not Found"))
        if isinstance(res, Exception):
            raise res
        return res

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


class MemorySource:
    """In-memory archive source keyed by entry path."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self.files = dict(files)
        self.reads: list[str] = []

    def list_entries(self) -> list[SourceEntry]:
        return [
            SourceEntry(path=name, is_directory=name.endswith("/"), size=len(content.encode("utf-8")))
            for name, content in self.files.items()
        ]

    def read_entry_text(self, entry: SourceEntry) -> str:
        self.reads.append(entry.path)
        return self.files[entry.path]


class MemorySink:
    def __init__(self) -> None:
        self.entries: dict[str, str] = {}

    def write_entry(self, name: str, text: str) -> None:
        self.entries[name] = text


def build_zip(files: Mapping[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def read_zip(data: bytes) -> dict[str, str]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name).decode("utf-8") for name in zf.namelist()}


@pytest.fixture
def make_zip() -> Callable[[Mapping[str, str | bytes]], bytes]:
    return build_zip


@pytest.fixture
def unzip() -> Callable[[bytes], dict[str, str]]:
    return read_zip


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def memory_source() -> Callable[[Mapping[str, str]], MemorySource]:
    return MemorySource


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def ok() -> Callable[[bytes], FetchResponse]:
    def _ok(content: bytes) -> FetchResponse:
        return FetchResponse(status=200, reason="OK", content=content)

    return _ok


@pytest.fixture
def unreachable() -> Callable[[str], TransportError]:
    def _err(url: str) -> TransportError:
        return TransportError(url=url, message="connection refused")

    return _err


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setattr("repo_to_text.settings.ENV_FILE", "")
