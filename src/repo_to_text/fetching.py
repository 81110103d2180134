"""Download the first archive candidate that answers with a 2xx response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import requests

from repo_to_text import __version__
from repo_to_text.exceptions import FetchAggregateError, TransportError
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from repo_to_text.config import ArchiveCandidate

USER_AGENT = f"repo-to-text/{__version__}"
ACCEPT = "application/vnd.github+json"
FINE_GRAINED_TOKEN_PREFIX = "github_pat_"
REDACTED = "***"
INVALID_HEADER_MESSAGE = "invalid request header (credential redacted)"

HINT_BAD_TOKEN = "  hint: token may be invalid or lack required permissions (needs 'repo' scope)"
HINT_NEEDS_TOKEN = "  hint: this might be a private repo - try adding a GitHub token"


@dataclass(frozen=True)
class FetchResponse:
    """The parts of an HTTP response the fetcher looks at."""

    status: int
    reason: str = ""
    content: bytes = b""

    @property
    def ok(self) -> bool:
        """Whether the status is in the 2xx range."""
        return 200 <= self.status < 300  # noqa: PLR2004


class Transport(Protocol):
    """Network capability: GET a URL with headers, following redirects."""

    def fetch_bytes(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        """Return the response, or raise TransportError if none arrived."""
        ...


class RequestsTransport:
    """`requests`-backed transport; one independent request per call."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def fetch_bytes(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        try:
            res = requests.get(
                url,
                headers=dict(headers),
                allow_redirects=True,
                timeout=self.timeout,
            )
        except requests.exceptions.InvalidHeader as e:
            raise TransportError(url=url, message=INVALID_HEADER_MESSAGE) from e
        except requests.RequestException as e:
            raise TransportError(url=url, message=str(e) or type(e).__name__) from e
        except ValueError as e:
            # header values that http.client cannot encode (non latin-1)
            raise TransportError(url=url, message=f"{INVALID_HEADER_MESSAGE}: {type(e).__name__}") from e
        return FetchResponse(status=res.status_code, reason=res.reason or "", content=res.content)


def auth_header(token: str) -> str:
    """Build the Authorization value for a GitHub token.

    Fine-grained personal access tokens (`github_pat_...`) use the Bearer
    scheme; classic tokens use the legacy `token` scheme.
    """
    scheme = "Bearer" if token.startswith(FINE_GRAINED_TOKEN_PREFIX) else "token"
    return f"{scheme} {token}"


def redact(text: str, token: str | None) -> str:
    """Replace every occurrence of `token` in `text`, stripped or not."""
    if not token:
        return text
    for secret in sorted({token, token.strip()}, key=len, reverse=True):
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def request_headers(candidate: ArchiveCandidate, token: str | None = None) -> dict[str, str]:
    """Headers sent with every attempt; auth only where the provider accepts it.

    Args:
        candidate (ArchiveCandidate): the URL about to be fetched
        token (str | None): the caller's credential, if any

    Returns:
        dict[str, str]: the request headers
    """
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": ACCEPT,
        "Cache-Control": "no-cache",
    }
    if token and candidate.uses_provider_auth:
        headers["Authorization"] = auth_header(token)
    return headers


@dataclass(frozen=True)
class FetchSuccess:
    """An attempt that produced archive bytes."""

    url: str
    content: bytes


@dataclass(frozen=True)
class FetchFailure:
    """An attempt that did not; `reason` is a status line or transport error."""

    url: str
    reason: str
    hint: str | None = None

    def diagnostic_lines(self) -> list[str]:
        """Lines this failure contributes to the aggregate error message."""
        lines = [f"{self.url} -> {self.reason}"]
        if self.hint:
            lines.append(self.hint)
        return lines


FetchOutcome = FetchSuccess | FetchFailure


@dataclass(frozen=True)
class FetchedArchive:
    """The winning download plus the failures that preceded it."""

    url: str
    content: bytes
    failures: tuple[FetchFailure, ...] = field(default_factory=tuple)


def auth_hint(status: int, *, has_token: bool) -> str | None:
    """Actionable hint for authorization failures (401/403), else None."""
    if status not in {401, 403}:
        return None
    return HINT_BAD_TOKEN if has_token else HINT_NEEDS_TOKEN


class ArchiveFetcher:
    """Try archive candidates strictly in order; stop at the first 2xx.

    Attempts are sequential. Every failure is kept and reported, in order,
    when no candidate succeeds.
    """

    def __init__(self, transport: Transport | None = None) -> None:
        self.transport: Transport = transport or RequestsTransport()

    def attempt(self, candidate: ArchiveCandidate, token: str | None = None) -> FetchOutcome:
        """Fetch a single candidate and classify the result.

        Args:
            candidate (ArchiveCandidate): the URL to fetch
            token (str | None): the caller's credential, if any

        Returns:
            FetchOutcome: a FetchSuccess with the body, or a FetchFailure with its reason
        """
        logger.info("trying archive candidate", url=candidate.url, has_token=bool(token))
        try:
            res = self.transport.fetch_bytes(candidate.url, request_headers(candidate, token))
        except TransportError as e:
            reason = redact(e.message, token)
            logger.warning("archive candidate unreachable", url=candidate.url, error=reason)
            return FetchFailure(url=candidate.url, reason=reason)
        if not res.ok:
            logger.warning("archive candidate rejected", url=candidate.url, status=res.status)
            return FetchFailure(
                url=candidate.url,
                reason=f"{res.status} {res.reason}".strip(),
                hint=auth_hint(res.status, has_token=bool(token)),
            )
        return FetchSuccess(url=candidate.url, content=res.content)

    def fetch_first(self, candidates: Iterable[ArchiveCandidate], token: str | None = None) -> FetchedArchive:
        """Return the first candidate's archive that downloads successfully.

        Args:
            candidates (Iterable[ArchiveCandidate]): candidates in priority order
            token (str | None): the caller's credential, if any

        Raises:
            FetchAggregateError: if every candidate failed; it lists each
                attempted URL with its outcome, in order.

        Returns:
            FetchedArchive: the archive bytes and the failures seen before it
        """
        failures: list[FetchFailure] = []
        for candidate in candidates:
            outcome = self.attempt(candidate, token)
            if isinstance(outcome, FetchSuccess):
                logger.info("fetched archive", url=outcome.url, size=len(outcome.content))
                return FetchedArchive(url=outcome.url, content=outcome.content, failures=tuple(failures))
            failures.append(outcome)
        raise FetchAggregateError(diagnostics=tuple(diagnostics_of(failures)))


def diagnostics_of(failures: Sequence[FetchFailure]) -> list[str]:
    """Flatten failures into the ordered diagnostic lines of the aggregate error."""
    return [line for failure in failures for line in failure.diagnostic_lines()]
