"""Map a repository URL to the archive URLs worth trying, per hosting provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from repo_to_text.config import (
    BRANCH_FALLBACKS,
    DEFAULT_BRANCH,
    ArchiveCandidate,
    ProviderKind,
    RepoInfo,
)
from repo_to_text.exceptions import URLResolutionError
from repo_to_text.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    CandidateBuilderFn = Callable[..., list[ArchiveCandidate]]


@dataclass(frozen=True)
class RepoTarget:
    """Owner and repository name parsed from a hosting URL."""

    owner: str
    repo: str


@dataclass(frozen=True)
class ProviderStrategy:
    """A hosting provider: the domain it serves and how it names archives."""

    kind: ProviderKind
    domain: str
    build: CandidateBuilderFn

    def matches(self, host: str) -> bool:
        """Check if `host` is the provider's domain or one of its subdomains."""
        return host == self.domain or host.endswith("." + self.domain)


PROVIDERS: dict[ProviderKind, ProviderStrategy] = {}


def register_provider(
    kind: ProviderKind,
    domain: str,
) -> Callable[[CandidateBuilderFn], CandidateBuilderFn]:
    """Decorator registering a candidate builder for a hosting provider.

    The decorated function receives the parsed `RepoTarget`, the ordered
    branch guesses and a `has_credential` keyword, and returns the archive
    candidates for that provider in the order they should be tried.

    Args:
        kind (ProviderKind): the provider the builder serves
        domain (str): the provider's host; subdomains match as well

    Returns:
        Callable[[CandidateBuilderFn], CandidateBuilderFn]: the registering decorator
    """

    def decorator(func: CandidateBuilderFn) -> CandidateBuilderFn:
        PROVIDERS[kind] = ProviderStrategy(kind=kind, domain=domain, build=func)
        return func

    return decorator


@register_provider(ProviderKind.GITHUB, "github.com")
def github_candidates(
    target: RepoTarget,
    branches: Sequence[str],
    *,
    has_credential: bool = False,
) -> list[ArchiveCandidate]:
    """Web archive, codeload and API zipball URLs for every branch guess.

    With a credential, each branch's API zipball (the endpoint that serves
    private repositories) comes first; otherwise it comes last.
    """
    owner, repo = target.owner, target.repo
    out: list[ArchiveCandidate] = []
    for branch in branches:
        api = ArchiveCandidate(
            url=f"https://api.github.com/repos/{owner}/{repo}/zipball/{branch}",
            provider=ProviderKind.GITHUB,
            branch=branch,
        )
        public = [
            ArchiveCandidate(
                url=f"https://github.com/{owner}/{repo}/archive/refs/heads/{branch}.zip",
                provider=ProviderKind.GITHUB,
                branch=branch,
            ),
            ArchiveCandidate(
                url=f"https://codeload.github.com/{owner}/{repo}/zip/refs/heads/{branch}",
                provider=ProviderKind.GITHUB,
                branch=branch,
            ),
        ]
        out.extend([api, *public] if has_credential else [*public, api])
    return out


@register_provider(ProviderKind.GITLAB, "gitlab.com")
def gitlab_candidates(
    target: RepoTarget,
    branches: Sequence[str],
    *,
    has_credential: bool = False,  # noqa: ARG001
) -> list[ArchiveCandidate]:
    """One `-/archive/<branch>/<repo>-<branch>.zip` URL per branch guess."""
    owner, repo = target.owner, target.repo
    return [
        ArchiveCandidate(
            url=f"https://gitlab.com/{owner}/{repo}/-/archive/{b}/{repo}-{b}.zip",
            provider=ProviderKind.GITLAB,
            branch=b,
        )
        for b in branches
    ]


@register_provider(ProviderKind.BITBUCKET, "bitbucket.org")
def bitbucket_candidates(
    target: RepoTarget,
    branches: Sequence[str],
    *,
    has_credential: bool = False,  # noqa: ARG001
) -> list[ArchiveCandidate]:
    """One `get/<branch>.zip` URL per branch guess."""
    owner, repo = target.owner, target.repo
    return [
        ArchiveCandidate(
            url=f"https://bitbucket.org/{owner}/{repo}/get/{b}.zip",
            provider=ProviderKind.BITBUCKET,
            branch=b,
        )
        for b in branches
    ]


def provider_for_host(host: str) -> ProviderStrategy | None:
    """Return the registered provider serving `host`, if any."""
    for strategy in PROVIDERS.values():
        if strategy.matches(host):
            return strategy
    return None


def path_parts(path: str) -> list[str]:
    """Split a URL path into non-empty segments, dropping a trailing `.git`.

    Args:
        path (str): the URL path, e.g. `/acme/widgets.git`

    Returns:
        list[str]: the path segments, e.g. `["acme", "widgets"]`
    """
    return [p for p in path.removesuffix(".git").split("/") if p]


def ref_from_path(parts: Sequence[str]) -> str | None:
    """Extract a ref encoded as `/<owner>/<repo>/tree/<ref>` (or GitLab's `/-/tree/<ref>`).

    Args:
        parts (Sequence[str]): URL path segments

    Returns:
        str | None: the ref segment, or None if the path does not encode one
    """
    if len(parts) >= 4 and parts[2] == "tree":  # noqa: PLR2004
        return parts[3]
    if len(parts) >= 5 and parts[2] == "-" and parts[3] == "tree":  # noqa: PLR2004
        return parts[4]
    return None


def branch_candidates(ref: str | None) -> list[str]:
    """Return `[ref]` when given, else the default-branch fallbacks in order."""
    return [ref] if ref else list(BRANCH_FALLBACKS)


def resolve_archive_candidates(
    repo_url: str,
    ref: str | None = None,
    *,
    has_credential: bool = False,
) -> list[ArchiveCandidate]:
    """Produce the ordered list of archive URLs to try for a repository.

    - A URL whose path ends in `.zip` is returned as the sole candidate.
    - A URL on a registered provider is mapped through that provider's builder,
      once per branch guess.
    - Any other URL is returned unchanged, as a direct archive link.

    Args:
        repo_url (str): the repository URL given by the caller
        ref (str | None): an explicit branch/tag/commit; overrides a `/tree/<ref>` segment
        has_credential (bool): whether a provider token will accompany the requests

    Raises:
        URLResolutionError: if the URL is not an absolute http(s) URL, or a
            registered provider's URL has fewer than two path segments.

    Returns:
        list[ArchiveCandidate]: candidates in the order they should be attempted
    """
    try:
        parsed = urlparse(repo_url.strip())
        host = (parsed.hostname or "").lower()
    except ValueError as e:
        raise URLResolutionError(url=repo_url, message=f"Invalid repository URL: {repo_url}") from e
    if parsed.scheme not in {"http", "https"} or not host:
        raise URLResolutionError(url=repo_url, message=f"Invalid repository URL: {repo_url}")
    strategy = provider_for_host(host)

    if parsed.path.lower().endswith(".zip"):
        kind = strategy.kind if strategy else ProviderKind.DIRECT
        return [ArchiveCandidate(url=repo_url, provider=kind)]

    if strategy is None:
        logger.info("unknown host, using URL as a direct archive", host=host)
        return [ArchiveCandidate(url=repo_url, provider=ProviderKind.DIRECT)]

    parts = path_parts(parsed.path)
    if len(parts) < 2:  # noqa: PLR2004
        raise URLResolutionError(
            url=repo_url,
            message=f"Could not parse {strategy.kind.value} URL (owner/repo): {repo_url}",
        )

    branches = branch_candidates(ref or ref_from_path(parts))
    candidates = strategy.build(
        RepoTarget(owner=parts[0], repo=parts[1]),
        branches,
        has_credential=has_credential,
    )
    logger.info(
        "resolved archive candidates",
        provider=strategy.kind.value,
        branches=branches,
        count=len(candidates),
    )
    return candidates


def extract_repo_info(repo_url: str, ref: str | None = None) -> RepoInfo:
    """Derive owner/repo/branch for naming the combined export.

    Never fails: URLs that do not yield two path segments fall back to
    `repo`/`export` and the given ref (or `main`).

    Args:
        repo_url (str): the repository URL given by the caller
        ref (str | None): the explicit ref, if any

    Returns:
        RepoInfo: the naming triple
    """
    try:
        parts = path_parts(urlparse(repo_url).path)
    except ValueError:
        parts = []
    if len(parts) >= 2:  # noqa: PLR2004
        branch = ref or ref_from_path(parts) or DEFAULT_BRANCH
        return RepoInfo(owner=parts[0], repo=parts[1], branch=branch)
    return RepoInfo(branch=ref or DEFAULT_BRANCH)
