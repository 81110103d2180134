import pytest

from repo_to_text.config import ProviderKind
from repo_to_text.exceptions import URLResolutionError
from repo_to_text.url_resolution import (
    PROVIDERS,
    extract_repo_info,
    github_candidates,
    gitlab_candidates,
    provider_for_host,
    ref_from_path,
    resolve_archive_candidates,
)

GH = "https://github.com/acme/widgets"


def _github_urls(branch: str) -> tuple[str, str, str]:
    return (
        f"https://github.com/acme/widgets/archive/refs/heads/{branch}.zip",
        f"https://codeload.github.com/acme/widgets/zip/refs/heads/{branch}",
        f"https://api.github.com/repos/acme/widgets/zipball/{branch}",
    )


@pytest.mark.unit
def test_github_without_credential_puts_api_last_per_branch() -> None:
    urls = [c.url for c in resolve_archive_candidates(GH)]

    expected: list[str] = []
    for branch in ("main", "master", "default"):
        web, codeload, api = _github_urls(branch)
        expected.extend([web, codeload, api])
    assert urls == expected


@pytest.mark.unit
def test_github_with_credential_puts_api_first_per_branch() -> None:
    urls = [c.url for c in resolve_archive_candidates(GH, has_credential=True)]

    expected: list[str] = []
    for branch in ("main", "master", "default"):
        web, codeload, api = _github_urls(branch)
        expected.extend([api, web, codeload])
    assert urls == expected


@pytest.mark.unit
def test_github_candidates_use_provider_auth() -> None:
    candidates = resolve_archive_candidates(GH, "dev")

    assert len(candidates) == 3
    assert all(c.provider is ProviderKind.GITHUB for c in candidates)
    assert all(c.uses_provider_auth for c in candidates)
    assert {c.branch for c in candidates} == {"dev"}


@pytest.mark.unit
def test_github_tree_segment_supplies_ref() -> None:
    urls = [c.url for c in resolve_archive_candidates("https://github.com/acme/widgets/tree/release")]

    assert urls == list(_github_urls("release"))


@pytest.mark.unit
def test_explicit_ref_wins_over_tree_segment() -> None:
    candidates = resolve_archive_candidates("https://github.com/acme/widgets/tree/release", "dev")

    assert {c.branch for c in candidates} == {"dev"}


@pytest.mark.unit
def test_github_dot_git_suffix_is_stripped() -> None:
    urls = [c.url for c in resolve_archive_candidates("https://github.com/acme/widgets.git", "main")]

    assert urls[0] == "https://github.com/acme/widgets/archive/refs/heads/main.zip"


@pytest.mark.unit
def test_gitlab_with_ref_yields_single_candidate() -> None:
    candidates = resolve_archive_candidates("https://gitlab.com/acme/widgets", "dev")

    assert [c.url for c in candidates] == ["https://gitlab.com/acme/widgets/-/archive/dev/widgets-dev.zip"]
    assert not candidates[0].uses_provider_auth


@pytest.mark.unit
def test_gitlab_without_ref_tries_fallback_branches() -> None:
    urls = [c.url for c in resolve_archive_candidates("https://gitlab.com/acme/widgets", has_credential=True)]

    assert urls == [
        "https://gitlab.com/acme/widgets/-/archive/main/widgets-main.zip",
        "https://gitlab.com/acme/widgets/-/archive/master/widgets-master.zip",
        "https://gitlab.com/acme/widgets/-/archive/default/widgets-default.zip",
    ]


@pytest.mark.unit
def test_bitbucket_candidates() -> None:
    urls = [c.url for c in resolve_archive_candidates("https://bitbucket.org/acme/widgets")]

    assert urls == [
        "https://bitbucket.org/acme/widgets/get/main.zip",
        "https://bitbucket.org/acme/widgets/get/master.zip",
        "https://bitbucket.org/acme/widgets/get/default.zip",
    ]


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    ["https://example.com/downloads/archive.ZIP", "https://github.com/acme/widgets/archive/v1.zip"],
)
def test_direct_zip_is_sole_candidate(url: str) -> None:
    candidates = resolve_archive_candidates(url, "ignored")

    assert [c.url for c in candidates] == [url]


@pytest.mark.unit
def test_direct_zip_on_github_keeps_provider_auth() -> None:
    (candidate,) = resolve_archive_candidates("https://github.com/acme/widgets/archive/v1.zip")

    assert candidate.uses_provider_auth


@pytest.mark.unit
def test_unknown_host_passes_through() -> None:
    url = "https://git.example.org/acme/widgets"

    (candidate,) = resolve_archive_candidates(url)

    assert candidate.url == url
    assert candidate.provider is ProviderKind.DIRECT
    assert not candidate.uses_provider_auth


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    ["https://github.com/acme", "https://gitlab.com/", "https://bitbucket.org/acme"],
)
def test_recognized_host_needs_owner_and_repo(url: str) -> None:
    with pytest.raises(URLResolutionError) as exc_info:
        resolve_archive_candidates(url)

    assert "owner/repo" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.parametrize("url", ["not a url", "acme/widgets", "ftp://github.com/acme/widgets"])
def test_non_http_urls_are_rejected(url: str) -> None:
    with pytest.raises(URLResolutionError):
        resolve_archive_candidates(url)


@pytest.mark.unit
def test_provider_for_host_matches_subdomains_only() -> None:
    assert provider_for_host("www.github.com") is PROVIDERS[ProviderKind.GITHUB]
    assert provider_for_host("gitlab.com") is PROVIDERS[ProviderKind.GITLAB]
    assert provider_for_host("notgithub.com") is None


@pytest.mark.unit
def test_ref_from_path_handles_gitlab_dash_tree() -> None:
    assert ref_from_path(["acme", "widgets", "tree", "dev"]) == "dev"
    assert ref_from_path(["acme", "widgets", "-", "tree", "dev"]) == "dev"
    assert ref_from_path(["acme", "widgets"]) is None


@pytest.mark.unit
def test_extract_repo_info() -> None:
    assert extract_repo_info(GH).combined_filename == "acme-widgets-main-combined.txt"
    assert extract_repo_info(GH, "dev").combined_filename == "acme-widgets-dev-combined.txt"
    assert extract_repo_info(GH + "/tree/v2").branch == "v2"


@pytest.mark.unit
def test_extract_repo_info_falls_back_to_defaults() -> None:
    info = extract_repo_info("https://example.com/")

    assert (info.owner, info.repo, info.branch) == ("repo", "export", "main")
    assert extract_repo_info("https://example.com/x", "dev").combined_filename == "repo-export-dev-combined.txt"


@pytest.mark.unit
def test_combined_filename_flattens_slashed_refs() -> None:
    assert extract_repo_info(GH, "feature/x").combined_filename == "acme-widgets-feature-x-combined.txt"


@pytest.mark.unit
def test_registry_holds_the_builders_themselves() -> None:
    assert PROVIDERS[ProviderKind.GITHUB].build is github_candidates
    assert PROVIDERS[ProviderKind.GITLAB].build is gitlab_candidates
    assert PROVIDERS[ProviderKind.BITBUCKET].domain == "bitbucket.org"
