import pytest

from repo_to_text.file_manipulation import common_root_prefix, flatten_path, strip_root_prefix, to_posix


@pytest.mark.unit
def test_common_root_prefix_detects_wrapping_folder() -> None:
    assert common_root_prefix(["widgets-main/a.ts", "widgets-main/b.ts"]) == "widgets-main/"


@pytest.mark.unit
def test_common_root_prefix_without_shared_folder() -> None:
    assert not common_root_prefix(["a.ts", "sub/b.ts"])


@pytest.mark.unit
def test_common_root_prefix_rejects_partial_share() -> None:
    assert not common_root_prefix(["widgets-main/a.ts", "other/b.ts"])


@pytest.mark.unit
def test_common_root_prefix_does_not_match_name_prefix() -> None:
    # "widgets-main-extra/" starts with "widgets-main" but not with "widgets-main/"
    assert not common_root_prefix(["widgets-main/a.ts", "widgets-main-extra/b.ts"])


@pytest.mark.unit
def test_common_root_prefix_empty_and_leading_slash() -> None:
    assert not common_root_prefix([])
    assert not common_root_prefix(["/abs/a.ts", "/abs/b.ts"])


@pytest.mark.unit
def test_common_root_prefix_normalizes_backslashes() -> None:
    assert common_root_prefix(["repo-dev\\a.ts", "repo-dev/b/c.ts"]) == "repo-dev/"


@pytest.mark.unit
def test_strip_root_prefix() -> None:
    assert strip_root_prefix("widgets-main/src/x.ts", "widgets-main/") == "src/x.ts"
    assert strip_root_prefix("src\\x.ts", "") == "src/x.ts"
    assert not strip_root_prefix("widgets-main/", "widgets-main/")


@pytest.mark.unit
def test_flatten_path() -> None:
    assert flatten_path("src/app/main.ts") == "src__app__main.ts.txt"
    assert flatten_path("README.md") == "README.md.txt"
    assert flatten_path("a\\b.py") == "a__b.py.txt"


@pytest.mark.unit
def test_to_posix() -> None:
    assert to_posix("a\\b\\c") == "a/b/c"
