from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum, auto

from pydantic import BaseModel, ConfigDict, Field, SecretStr, computed_field
from pydantic.alias_generators import to_camel

MAX_FILE_BYTES = 2 * 1024 * 1024  # skip files bigger than 2 MiB

IGNORE_DIR_PREFIXES: tuple[str, ...] = (
    "node_modules/",
    ".git/",
    "dist/",
    "build/",
    ".next/",
    "out/",
    "target/",
    "coverage/",
    "venv/",
    "__pycache__/",
)

ALLOWED_EXTS: tuple[str, ...] = (
    # web / ts
    "js",
    "jsx",
    "ts",
    "tsx",
    "mjs",
    "cjs",
    # styles, markup, content
    "css",
    "scss",
    "sass",
    "less",
    "html",
    "htm",
    "md",
    "mdx",
    # configs and data
    "json",
    "yml",
    "yaml",
    "toml",
    "ini",
    "cfg",
    "conf",
    "env",
    "xml",
    # languages
    "py",
    "java",
    "kt",
    "kts",
    "go",
    "rs",
    "rb",
    "php",
    "cs",
    "cpp",
    "c",
    "h",
    "hpp",
    "scala",
    "swift",
    "dart",
    "sql",
    "sh",
    "bash",
    "zsh",
    "ps1",
    "lua",
    "r",
    "pl",
    "hs",
    # frameworks
    "vue",
    "svelte",
    "astro",
)

ALLOWED_EXT_SET: frozenset[str] = frozenset(ALLOWED_EXTS)

BRANCH_FALLBACKS: tuple[str, ...] = ("main", "master", "default")

SEPARATED_DIR = "separated"
SAFE_SEPARATOR = "__"
MANIFEST_FILENAME = "manifest.json"
OUTPUT_FILENAME = "repo-to-text.zip"

BEGIN_MARKER = "----- BEGIN FILE: {path} -----"
END_MARKER = "----- END FILE: {path} -----"

DEFAULT_OWNER = "repo"
DEFAULT_REPO = "export"
DEFAULT_BRANCH = "main"


class ProviderKind(StrEnum):
    """Hosting providers the URL resolver knows how to address."""

    GITHUB = auto()
    GITLAB = auto()
    BITBUCKET = auto()
    DIRECT = auto()


class ExportStage(StrEnum):
    """Stages a single conversion request moves through."""

    FETCHING = auto()
    NORMALIZING = auto()
    FILTERING = auto()
    PACKAGING = auto()
    DONE = auto()
    FAILED = auto()


class RepositoryReference(BaseModel):
    """What the caller asked for: a repository URL, an optional ref and credential."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Repository or direct archive URL")
    ref: str | None = Field(default=None, description="Branch, tag or commit to fetch")
    credential: SecretStr | None = Field(default=None, description="Provider access token")

    @property
    def has_credential(self) -> bool:
        """Whether a non-empty credential was supplied."""
        return self.credential is not None and bool(self.credential.get_secret_value())

    def token(self) -> str | None:
        """Return the raw credential, or None when absent."""
        if not self.has_credential:
            return None
        return self.credential.get_secret_value()  # type: ignore[union-attr]


class ArchiveCandidate(BaseModel):
    """One concrete URL hypothesized to serve a snapshot of the repository."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Fully-qualified archive download URL")
    provider: ProviderKind = Field(..., description="Provider the URL belongs to")
    branch: str | None = Field(default=None, description="Branch guess this URL encodes")

    @computed_field
    @property
    def uses_provider_auth(self) -> bool:
        """Whether provider-specific authorization headers apply to this URL."""
        return self.provider is ProviderKind.GITHUB


class RepoInfo(BaseModel):
    """Owner, repository and branch used to name the combined export."""

    model_config = ConfigDict(frozen=True)

    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO
    branch: str = DEFAULT_BRANCH

    @property
    def combined_filename(self) -> str:
        """Deterministic name of the combined text entry."""
        branch = self.branch.replace("\\", "-").replace("/", "-")
        return f"{self.owner}-{self.repo}-{branch}-combined.txt"


class SourceEntry(BaseModel):
    """A single entry of a fetched archive.

    Attributes:
        path: Archive-relative path with forward slashes.
        is_directory: Whether the entry is a directory marker.
        size: Uncompressed size reported by the archive (checked before reading against the size cap).
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Archive-relative path, slash-normalized")
    is_directory: bool = Field(default=False, description="Directory marker entry")
    size: int = Field(default=0, ge=0, description="Uncompressed size in bytes")


class FilterSnapshot(BaseModel):
    """The static filter configuration, echoed into the manifest."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    max_file_bytes: int = MAX_FILE_BYTES
    ignore_prefixes: list[str] = Field(default_factory=lambda: list(IGNORE_DIR_PREFIXES))
    allowed_exts: list[str] = Field(default_factory=lambda: list(ALLOWED_EXTS))


class ExportManifest(BaseModel):
    """Summary of one export, serialized as ``manifest.json``."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    repo_url: str
    ref: str | None = None
    included_files: int = Field(..., ge=0)
    include_separated: bool
    combined_filename: str
    filters: FilterSnapshot = Field(default_factory=FilterSnapshot)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_json(self) -> str:
        """Render the manifest with its camelCase wire names."""
        return self.model_dump_json(by_alias=True, indent=2)
