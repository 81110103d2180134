from dataclasses import dataclass, field


@dataclass(frozen=True)
class RepoToTextError(Exception):
    """Base exception for errors in the repo_to_text package."""

    message: str = "Repository conversion failed."
    status_code: int = 500

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class InputError(RepoToTextError):
    """Raised when a conversion request is missing or has malformed fields."""

    message: str = "Missing repoUrl"
    status_code: int = 400


@dataclass(frozen=True)
class URLResolutionError(RepoToTextError):
    """Raised when a repository URL cannot be mapped to owner/repo."""

    url: str = ""
    message: str = "Could not parse repository URL (owner/repo)"


@dataclass(frozen=True)
class FetchAggregateError(RepoToTextError):
    """Raised when every archive candidate failed to download."""

    diagnostics: tuple[str, ...] = field(default_factory=tuple)
    message: str = "Failed to fetch archive from any URL."

    def __str__(self) -> str:
        return "\n".join([f"{self.message} Tried:", *self.diagnostics])


@dataclass(frozen=True)
class ArchiveDecodeError(RepoToTextError):
    """Raised when fetched bytes are not a readable archive."""

    message: str = "Downloaded content is not a valid zip archive."


@dataclass(frozen=True)
class TransportError(RepoToTextError):
    """Raised by a transport when a request fails before a response arrives."""

    url: str = ""
    message: str = "Request failed."
