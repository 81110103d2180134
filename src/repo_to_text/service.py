"""Request boundary: validate a conversion request, run the pipeline, answer with a zip or an error."""

from __future__ import annotations

import contextlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, StrictStr, ValidationError, field_validator

from repo_to_text.archive import ZipArchiveSink, ZipArchiveSource
from repo_to_text.config import OUTPUT_FILENAME, ExportStage, RepositoryReference
from repo_to_text.exceptions import InputError, RepoToTextError
from repo_to_text.fetching import ArchiveFetcher, RequestsTransport
from repo_to_text.logging import logger
from repo_to_text.output_construction import ExportBuilder, ExportResult
from repo_to_text.url_resolution import resolve_archive_candidates

if TYPE_CHECKING:
    from repo_to_text.fetching import Transport

ZIP_CONTENT_TYPE = "application/zip"
JSON_CONTENT_TYPE = "application/json"


class ConvertRequest(BaseModel):
    """A conversion request, accepting the camelCase wire names."""

    model_config = ConfigDict(frozen=True)

    repo_url: StrictStr = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("repoUrl", "repo_url"),
        description="Repository URL or direct .zip link",
    )
    ref: str | None = Field(default=None, description="Branch, tag or commit")
    token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("githubToken", "token", "credential"),
        description="Provider access token",
    )
    include_separated: bool = Field(
        default=True,
        validation_alias=AliasChoices("includeSeparated", "include_separated"),
        description="Also emit one .txt per source file",
    )

    @field_validator("ref", mode="before")
    @classmethod
    def _blank_ref_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("token", mode="before")
    @classmethod
    def _usable_token(cls, value: object) -> object:
        """Trim surrounding whitespace; a token must fit in an HTTP header."""
        if not isinstance(value, str):
            return value
        value = value.strip()
        if not value:
            return None
        if "\r" in value or "\n" in value:
            raise ValueError("token must not contain line breaks")
        try:
            value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ValueError("token contains characters that cannot be sent in a header") from e
        return value

    def reference(self) -> RepositoryReference:
        """The repository this request points at."""
        return RepositoryReference(url=self.repo_url, ref=self.ref, credential=self.token)


def parse_request(payload: Mapping[str, Any] | str | bytes) -> ConvertRequest:
    """Validate a raw request body.

    Args:
        payload (Mapping[str, Any] | str | bytes): a decoded JSON object, or JSON text

    Raises:
        InputError: if the body is not a JSON object, `repoUrl` is missing or
            not a string, or another field has the wrong type.

    Returns:
        ConvertRequest: the validated request
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise InputError(message=f"Request body is not valid JSON: {e}") from e
    if not isinstance(payload, Mapping):
        raise InputError(message="Request body must be a JSON object")
    try:
        return ConvertRequest.model_validate(dict(payload))
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"])
        if loc in {"repoUrl", "repo_url"} or not loc:
            raise InputError(message="Missing repoUrl") from e
        raise InputError(message=f"Invalid {loc}: {first['msg']}") from e


@dataclass
class ConversionRun:
    """Tracks which stage a single request is in; every transition is logged."""

    stage: ExportStage = ExportStage.FETCHING
    history: list[ExportStage] = field(default_factory=lambda: [ExportStage.FETCHING])
    failed_at: ExportStage | None = None

    def advance(self, stage: ExportStage) -> None:
        self.stage = stage
        self.history.append(stage)
        logger.info("stage", stage=stage.value)

    def fail(self, error: BaseException) -> None:
        self.failed_at = self.stage
        self.stage = ExportStage.FAILED
        self.history.append(ExportStage.FAILED)
        logger.warning("stage failed", stage=self.failed_at.value, error_type=type(error).__name__)


@dataclass(frozen=True)
class ConvertedExport:
    """A finished export: the packaged archive plus what went into it."""

    result: ExportResult
    archive: bytes
    source_url: str


def convert(
    request: ConvertRequest,
    *,
    transport: Transport | None = None,
    timeout: float | None = None,
    run: ConversionRun | None = None,
) -> ConvertedExport:
    """Fetch, normalize, filter and package one repository.

    Args:
        request (ConvertRequest): the validated request
        transport (Transport | None): network capability; defaults to `requests`
        timeout (float | None): per-request timeout for the default transport
        run (ConversionRun | None): stage tracker, for callers that want to inspect it

    Raises:
        RepoToTextError: for resolution, fetch and archive failures.

    Returns:
        ConvertedExport: the output archive bytes and the export details
    """
    run = run or ConversionRun()
    reference = request.reference()
    logger.info(
        "conversion started",
        repo_url=reference.url,
        ref=reference.ref,
        has_token=reference.has_credential,
        include_separated=request.include_separated,
    )
    try:
        candidates = resolve_archive_candidates(
            reference.url,
            reference.ref,
            has_credential=reference.has_credential,
        )
        fetcher = ArchiveFetcher(transport or RequestsTransport(timeout=timeout))
        fetched = fetcher.fetch_first(candidates, reference.token())

        run.advance(ExportStage.NORMALIZING)
        builder = ExportBuilder(include_separated=request.include_separated)
        with contextlib.closing(ZipArchiveSource(fetched.content)) as source:
            normalized = builder.normalize(source.list_entries())
            run.advance(ExportStage.FILTERING)
            result = builder.accumulate(reference, source, normalized)

        run.advance(ExportStage.PACKAGING)
        sink = ZipArchiveSink()
        builder.package(result, sink)
        archive = sink.getvalue()
        run.advance(ExportStage.DONE)
    except Exception as e:
        run.fail(e)
        raise
    return ConvertedExport(result=result, archive=archive, source_url=fetched.url)


@dataclass(frozen=True)
class ConvertResponse:
    """What the boundary hands back: a status, a body and its headers."""

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    export: ConvertedExport | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200  # noqa: PLR2004

    def error_payload(self) -> dict[str, Any]:
        """Decode the structured error body; empty for successful responses."""
        if self.ok:
            return {}
        return json.loads(self.body)

    @classmethod
    def success(cls, export: ConvertedExport) -> ConvertResponse:
        return cls(
            status_code=200,
            body=export.archive,
            headers={
                "Content-Type": ZIP_CONTENT_TYPE,
                "Content-Disposition": f"attachment; filename={OUTPUT_FILENAME}",
            },
            export=export,
        )

    @classmethod
    def failure(cls, message: str, *, status_code: int = 500, error_type: str = "UnexpectedError") -> ConvertResponse:
        body = json.dumps({"error": message, "type": error_type}).encode("utf-8")
        return cls(status_code=status_code, body=body, headers={"Content-Type": JSON_CONTENT_TYPE})


def handle_convert_request(
    payload: Mapping[str, Any] | str | bytes,
    *,
    transport: Transport | None = None,
    timeout: float | None = None,
) -> ConvertResponse:
    """Answer one conversion request; never raises.

    Every path ends in either a 200 response carrying the zip, or an error
    response whose JSON body has an `error` message and the error `type`.

    Args:
        payload (Mapping[str, Any] | str | bytes): the raw request body
        transport (Transport | None): network capability; defaults to `requests`
        timeout (float | None): per-request timeout for the default transport

    Returns:
        ConvertResponse: the response to hand back to the caller
    """
    try:
        request = parse_request(payload)
        export = convert(request, transport=transport, timeout=timeout)
    except RepoToTextError as e:
        logger.warning("conversion failed", error_type=type(e).__name__, status=e.status_code)
        return ConvertResponse.failure(str(e), status_code=e.status_code, error_type=type(e).__name__)
    except Exception as e:
        logger.exception("unexpected conversion failure")
        return ConvertResponse.failure(str(e) or type(e).__name__)
    logger.info(
        "conversion finished",
        source_url=export.source_url,
        included_files=export.result.included_files,
        combined_filename=export.result.combined_filename,
    )
    return ConvertResponse.success(export)
