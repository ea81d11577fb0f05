"""Wire models for the analysis gateway's JSON API."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skynet_review.errors import DecodeError

_SEVERITY_LABELS = {
    0: "CRITICAL",
    1: "HIGH",
    2: "MEDIUM",
    3: "LOW",
}


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SecurityFinding(_WireModel):
    """One issue reported by the service.

    ``severity_level`` counts down from 0 (critical); anything above 3 is
    informational.
    """

    id: str
    title: str
    description: str
    severity_level: int = Field(alias="severityLevel", ge=0, le=255)
    file_path: str = Field(alias="filePath")
    line_number: int | None = Field(default=None, alias="lineNumber")
    code_snippet: str | None = Field(default=None, alias="codeSnippet")
    remediation: str

    @property
    def severity_label(self) -> str:
        return _SEVERITY_LABELS.get(self.severity_level, "INFO")

    @classmethod
    def from_json(cls, text: str) -> SecurityFinding:
        """Decode one finding object, raising :class:`DecodeError` on bad input."""
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise DecodeError(
                f"Malformed finding ({exc.error_count()} error(s))"
            ) from exc


class AnalysisResult(_WireModel):
    """Per-agent result returned by the buffered analyze call."""

    agent_type: str = Field(alias="agentType")
    findings: list[SecurityFinding] = Field(default_factory=list)
    duration: str = ""
    success: bool = True
    error_message: str | None = Field(default=None, alias="errorMessage")


class HealthResponse(_WireModel):
    status: str
    service: str


class AnalysisRequest(_WireModel):
    """Files to analyze, keyed by file name."""

    file_paths: tuple[str, ...] = Field(alias="filePaths")
    file_contents: dict[str, str] = Field(alias="fileContents")
    repository_context: str | None = Field(default=None, alias="repositoryContext")

    @classmethod
    def from_sources(
        cls,
        sources: Mapping[str, str] | Iterable[tuple[str, str]],
        repository_context: str | None = None,
    ) -> AnalysisRequest:
        """Build a request from ``(name, content)`` pairs.

        A repeated name keeps the last content seen.
        """
        items = sources.items() if isinstance(sources, Mapping) else sources
        contents: dict[str, str] = {}
        for name, content in items:
            contents[name] = content
        return cls(
            file_paths=tuple(contents),
            file_contents=contents,
            repository_context=repository_context,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
