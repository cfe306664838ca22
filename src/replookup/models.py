"""Pydantic models shared by the retrieval, matching, and report pipeline."""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def coerce_timestamp(value: Any) -> str:
    """Normalize a platform timestamp, defaulting to the retrieval time.

    Unix epoch numbers (Reddit's ``created_utc``) are converted to ISO-8601;
    empty values fall back to ``now``.
    """

    if value is None:
        return utcnow_iso()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, bool):
        return utcnow_iso()
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc).isoformat()
    text = str(value).strip()
    return text or utcnow_iso()


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SocialPlatform(str, Enum):
    """Platforms a caller may supply a known handle for."""

    LINKEDIN = "linkedin"
    REDDIT = "reddit"
    TWITTER = "twitter"
    YOUTUBE = "youtube"
    GITHUB = "github"
    INSTAGRAM = "instagram"


class RecordType(str, Enum):
    """Kinds of records an adapter may emit."""

    PROFILE = "profile"
    POST = "post"
    COMMENT = "comment"
    ARTICLE = "article"
    VIDEO = "video"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Platform(str, Enum):
    """Platform names emitted by the built-in adapters.

    ``RetrievalResult.platform`` is a free string; new adapters may introduce
    names outside this list.
    """

    LINKEDIN = "LinkedIn"
    GITHUB = "GitHub"
    TWITTER = "Twitter"
    REDDIT = "Reddit"
    YOUTUBE = "YouTube"
    GOOGLE_NEWS = "Google News"
    GOOGLE_SEARCH = "Google Search"
    PERPLEXITY = "Perplexity"


class CategoryKey(str, Enum):
    """The six fixed reputation dimensions."""

    PROFESSIONAL_CONDUCT = "professionalConduct"
    PUBLIC_STATEMENTS = "publicStatements"
    SOCIAL_BEHAVIOR = "socialBehavior"
    CONTROVERSIES = "controversies"
    EXPERTISE = "expertise"
    CREDIBILITY = "credibility"


CATEGORY_DISPLAY_NAMES: Dict[CategoryKey, str] = {
    CategoryKey.PROFESSIONAL_CONDUCT: "Professional Conduct",
    CategoryKey.PUBLIC_STATEMENTS: "Public Statements",
    CategoryKey.SOCIAL_BEHAVIOR: "Social Behavior",
    CategoryKey.CONTROVERSIES: "Controversies",
    CategoryKey.EXPERTISE: "Expertise & Credibility",
    CategoryKey.CREDIBILITY: "Overall Credibility",
}


class TargetPerson(_CamelModel):
    """The person a report is generated for. Immutable once submitted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    email: str | None = None
    social_handles: Mapping[SocialPlatform, str] = Field(default_factory=dict, validate_default=True)
    photo: bytes | None = Field(default=None, exclude=True)
    photo_content_type: str | None = Field(default=None, exclude=True)

    @field_validator("photo", mode="before")
    @classmethod
    def _decode_photo(cls, value: Any) -> Any:
        # JSON bodies carry the photo base64-encoded; Python callers pass raw bytes.
        if isinstance(value, str):
            if not value.strip():
                return None
            _, _, encoded = value.partition("base64,") if value.startswith("data:") else ("", "", value)
            try:
                return base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ValueError("photo must be base64-encoded image data") from exc
        return value

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("social_handles", mode="after")
    @classmethod
    def _freeze_handles(cls, value: Mapping[SocialPlatform, str]) -> Mapping[SocialPlatform, str]:
        # Read-only view so the frozen model cannot be changed through its handle map.
        return MappingProxyType(
            {platform: handle.strip() for platform, handle in value.items() if handle and handle.strip()}
        )

    @field_serializer("social_handles")
    def _dump_handles(self, value: Mapping[SocialPlatform, str]) -> Dict[SocialPlatform, str]:
        return dict(value)

    def handle(self, platform: SocialPlatform) -> str | None:
        """Return the caller-supplied handle for ``platform`` if any."""

        return self.social_handles.get(platform)


class RetrievalResult(_CamelModel):
    """Canonical normalized record produced by every source adapter."""

    platform: str
    type: RecordType
    content: Any = None
    url: str
    timestamp: str = Field(default_factory=utcnow_iso)
    source: str
    confidence: float | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _default_timestamp(cls, value: Any) -> str:
        return coerce_timestamp(value)


def project_content(content: Any) -> str:
    """Project opaque record content to text; non-strings become compact JSON."""

    if isinstance(content, str):
        return content
    return json.dumps(content, separators=(",", ":"), ensure_ascii=False, default=str)


class DataSource(_CamelModel):
    """Display projection of a :class:`RetrievalResult` with string content."""

    platform: str
    url: str
    content: str
    timestamp: str
    type: RecordType

    @classmethod
    def from_result(cls, result: RetrievalResult) -> "DataSource":
        return cls(
            platform=result.platform,
            url=result.url,
            content=project_content(result.content),
            timestamp=result.timestamp,
            type=result.type,
        )


class FlaggedContent(_CamelModel):
    content: str
    reason: str
    severity: Severity
    source: DataSource


class AnalysisCategory(_CamelModel):
    """One reputation dimension with its summarized findings."""

    name: str
    summary: str = ""
    reasoning: str = ""
    flagged_content: List[FlaggedContent] = Field(default_factory=list)
    sources: List[DataSource] = Field(default_factory=list)


class PhotoMatchResult(_CamelModel):
    platform: str
    profile_url: str
    image_url: str
    match_confidence: float = Field(ge=0.0, le=1.0)
    face_data: Any = None


class PhotoMatchSummary(_CamelModel):
    """Human-oriented digest of a ranked match list."""

    total_matches: int
    high_confidence_matches: int
    medium_confidence_matches: int
    platforms_covered: List[str] = Field(default_factory=list)
    matches: List[Dict[str, Any]] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ReputationReport(_CamelModel):
    """Final assembled report. Created once per request and never updated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    target_person: TargetPerson
    generated_at: str
    categories: Dict[CategoryKey, AnalysisCategory]
    overall_summary: str | None = None
    data_sources_used: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    photo_matches: List[PhotoMatchResult] = Field(default_factory=list)
    photo_match_summary: PhotoMatchSummary | None = None


__all__ = [
    "AnalysisCategory",
    "CATEGORY_DISPLAY_NAMES",
    "CategoryKey",
    "DataSource",
    "FlaggedContent",
    "PhotoMatchResult",
    "PhotoMatchSummary",
    "Platform",
    "RecordType",
    "ReputationReport",
    "RetrievalResult",
    "Severity",
    "SocialPlatform",
    "TargetPerson",
    "coerce_timestamp",
    "project_content",
    "utcnow_iso",
]
