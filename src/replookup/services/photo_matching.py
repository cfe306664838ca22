"""Approximate photo-identity matching across retrieved profile images.

Scores come from :mod:`replookup.vision`, whose comparison is a detection
confidence proxy rather than biometric similarity. Matches are leads for
manual verification, never identity proof.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from replookup.models import Platform, PhotoMatchResult, PhotoMatchSummary, RecordType, RetrievalResult
from replookup.observability import Observability, get_observability
from replookup.settings import Settings, get_settings
from replookup.vision import FaceAnnotation, ImageAnalyzer

LOGGER = logging.getLogger(__name__)

# Reddit's stock avatar carries no identifying information.
DEFAULT_PLACEHOLDER_AVATARS = frozenset({"https://www.redditstatic.com/avatars/avatar_default_02_A5A4A4.png"})

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6
MANUAL_REVIEW_BELOW = 0.7


def _path(content: Any, *keys: str) -> Optional[str]:
    current = content
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, str) and current else None


def _first(content: Any, *paths: Sequence[str]) -> Optional[str]:
    for path in paths:
        value = _path(content, *path)
        if value:
            return value
    return None


ImageProjection = Callable[[Any], Optional[str]]

PROFILE_IMAGE_PROJECTIONS: Dict[str, ImageProjection] = {
    Platform.TWITTER.value: lambda content: _first(content, ("profileImageUrl",)),
    Platform.YOUTUBE.value: lambda content: _first(
        content,
        ("thumbnails", "high", "url"),
        ("thumbnails", "medium", "url"),
        ("thumbnails", "default", "url"),
    ),
    Platform.GITHUB.value: lambda content: _first(content, ("profile", "avatar_url"), ("avatar_url",)),
    Platform.LINKEDIN.value: lambda content: _first(content, ("profilePicture",), ("profileImageUrl",)),
    Platform.REDDIT.value: lambda content: _first(content, ("iconImg",), ("profileImg",)),
}


@dataclass(frozen=True, slots=True)
class ProfileImageCandidate:
    platform: str
    profile_url: str
    image_url: str


def extract_profile_images(
    records: Sequence[RetrievalResult],
    *,
    placeholders: frozenset[str] = DEFAULT_PLACEHOLDER_AVATARS,
) -> List[ProfileImageCandidate]:
    """Locate one candidate image per profile record using the projection table."""

    candidates: List[ProfileImageCandidate] = []
    for record in records:
        if record.type is not RecordType.PROFILE or not record.content:
            continue
        projection = PROFILE_IMAGE_PROJECTIONS.get(record.platform)
        if projection is None:
            continue
        image_url = projection(record.content)
        if not image_url or image_url in placeholders:
            continue
        candidates.append(ProfileImageCandidate(platform=record.platform, profile_url=record.url, image_url=image_url))
    return candidates


class ImageDownloadError(RuntimeError):
    """Raised when a candidate image cannot be fetched within limits."""


class PhotoMatcher:
    """Rank retrieved profile images by their match against a reference photo."""

    def __init__(
        self,
        *,
        analyzer: ImageAnalyzer,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.analyzer = analyzer
        self._transport = transport
        self._config = self.settings.photo_matching
        self.observability = observability or get_observability(component="photo_matching", settings=self.settings)

    async def match(
        self,
        reference_photo: bytes,
        records: Sequence[RetrievalResult],
        min_confidence: float | None = None,
    ) -> List[PhotoMatchResult]:
        threshold = self._config.min_confidence if min_confidence is None else min_confidence
        started = time.perf_counter()

        reference_faces = await self.analyzer.detect_faces(reference_photo)
        if not reference_faces:
            LOGGER.warning("No faces detected in reference photo; skipping profile image comparison")
            return []

        candidates = extract_profile_images(records)
        if not candidates:
            return []

        timeout = httpx.Timeout(self.settings.sources.request_timeout_seconds)
        async with httpx.AsyncClient(
            timeout=timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": self.settings.sources.user_agent},
        ) as client:
            outcomes = await asyncio.gather(
                *(
                    asyncio.wait_for(
                        self._score_candidate(client, reference_faces, candidate),
                        timeout=self._config.candidate_timeout_seconds,
                    )
                    for candidate in candidates
                ),
                return_exceptions=True,
            )

        matches: List[PhotoMatchResult] = []
        for candidate, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                LOGGER.warning(
                    "Face matching failed for %s (%s): %s: %s",
                    candidate.platform,
                    candidate.image_url,
                    type(outcome).__name__,
                    outcome,
                )
                continue
            if outcome is not None and outcome.match_confidence >= threshold:
                matches.append(outcome)

        matches.sort(key=lambda item: item.match_confidence, reverse=True)
        ranked = matches[: self._config.max_matches]
        self.observability.emit_event(
            "photo_match.completed",
            candidates=len(candidates),
            matches=len(ranked),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return ranked

    async def _score_candidate(
        self,
        client: httpx.AsyncClient,
        reference_faces: Sequence[FaceAnnotation],
        candidate: ProfileImageCandidate,
    ) -> Optional[PhotoMatchResult]:
        image = await self.download_image(client, candidate.image_url)
        candidate_faces = await self.analyzer.detect_faces(image)
        if not candidate_faces:
            LOGGER.debug("No faces detected in %s", candidate.image_url)
            return None
        comparison = self.analyzer.compare_detections(reference_faces, candidate_faces)
        return PhotoMatchResult(
            platform=candidate.platform,
            profile_url=candidate.profile_url,
            image_url=candidate.image_url,
            match_confidence=max(0.0, min(1.0, comparison.confidence)),
            face_data={
                "targetFace": reference_faces[0].to_dict(),
                "profileFace": candidate_faces[0].to_dict(),
                "comparison": comparison.to_dict(),
            },
        )

    async def download_image(self, client: httpx.AsyncClient, url: str) -> bytes:
        limit = self._config.max_image_bytes
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            declared = response.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > limit:
                raise ImageDownloadError(f"{url} exceeds {limit} bytes")
            chunks = bytearray()
            async for chunk in response.aiter_bytes():
                chunks.extend(chunk)
                if len(chunks) > limit:
                    raise ImageDownloadError(f"{url} exceeds {limit} bytes")
        if not chunks:
            raise ImageDownloadError(f"{url} returned an empty body")
        return bytes(chunks)


def _confidence_level(confidence: float) -> str:
    if confidence >= HIGH_CONFIDENCE:
        return "High"
    if confidence >= MEDIUM_CONFIDENCE:
        return "Medium"
    return "Low"


def _recommendations(matches: Sequence[PhotoMatchResult], platforms: Sequence[str]) -> List[str]:
    if not matches:
        return ["No facial matches found. Consider providing additional photos or social media handles."]

    recommendations: List[str] = []
    high = sum(1 for match in matches if match.match_confidence >= HIGH_CONFIDENCE)
    if high:
        recommendations.append(f"Found {high} high-confidence facial matches across platforms.")
    if len(platforms) > 1:
        recommendations.append(
            f"Facial recognition identified profiles across {len(platforms)} platforms: {', '.join(platforms)}."
        )
    if any(match.match_confidence < MANUAL_REVIEW_BELOW for match in matches):
        recommendations.append("Some matches have lower confidence. Manual verification recommended for accuracy.")
    return recommendations


def summarize_matches(matches: Sequence[PhotoMatchResult]) -> PhotoMatchSummary:
    """Digest a ranked match list into counts, per-match levels and recommendations."""

    platforms: List[str] = []
    for match in matches:
        if match.platform not in platforms:
            platforms.append(match.platform)
    return PhotoMatchSummary(
        total_matches=len(matches),
        high_confidence_matches=sum(1 for m in matches if m.match_confidence >= HIGH_CONFIDENCE),
        medium_confidence_matches=sum(
            1 for m in matches if MEDIUM_CONFIDENCE <= m.match_confidence < HIGH_CONFIDENCE
        ),
        platforms_covered=platforms,
        matches=[
            {
                "platform": match.platform,
                "profileUrl": match.profile_url,
                "confidence": round(match.match_confidence * 100),
                "confidenceLevel": _confidence_level(match.match_confidence),
            }
            for match in matches
        ],
        recommendations=_recommendations(matches, platforms),
    )


__all__ = [
    "DEFAULT_PLACEHOLDER_AVATARS",
    "ImageDownloadError",
    "PROFILE_IMAGE_PROJECTIONS",
    "PhotoMatcher",
    "ProfileImageCandidate",
    "extract_profile_images",
    "summarize_matches",
]
