"""Fold categorized records and model summaries into a :class:`ReputationReport`."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Mapping, Optional, Protocol, Sequence
from uuid import uuid4

from replookup.models import (
    CATEGORY_DISPLAY_NAMES,
    AnalysisCategory,
    CategoryKey,
    DataSource,
    FlaggedContent,
    PhotoMatchResult,
    PhotoMatchSummary,
    ReputationReport,
    RetrievalResult,
    TargetPerson,
    utcnow_iso,
)

from .summarizer import CategoryAnalysis, FlagCandidate

LOGGER = logging.getLogger(__name__)

CATEGORY_FALLBACK = "AI analysis unavailable."
SUMMARY_FALLBACK = "AI summary unavailable."
CONTENT_SEPARATOR = "\n\n"

LIMITATIONS = (
    "Analysis limited to publicly available information",
    "Some social media accounts may be private or restricted",
    "Historical data beyond 24 months may be incomplete",
    "AI analysis may miss context or nuance in some content",
)


class TextAnalyzer(Protocol):
    async def analyze(self, content: str, category: str) -> CategoryAnalysis: ...

    async def summarize_report(
        self, category_results: Mapping[str, AnalysisCategory], target: TargetPerson
    ) -> str: ...


def generate_report_id() -> str:
    return f"report-{int(time.time() * 1000)}-{uuid4().hex[:6]}"


def split_analysis(analysis: str) -> tuple[str, str]:
    """First line is the summary, the remainder the reasoning."""

    first, _, rest = analysis.strip().partition("\n")
    return first.strip(), rest.strip()


def contributing_platforms(records: Sequence[RetrievalResult]) -> List[str]:
    platforms: List[str] = []
    for record in records:
        if record.platform not in platforms:
            platforms.append(record.platform)
    return platforms


def attach_flags(candidates: Sequence[FlagCandidate], sources: Sequence[DataSource]) -> List[FlaggedContent]:
    """Keep only flags whose URL resolves to one of the category's sources."""

    by_url: Dict[str, DataSource] = {}
    for source in sources:
        by_url.setdefault(source.url, source)
    flagged: List[FlaggedContent] = []
    for candidate in candidates:
        source = by_url.get(candidate.url) if isinstance(candidate.url, str) else None
        if source is None:
            LOGGER.debug("Dropping flag with unknown source url %s", candidate.url)
            continue
        flagged.append(
            FlaggedContent(content=candidate.content, reason=candidate.reason, severity=candidate.severity, source=source)
        )
    return flagged


class ReportAssembler:
    """Drive per-category analysis and the overall summary for one report.

    Empty categories never reach the model. A failed call only replaces that
    piece of text with a fixed fallback string; assembly itself never fails on
    summarizer errors.
    """

    def __init__(self, *, summarizer: TextAnalyzer, separator: str = CONTENT_SEPARATOR) -> None:
        self.summarizer = summarizer
        self.separator = separator

    async def assemble(
        self,
        target: TargetPerson,
        records: Sequence[RetrievalResult],
        categorized: Mapping[CategoryKey, Sequence[RetrievalResult]],
        *,
        photo_matches: Optional[List[PhotoMatchResult]] = None,
        photo_match_summary: Optional[PhotoMatchSummary] = None,
    ) -> ReputationReport:
        keys = list(CATEGORY_DISPLAY_NAMES)
        analyzed = await asyncio.gather(*(self._analyze_category(key, categorized.get(key, ())) for key in keys))
        categories: Dict[CategoryKey, AnalysisCategory] = dict(zip(keys, analyzed))

        try:
            overall_summary = await self.summarizer.summarize_report(
                {key.value: category for key, category in categories.items()}, target
            )
        except Exception:
            LOGGER.exception("Overall report summary failed; using fallback text")
            overall_summary = SUMMARY_FALLBACK

        return ReputationReport(
            id=generate_report_id(),
            target_person=target,
            generated_at=utcnow_iso(),
            categories=categories,
            overall_summary=overall_summary,
            data_sources_used=contributing_platforms(records),
            limitations=list(LIMITATIONS),
            photo_matches=photo_matches or [],
            photo_match_summary=photo_match_summary,
        )

    async def _analyze_category(self, key: CategoryKey, records: Sequence[RetrievalResult]) -> AnalysisCategory:
        name = CATEGORY_DISPLAY_NAMES[key]
        sources = [DataSource.from_result(record) for record in records]
        joined = self.separator.join(source.content for source in sources)
        if not joined.strip():
            return AnalysisCategory(name=name, sources=sources)

        try:
            result = await self.summarizer.analyze(joined, name)
        except Exception:
            LOGGER.exception("Analysis failed for category %s; using fallback text", key.value)
            return AnalysisCategory(name=name, summary=CATEGORY_FALLBACK, reasoning="", sources=sources)

        summary, reasoning = split_analysis(result.analysis)
        try:
            flagged = attach_flags(result.flagged, sources)
        except Exception:
            LOGGER.exception("Dropping unusable flags for category %s", key.value)
            flagged = []
        return AnalysisCategory(
            name=name,
            summary=summary,
            reasoning=reasoning,
            flagged_content=flagged,
            sources=sources,
        )


__all__ = [
    "CATEGORY_FALLBACK",
    "LIMITATIONS",
    "ReportAssembler",
    "SUMMARY_FALLBACK",
    "TextAnalyzer",
    "attach_flags",
    "contributing_platforms",
    "generate_report_id",
    "split_analysis",
]
