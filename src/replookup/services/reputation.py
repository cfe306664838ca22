"""End-to-end report generation: retrieve, categorize, assemble, match photos."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

from replookup.models import PhotoMatchResult, PhotoMatchSummary, ReputationReport, RetrievalResult, TargetPerson
from replookup.observability import Observability, get_observability
from replookup.settings import Settings, get_settings

from .categorizer import categorize
from .photo_matching import PhotoMatcher, summarize_matches
from .report import ReportAssembler
from .retrieval import RetrievalService

LOGGER = logging.getLogger(__name__)


class ReputationService:
    """Coordinate the pipeline for one :class:`TargetPerson` per call."""

    def __init__(
        self,
        *,
        retrieval: RetrievalService,
        assembler: ReportAssembler,
        photo_matcher: Optional[PhotoMatcher] = None,
        settings: Settings | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.retrieval = retrieval
        self.assembler = assembler
        self.photo_matcher = photo_matcher
        self.observability = observability or get_observability(component="reputation", settings=self.settings)

    async def generate_report(self, target: TargetPerson) -> ReputationReport:
        started = time.perf_counter()
        records = await self.retrieval.retrieve_all(target)
        categorized = categorize(records)

        photo_matches: List[PhotoMatchResult] = []
        photo_summary: Optional[PhotoMatchSummary] = None
        if target.photo:
            photo_matches = await self._match_photo(target.photo, records)
            photo_summary = summarize_matches(photo_matches)

        report = await self.assembler.assemble(
            target,
            records,
            categorized,
            photo_matches=photo_matches,
            photo_match_summary=photo_summary,
        )
        self.observability.emit_event(
            "report.generated",
            report_id=report.id,
            records=len(records),
            platforms=report.data_sources_used,
            photo_matches=len(photo_matches),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return report

    async def _match_photo(self, photo: bytes, records: Sequence[RetrievalResult]) -> List[PhotoMatchResult]:
        if self.photo_matcher is None:
            LOGGER.info("Photo supplied but no image analyzer is configured; skipping photo matching")
            return []
        try:
            return await self.photo_matcher.match(photo, records)
        except Exception:
            LOGGER.exception("Photo matching failed; continuing without matches")
            return []


def build_reputation_service(*, settings: Settings | None = None) -> ReputationService:
    """Wire the default collaborators from configuration."""

    from .factories import build_image_analyzer, build_retrieval_sink, build_text_summarizer

    resolved = settings or get_settings()
    retrieval = RetrievalService(sink=build_retrieval_sink(settings=resolved), settings=resolved)
    assembler = ReportAssembler(summarizer=build_text_summarizer(settings=resolved))
    try:
        photo_matcher: Optional[PhotoMatcher] = PhotoMatcher(analyzer=build_image_analyzer(), settings=resolved)
    except Exception:
        LOGGER.exception("Image analyzer unavailable; photo matching disabled")
        photo_matcher = None
    return ReputationService(
        retrieval=retrieval,
        assembler=assembler,
        photo_matcher=photo_matcher,
        settings=resolved,
    )


__all__ = ["ReputationService", "build_reputation_service"]
