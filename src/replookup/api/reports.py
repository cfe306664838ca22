"""Report generation API router."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from replookup.models import TargetPerson
from replookup.services.reputation import ReputationService, build_reputation_service

router = APIRouter(prefix="/reports", tags=["reports"])
LOGGER = logging.getLogger(__name__)


class GenerateReportRequest(BaseModel):
    """Request body: ``{"targetPerson": {...}}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_person: TargetPerson


@lru_cache(maxsize=1)
def get_reputation_service() -> ReputationService:
    """Dependency provider returning the shared ReputationService instance."""

    return build_reputation_service()


@router.post("/generate")
async def generate_report(
    payload: GenerateReportRequest,
    service: ReputationService = Depends(get_reputation_service),
) -> JSONResponse:
    """Run the full lookup pipeline and return the assembled report."""

    try:
        report = await service.generate_report(payload.target_person)
    except Exception:
        LOGGER.exception("Error generating report for %s", payload.target_person.name)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to generate report"},
        )
    return JSONResponse(content=report.model_dump(mode="json", by_alias=True))


__all__ = ["GenerateReportRequest", "get_reputation_service", "router"]
