"""Tests for the report generation endpoint."""

from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from replookup.api.app import create_app
from replookup.api.reports import get_reputation_service
from replookup.models import AnalysisCategory, CategoryKey, ReputationReport, TargetPerson


class _StubReputationService:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.targets = []

    async def generate_report(self, target: TargetPerson) -> ReputationReport:
        self.targets.append(target)
        if self.error:
            raise self.error
        return ReputationReport(
            id="report-1",
            target_person=target,
            generated_at="2024-01-01T00:00:00+00:00",
            categories={key: AnalysisCategory(name=key.value) for key in CategoryKey},
            overall_summary="All good.",
            data_sources_used=["GitHub"],
            limitations=["Analysis limited to publicly available information"],
        )


@pytest.fixture
def app():
    application = create_app()
    yield application
    application.dependency_overrides = {}


def test_generate_report_returns_camel_case_report(app):
    service = _StubReputationService()
    app.dependency_overrides[get_reputation_service] = lambda: service
    client = TestClient(app)

    response = client.post(
        "/reports/generate",
        json={
            "targetPerson": {
                "name": "Ada",
                "socialHandles": {"github": "ada"},
                "photo": base64.b64encode(b"img").decode(),
            }
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "report-1"
    assert body["targetPerson"]["socialHandles"] == {"github": "ada"}
    assert "photo" not in body["targetPerson"]
    assert set(body["categories"]) == {key.value for key in CategoryKey}
    assert body["dataSourcesUsed"] == ["GitHub"]
    assert body["overallSummary"] == "All good."
    assert service.targets[0].photo == b"img"


def test_generate_report_failures_return_generic_error(app):
    app.dependency_overrides[get_reputation_service] = lambda: _StubReputationService(error=RuntimeError("boom"))
    client = TestClient(app)

    response = client.post("/reports/generate", json={"targetPerson": {"name": "Ada"}})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate report"}


def test_generate_report_rejects_missing_name(app):
    service = _StubReputationService()
    app.dependency_overrides[get_reputation_service] = lambda: service
    client = TestClient(app)

    response = client.post("/reports/generate", json={"targetPerson": {"name": ""}})

    assert response.status_code == 422
    assert service.targets == []


def test_generate_report_rejects_unknown_platform(app):
    app.dependency_overrides[get_reputation_service] = lambda: _StubReputationService()
    client = TestClient(app)

    response = client.post(
        "/reports/generate", json={"targetPerson": {"name": "Ada", "socialHandles": {"myspace": "ada"}}}
    )

    assert response.status_code == 422


def test_healthcheck(app):
    response = TestClient(app).get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
