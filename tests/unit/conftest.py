"""Shared fixtures for the replookup unit tests."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest

from replookup.models import RecordType, RetrievalResult
from replookup.observability import reset_observability_cache
from replookup.settings.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _reset_cached_settings():
    yield
    get_settings.cache_clear()
    reset_observability_cache()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _SpyObservability:
    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.increments: List[Tuple[str, float, Dict[str, str]]] = []
        self.timings: List[Tuple[str, float]] = []

    def emit_event(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def increment(self, metric: str, *, value: float = 1.0, tags: Dict[str, str] | None = None) -> None:
        self.increments.append((metric, value, dict(tags or {})))

    def record_timing(self, metric: str, value_ms: float, *, tags: Dict[str, str] | None = None) -> None:
        self.timings.append((metric, value_ms))

    def event_names(self) -> List[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def spy_observability() -> _SpyObservability:
    return _SpyObservability()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="local",
        retrieval={"adapter_timeout_seconds": 0.5},
        photo_matching={"candidate_timeout_seconds": 0.5, "max_image_bytes": 1024},
        llm={"provider": "mock"},
    )


def make_record(platform: str, record_type: RecordType = RecordType.POST, **overrides: Any) -> RetrievalResult:
    payload: Dict[str, Any] = {
        "platform": platform,
        "type": record_type,
        "content": {"text": f"{platform} {record_type.value}"},
        "url": f"https://example.com/{platform.lower().replace(' ', '-')}/{record_type.value}",
        "source": "test",
        "timestamp": "2024-01-01T00:00:00+00:00",
    }
    payload.update(overrides)
    return RetrievalResult(**payload)


@pytest.fixture
def record_factory():
    return make_record
