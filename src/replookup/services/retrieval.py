"""Concurrent fan-out across every configured source adapter."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence
from uuid import uuid4

from replookup.adapters import SourceAdapter
from replookup.models import RetrievalResult, TargetPerson
from replookup.observability import Observability, get_observability
from replookup.settings import Settings, get_settings

from .firestore_sink import NullRetrievalSink, RetrievalSink

LOGGER = logging.getLogger(__name__)

AdapterFactory = Callable[[], Sequence[SourceAdapter]]


class RetrievalError(RuntimeError):
    """Raised when a retrieval batch cannot even be started."""


@dataclass(slots=True)
class AdapterFailure:
    """Diagnostic for one adapter that contributed no records."""

    index: int
    adapter: str
    reason: str


@dataclass(slots=True)
class RetrievalBatch:
    """Merged records plus per-adapter diagnostics for one retrieval run."""

    retrieval_id: str
    results: List[RetrievalResult] = field(default_factory=list)
    failures: List[AdapterFailure] = field(default_factory=list)


async def best_effort(operation: Awaitable[None], *, description: str) -> None:
    """Await an optional side effect, logging and discarding any failure."""

    try:
        await operation
    except Exception:
        LOGGER.exception("Best-effort %s failed; continuing without it", description)


class RetrievalService:
    """Query every adapter concurrently and merge whatever comes back.

    A failing or slow adapter only removes its own records from the batch;
    siblings are never cancelled. The only fatal condition is a failure
    outside the fan-out itself, surfaced as :class:`RetrievalError`.
    """

    def __init__(
        self,
        *,
        adapter_factory: AdapterFactory | None = None,
        adapters: Sequence[SourceAdapter] | None = None,
        sink: RetrievalSink | None = None,
        settings: Settings | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if adapter_factory is None:
            if adapters is not None:
                fixed = list(adapters)
                adapter_factory = lambda: fixed  # noqa: E731
            else:
                from .factories import build_source_adapters

                adapter_factory = lambda: build_source_adapters(self.settings)  # noqa: E731
        self._adapter_factory = adapter_factory
        self.sink = sink or NullRetrievalSink()
        self.observability = observability or get_observability(component="retrieval", settings=self.settings)
        self._adapter_timeout = self.settings.retrieval.adapter_timeout_seconds

    async def retrieve_all(self, target: TargetPerson) -> List[RetrievalResult]:
        """Return the merged record set for ``target``."""

        batch = await self.retrieve(target)
        return batch.results

    async def retrieve(self, target: TargetPerson) -> RetrievalBatch:
        """Run one retrieval session and return records with failure diagnostics."""

        batch = RetrievalBatch(retrieval_id=f"retrieval-{int(time.time() * 1000)}-{uuid4().hex[:6]}")
        started = time.perf_counter()
        try:
            adapters = list(self._adapter_factory())
            await best_effort(
                self.sink.record_session_started(batch.retrieval_id, target),
                description="session start write",
            )

            outcomes = await asyncio.gather(
                *(self._run_adapter(adapter, target) for adapter in adapters),
                return_exceptions=True,
            )

            for index, (adapter, outcome) in enumerate(zip(adapters, outcomes)):
                if isinstance(outcome, BaseException):
                    self._record_failure(batch, index, adapter, outcome)
                    continue
                batch.results.extend(outcome)
                self.observability.increment(
                    "retrieval.adapter.records", value=float(len(outcome)), tags={"adapter": adapter.name}
                )

            await best_effort(
                self.sink.record_session_completed(batch.retrieval_id, batch.results),
                description="session completion write",
            )
        except Exception as exc:
            LOGGER.exception("Retrieval session %s failed before completing the fan-out", batch.retrieval_id)
            raise RetrievalError("Failed to retrieve data from sources") from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.observability.record_timing("retrieval.duration_ms", elapsed_ms)
        self.observability.emit_event(
            "retrieval.completed",
            retrieval_id=batch.retrieval_id,
            adapters=len(adapters),
            results=len(batch.results),
            failures=[failure.adapter for failure in batch.failures],
            duration_ms=round(elapsed_ms, 2),
        )
        return batch

    async def _run_adapter(self, adapter: SourceAdapter, target: TargetPerson) -> List[RetrievalResult]:
        records = await asyncio.wait_for(adapter.fetch(target), timeout=self._adapter_timeout)
        normalized = list(records or [])
        for record in normalized:
            if not isinstance(record, RetrievalResult):
                raise TypeError(f"{adapter.name} returned a non-normalized record of type {type(record).__name__}")
        return normalized

    def _record_failure(
        self, batch: RetrievalBatch, index: int, adapter: SourceAdapter, error: BaseException
    ) -> None:
        if isinstance(error, asyncio.TimeoutError):
            reason = f"timed out after {self._adapter_timeout:g}s"
        else:
            reason = f"{type(error).__name__}: {error}"
        batch.failures.append(AdapterFailure(index=index, adapter=adapter.name, reason=reason))
        LOGGER.error("Retrieval failed for source %s (%s): %s", index, adapter.name, reason)
        self.observability.increment("retrieval.adapter.failures", tags={"adapter": adapter.name})
        self.observability.emit_event(
            "retrieval.adapter_failed",
            retrieval_id=batch.retrieval_id,
            index=index,
            adapter=adapter.name,
            reason=reason,
        )


__all__ = [
    "AdapterFailure",
    "RetrievalBatch",
    "RetrievalError",
    "RetrievalService",
    "best_effort",
]
