"""Append-only persistence of retrieval sessions and their raw results."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional, Protocol, Sequence

from google.cloud import firestore

from replookup.models import RetrievalResult, TargetPerson

LOGGER = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _strip_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


class StorageError(RuntimeError):
    """Raised when Firestore writes fail."""


class RetrievalSink(Protocol):
    """Write-only collaborator receiving retrieval lifecycle documents."""

    async def record_session_started(self, retrieval_id: str, target: TargetPerson) -> None: ...

    async def record_session_completed(self, retrieval_id: str, results: Sequence[RetrievalResult]) -> None: ...


class NullRetrievalSink:
    """Sink used when persistence is disabled (local runs, tests)."""

    async def record_session_started(self, retrieval_id: str, target: TargetPerson) -> None:
        LOGGER.debug("Persistence disabled; session %s not recorded", retrieval_id)

    async def record_session_completed(self, retrieval_id: str, results: Sequence[RetrievalResult]) -> None:
        LOGGER.debug("Persistence disabled; %s result(s) for %s not recorded", len(results), retrieval_id)


class FirestoreRetrievalSink:
    """Persist retrieval sessions and results into Firestore using batch writes.

    Sessions live at ``<sessions_collection>/<retrieval_id>``; every result is
    stored at ``<results_collection>/<retrieval_id>_<index>``. Documents are
    written once and the session is updated at most once on completion.
    """

    def __init__(
        self,
        *,
        project: str,
        sessions_collection: str = "retrievalSessions",
        results_collection: str = "retrievalResults",
        batch_size: int = 400,
        client: Optional[firestore.AsyncClient] = None,
    ) -> None:
        if not project:
            raise ValueError("FirestoreRetrievalSink requires a project ID")
        if not sessions_collection or not results_collection:
            raise ValueError("FirestoreRetrievalSink requires collection names")

        self._client = client or firestore.AsyncClient(project=project)
        self._sessions = self._client.collection(sessions_collection)
        self._results = self._client.collection(results_collection)
        # Firestore batches are capped at 500 operations.
        self._batch_size = max(1, min(batch_size, 500))

    async def record_session_started(self, retrieval_id: str, target: TargetPerson) -> None:
        payload = {
            "targetPerson": _strip_none(
                {
                    "name": target.name,
                    "email": target.email,
                    "socialHandles": {platform.value: handle for platform, handle in target.social_handles.items()},
                }
            ),
            "startedAt": _utcnow_iso(),
            "status": "in_progress",
        }
        try:
            await self._sessions.document(retrieval_id).set(payload)
        except Exception as exc:
            raise StorageError(f"Failed to store retrieval session {retrieval_id}: {exc}") from exc

    async def record_session_completed(self, retrieval_id: str, results: Sequence[RetrievalResult]) -> None:
        stored_at = _utcnow_iso()
        session_ref = self._sessions.document(retrieval_id)
        try:
            async with self._batched() as queue:
                # Merge so a lost "started" write does not sink the whole batch.
                await queue(
                    session_ref,
                    {"status": "completed", "completedAt": stored_at, "resultCount": len(results)},
                    merge=True,
                )
                for index, result in enumerate(results):
                    document = {
                        "retrievalId": retrieval_id,
                        **result.model_dump(mode="json", by_alias=True),
                        "storedAt": stored_at,
                    }
                    await queue(self._results.document(f"{retrieval_id}_{index}"), document)
        except Exception as exc:
            raise StorageError(f"Failed to store retrieval results for {retrieval_id}: {exc}") from exc

    @asynccontextmanager
    async def _batched(self) -> AsyncIterator[Any]:
        batch = self._client.batch()
        operations = 0

        async def _commit() -> None:
            nonlocal batch, operations
            if operations == 0:
                return
            await batch.commit()
            batch = self._client.batch()
            operations = 0

        async def _queue(doc_ref: Any, payload: Dict[str, Any], merge: bool = False) -> None:
            nonlocal operations
            batch.set(doc_ref, payload, merge=merge)
            operations += 1
            if operations >= self._batch_size:
                await _commit()

        yield _queue
        await _commit()


__all__ = ["FirestoreRetrievalSink", "NullRetrievalSink", "RetrievalSink", "StorageError"]
