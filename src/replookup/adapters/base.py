"""Shared plumbing for the per-platform source adapters."""

from __future__ import annotations

import abc
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Tuple

import httpx

from replookup.models import RetrievalResult, TargetPerson

LOGGER = logging.getLogger(__name__)


class AdapterError(RuntimeError):
    """Raised when an upstream platform returns an unusable response."""


class SourceAdapter(abc.ABC):
    """Translate one external platform into normalized :class:`RetrievalResult` records.

    Adapters do not swallow their own failures: errors propagate to the
    retrieval orchestrator, which isolates them per adapter.
    """

    #: Identifier used in diagnostics and provenance.
    name: str = "adapter"

    @abc.abstractmethod
    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        """Return every normalized record this platform yields for ``target``."""


class HttpSourceAdapter(SourceAdapter):
    """Adapter backed by a short-lived :class:`httpx.AsyncClient` per fetch."""

    base_url: str = ""

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        user_agent: str = "ReputationLookup/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    def default_headers(self) -> Dict[str, str]:
        return {"User-Agent": self._user_agent}

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.default_headers(),
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            yield client

    async def get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = await client.get(url, params=params, headers=headers)
        return _decode(response, self.name)

    async def post_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        auth: Tuple[str, str] | None = None,
    ) -> Any:
        response = await client.post(url, json=json, data=data, headers=headers, auth=auth)
        return _decode(response, self.name)


def _decode(response: httpx.Response, adapter_name: str) -> Any:
    response.raise_for_status()
    try:
        return response.json()
    except ValueError as exc:
        raise AdapterError(f"{adapter_name} returned a non-JSON payload from {response.request.url}") from exc


def strip_handle(handle: str, *prefixes: str) -> str:
    """Remove a leading decoration such as ``@`` or ``u/`` from a handle."""

    cleaned = handle.strip()
    for prefix in prefixes:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :]
    return cleaned


__all__ = ["AdapterError", "HttpSourceAdapter", "SourceAdapter", "strip_handle"]
