"""Factory helpers that instantiate pipeline collaborators from configuration.

These helpers centralize the logic for honoring :mod:`replookup.settings`:
which source adapters have credentials, which storage backend receives
retrieval sessions, and which model provider backs summarization.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from replookup.adapters import (
    GitHubAdapter,
    LinkedInAdapter,
    PerplexityAdapter,
    RedditAdapter,
    SerpApiAdapter,
    SourceAdapter,
    TwitterAdapter,
    YouTubeAdapter,
)
from replookup.settings import Settings, get_settings

from .firestore_sink import FirestoreRetrievalSink, NullRetrievalSink, RetrievalSink

LOGGER = logging.getLogger(__name__)


def _perplexity(settings: Settings, **http) -> SourceAdapter | None:
    sources = settings.sources
    if not sources.perplexity_api_key:
        return None
    return PerplexityAdapter(api_key=sources.perplexity_api_key, model=sources.perplexity_model, **http)


def _serpapi(settings: Settings, **http) -> SourceAdapter | None:
    if not settings.sources.serpapi_api_key:
        return None
    return SerpApiAdapter(api_key=settings.sources.serpapi_api_key, **http)


def _youtube(settings: Settings, **http) -> SourceAdapter | None:
    if not settings.sources.youtube_api_key:
        return None
    return YouTubeAdapter(api_key=settings.sources.youtube_api_key, **http)


def _reddit(settings: Settings, **http) -> SourceAdapter | None:
    sources = settings.sources
    if not (sources.reddit_client_id and sources.reddit_client_secret):
        return None
    return RedditAdapter(client_id=sources.reddit_client_id, client_secret=sources.reddit_client_secret, **http)


def _twitter(settings: Settings, **http) -> SourceAdapter | None:
    if not settings.sources.twitter_bearer_token:
        return None
    return TwitterAdapter(bearer_token=settings.sources.twitter_bearer_token, **http)


def _linkedin(settings: Settings, **http) -> SourceAdapter | None:
    # Token-less instances still run so the missing token is reported per lookup.
    return LinkedInAdapter(access_token=settings.sources.linkedin_access_token, **http)


def _github(settings: Settings, **http) -> SourceAdapter | None:
    # The public API works unauthenticated at a lower rate limit.
    return GitHubAdapter(token=settings.sources.github_token, **http)


ADAPTER_BUILDERS: Dict[str, Callable[..., SourceAdapter | None]] = {
    "perplexity": _perplexity,
    "serpapi": _serpapi,
    "youtube": _youtube,
    "reddit": _reddit,
    "twitter": _twitter,
    "linkedin": _linkedin,
    "github": _github,
}


def build_source_adapters(settings: Settings | None = None) -> List[SourceAdapter]:
    """Instantiate every enabled adapter that has the credentials it needs."""

    resolved = settings or get_settings()
    enabled = set(resolved.sources.enabled)
    http = {
        "timeout": resolved.sources.request_timeout_seconds,
        "user_agent": resolved.sources.user_agent,
    }

    unknown = enabled - set(ADAPTER_BUILDERS)
    if unknown:
        LOGGER.warning("Ignoring unknown source names in sources.enabled: %s", ", ".join(sorted(unknown)))

    adapters: List[SourceAdapter] = []
    for key, builder in ADAPTER_BUILDERS.items():
        if enabled and key not in enabled:
            continue
        adapter = builder(resolved, **http)
        if adapter is None:
            LOGGER.info("Skipping %s source: credentials not configured", key)
            continue
        adapters.append(adapter)
    return adapters


def build_retrieval_sink(*, settings: Settings | None = None) -> RetrievalSink:
    """Return the storage sink matching ``storage.backend``."""

    resolved = settings or get_settings()
    storage = resolved.storage
    if storage.backend == "none":
        return NullRetrievalSink()

    if not storage.firestore_project:
        raise RuntimeError(
            "Firestore sink requires storage.firestore_project; set REPLOOKUP_STORAGE__FIRESTORE__PROJECT.",
        )
    return FirestoreRetrievalSink(
        project=storage.firestore_project,
        sessions_collection=storage.sessions_collection,
        results_collection=storage.results_collection,
    )


def build_text_summarizer(*, settings: Settings | None = None):
    from .summarizer import TextSummarizer

    return TextSummarizer(settings=settings or get_settings())


def build_image_analyzer():
    from replookup.vision import GoogleVisionAnalyzer

    return GoogleVisionAnalyzer()


__all__ = [
    "ADAPTER_BUILDERS",
    "build_image_analyzer",
    "build_retrieval_sink",
    "build_source_adapters",
    "build_text_summarizer",
]
