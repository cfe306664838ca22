"""Video-platform adapter for the YouTube Data API v3."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, SocialPlatform, TargetPerson

from .base import HttpSourceAdapter, strip_handle


class YouTubeAdapter(HttpSourceAdapter):
    """Search channels and videos for the target name plus any known channel handle."""

    name = "youtube_api"
    base_url = "https://www.googleapis.com/youtube/v3"

    def __init__(self, *, api_key: str, max_channels: int = 10, max_videos: int = 25, **kwargs) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._max_channels = max_channels
        self._max_videos = max_videos

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        results: List[RetrievalResult] = []
        async with self.client() as client:
            results.extend(await self.search_channels(client, target.name))
            results.extend(await self.search_videos(client, f'"{target.name}"'))

            handle = target.handle(SocialPlatform.YOUTUBE)
            if handle:
                results.extend(await self.search_channels(client, strip_handle(handle, "@")))
        return results

    async def search_channels(self, client: httpx.AsyncClient, query: str) -> List[RetrievalResult]:
        items = await self._search(client, query=query, kind="channel", max_results=self._max_channels)
        return [self._normalize_channel(item) for item in items]

    async def search_videos(self, client: httpx.AsyncClient, query: str) -> List[RetrievalResult]:
        items = await self._search(client, query=query, kind="video", max_results=self._max_videos)
        return [self._normalize_video(item) for item in items]

    async def _search(self, client: httpx.AsyncClient, *, query: str, kind: str, max_results: int) -> List[Dict[str, Any]]:
        payload = await self.get_json(
            client,
            "/search",
            params={
                "part": "snippet",
                "q": query,
                "type": kind,
                "maxResults": max_results,
                "key": self._api_key,
            },
        )
        return list(payload.get("items") or [])

    def _normalize_channel(self, item: Dict[str, Any]) -> RetrievalResult:
        snippet = item.get("snippet") or {}
        channel_id = (item.get("id") or {}).get("channelId") or snippet.get("channelId")
        return RetrievalResult(
            platform=Platform.YOUTUBE.value,
            type=RecordType.PROFILE,
            content={
                "channelId": channel_id,
                "title": snippet.get("title"),
                "description": snippet.get("description"),
                "thumbnails": snippet.get("thumbnails"),
                "publishedAt": snippet.get("publishedAt"),
            },
            url=f"https://youtube.com/channel/{channel_id}",
            timestamp=None,
            source=self.name,
        )

    def _normalize_video(self, item: Dict[str, Any]) -> RetrievalResult:
        snippet = item.get("snippet") or {}
        video_id = (snippet.get("resourceId") or {}).get("videoId") or (item.get("id") or {}).get("videoId")
        return RetrievalResult(
            platform=Platform.YOUTUBE.value,
            type=RecordType.VIDEO,
            content={
                "videoId": video_id,
                "title": snippet.get("title"),
                "description": snippet.get("description"),
                "publishedAt": snippet.get("publishedAt"),
                "thumbnails": snippet.get("thumbnails"),
                "channelId": snippet.get("channelId"),
                "channelTitle": snippet.get("channelTitle"),
            },
            url=f"https://youtube.com/watch?v={video_id}",
            timestamp=snippet.get("publishedAt"),
            source=self.name,
        )
