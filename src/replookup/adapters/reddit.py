"""Link-aggregator / forum adapter for the Reddit OAuth API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, SocialPlatform, TargetPerson

from .base import AdapterError, HttpSourceAdapter, strip_handle

LOGGER = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"


class RedditAdapter(HttpSourceAdapter):
    """Search Reddit mentions and, when a username is known, the user's own activity.

    The application-only token is requested per fetch and never shared
    between requests.
    """

    name = "reddit_api"
    base_url = "https://oauth.reddit.com"

    def __init__(self, *, client_id: str, client_secret: str, limit: int = 25, **kwargs) -> None:
        super().__init__(**kwargs)
        self._client_id = client_id
        self._client_secret = client_secret
        self._limit = limit

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        results: List[RetrievalResult] = []
        async with self.client() as client:
            token = await self._authenticate(client)
            headers = {"Authorization": f"Bearer {token}"}

            results.extend(await self.search_mentions(client, f'"{target.name}"', headers=headers))

            handle = target.handle(SocialPlatform.REDDIT)
            if handle:
                username = strip_handle(handle, "/u/", "u/")
                lookups = {
                    "profile": self.get_user(client, username, headers=headers),
                    "posts": self.get_user_posts(client, username, headers=headers),
                    "comments": self.get_user_comments(client, username, headers=headers),
                }
                outcomes = await asyncio.gather(*lookups.values(), return_exceptions=True)
                for label, outcome in zip(lookups, outcomes):
                    if isinstance(outcome, BaseException):
                        # A suspended or mistyped handle must not discard the mention results.
                        LOGGER.warning("Reddit %s lookup for u/%s failed: %s", label, username, outcome)
                    elif isinstance(outcome, RetrievalResult):
                        results.append(outcome)
                    else:
                        results.extend(outcome)
        return results

    async def _authenticate(self, client: httpx.AsyncClient) -> str:
        payload = await self.post_json(
            client,
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AdapterError("Reddit authentication returned no access_token")
        return token

    async def search_mentions(
        self, client: httpx.AsyncClient, query: str, *, headers: Dict[str, str]
    ) -> List[RetrievalResult]:
        payload = await self.get_json(
            client,
            "/search",
            params={"q": query, "limit": self._limit, "sort": "relevance", "type": "link,comment"},
            headers=headers,
        )
        results: List[RetrievalResult] = []
        for child in _children(payload):
            if child.get("body"):
                results.append(self._normalize_comment(child))
            else:
                results.append(self._normalize_post(child))
        return results

    async def get_user(self, client: httpx.AsyncClient, username: str, *, headers: Dict[str, str]) -> RetrievalResult:
        payload = await self.get_json(client, f"/user/{username}/about", headers=headers)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise AdapterError(f"Reddit profile payload for {username} is malformed")
        return self._normalize_user(data)

    async def get_user_posts(
        self, client: httpx.AsyncClient, username: str, *, headers: Dict[str, str]
    ) -> List[RetrievalResult]:
        payload = await self.get_json(
            client, f"/user/{username}/submitted", params={"limit": self._limit}, headers=headers
        )
        return [self._normalize_post(child) for child in _children(payload)]

    async def get_user_comments(
        self, client: httpx.AsyncClient, username: str, *, headers: Dict[str, str]
    ) -> List[RetrievalResult]:
        payload = await self.get_json(
            client, f"/user/{username}/comments", params={"limit": self._limit}, headers=headers
        )
        return [self._normalize_comment(child) for child in _children(payload)]

    def _normalize_user(self, data: Dict[str, Any]) -> RetrievalResult:
        icon = data.get("icon_img") or data.get("snoovatar_img") or None
        return RetrievalResult(
            platform=Platform.REDDIT.value,
            type=RecordType.PROFILE,
            content={
                "username": data.get("name"),
                "karma": {
                    "post": data.get("link_karma"),
                    "comment": data.get("comment_karma"),
                    "total": data.get("total_karma"),
                },
                "accountAge": data.get("created_utc"),
                "isVerified": data.get("verified"),
                "isPremium": data.get("is_gold"),
                "isModerator": data.get("is_mod"),
                # Reddit appends resize query parameters to avatar URLs.
                "iconImg": icon.split("?", 1)[0] if isinstance(icon, str) else None,
            },
            url=f"https://reddit.com/u/{data.get('name')}",
            timestamp=None,
            source=self.name,
        )

    def _normalize_post(self, data: Dict[str, Any]) -> RetrievalResult:
        return RetrievalResult(
            platform=Platform.REDDIT.value,
            type=RecordType.POST,
            content={
                "title": data.get("title"),
                "text": data.get("selftext"),
                "subreddit": data.get("subreddit"),
                "score": data.get("score"),
                "upvoteRatio": data.get("upvote_ratio"),
                "numComments": data.get("num_comments"),
            },
            url=f"https://reddit.com{data.get('permalink', '')}",
            timestamp=data.get("created_utc"),
            source=self.name,
        )

    def _normalize_comment(self, data: Dict[str, Any]) -> RetrievalResult:
        return RetrievalResult(
            platform=Platform.REDDIT.value,
            type=RecordType.COMMENT,
            content={
                "text": data.get("body"),
                "subreddit": data.get("subreddit"),
                "score": data.get("score"),
                "parentId": data.get("parent_id"),
                "isSubmitter": data.get("is_submitter"),
            },
            url=f"https://reddit.com{data.get('permalink', '')}",
            timestamp=data.get("created_utc"),
            source=self.name,
        )


def _children(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        raise AdapterError("Reddit listing payload is not an object")
    listing = payload.get("data") or {}
    return [child.get("data") or {} for child in listing.get("children") or []]

