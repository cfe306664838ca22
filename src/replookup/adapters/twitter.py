"""Short-form social adapter for the X/Twitter v2 API (app-only bearer token)."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, SocialPlatform, TargetPerson

from .base import HttpSourceAdapter, strip_handle

USER_FIELDS = "created_at,description,location,public_metrics,verified,profile_image_url"
TWEET_FIELDS = "created_at,public_metrics,context_annotations,author_id,lang"


class TwitterAdapter(HttpSourceAdapter):
    name = "twitter_api"
    base_url = "https://api.twitter.com/2"

    def __init__(self, *, bearer_token: str, max_results: int = 100, **kwargs) -> None:
        super().__init__(**kwargs)
        self._bearer_token = bearer_token
        self._max_results = max(10, min(max_results, 100))

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Authorization"] = f"Bearer {self._bearer_token}"
        return headers

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        results: List[RetrievalResult] = []
        async with self.client() as client:
            results.extend(await self.search_users(client, target.name))
            results.extend(await self.search_mentions(client, target.name))

            handle = target.handle(SocialPlatform.TWITTER)
            if handle:
                user = await self.get_user_by_username(client, strip_handle(handle, "@"))
                if user is not None:
                    results.append(user)
                    results.extend(await self.get_user_tweets(client, user.content["id"]))
        return results

    async def search_users(self, client: httpx.AsyncClient, query: str) -> List[RetrievalResult]:
        payload = await self.get_json(client, "/users/search", params={"query": query, "user.fields": USER_FIELDS})
        return [self._normalize_user(user) for user in payload.get("data") or []]

    async def get_user_by_username(self, client: httpx.AsyncClient, username: str) -> RetrievalResult | None:
        payload = await self.get_json(client, f"/users/by/username/{username}", params={"user.fields": USER_FIELDS})
        data = payload.get("data")
        return self._normalize_user(data) if data else None

    async def get_user_tweets(self, client: httpx.AsyncClient, user_id: str) -> List[RetrievalResult]:
        payload = await self.get_json(
            client,
            f"/users/{user_id}/tweets",
            params={
                "max_results": self._max_results,
                "tweet.fields": TWEET_FIELDS,
                "exclude": "retweets,replies",
            },
        )
        return [self._normalize_tweet(tweet) for tweet in payload.get("data") or []]

    async def search_mentions(self, client: httpx.AsyncClient, name: str) -> List[RetrievalResult]:
        payload = await self.get_json(
            client,
            "/tweets/search/recent",
            params={
                "query": f'"{name}" -is:retweet',
                "max_results": self._max_results,
                "tweet.fields": TWEET_FIELDS,
            },
        )
        needle = name.lower()
        tweets = [tweet for tweet in payload.get("data") or [] if needle in str(tweet.get("text", "")).lower()]
        return [self._normalize_tweet(tweet) for tweet in tweets]

    def _normalize_user(self, user: Dict[str, Any]) -> RetrievalResult:
        username = user.get("username")
        return RetrievalResult(
            platform=Platform.TWITTER.value,
            type=RecordType.PROFILE,
            content={
                "id": user.get("id"),
                "username": username,
                "name": user.get("name"),
                "description": user.get("description"),
                "location": user.get("location"),
                "verified": user.get("verified"),
                "metrics": user.get("public_metrics"),
                "profileImageUrl": user.get("profile_image_url"),
                "createdAt": user.get("created_at"),
            },
            url=f"https://twitter.com/{username}",
            timestamp=None,
            source=self.name,
        )

    def _normalize_tweet(self, tweet: Dict[str, Any]) -> RetrievalResult:
        return RetrievalResult(
            platform=Platform.TWITTER.value,
            type=RecordType.POST,
            content={
                "text": tweet.get("text"),
                "language": tweet.get("lang"),
                "metrics": tweet.get("public_metrics"),
                "contextAnnotations": tweet.get("context_annotations"),
            },
            url=f"https://twitter.com/i/status/{tweet.get('id')}",
            timestamp=tweet.get("created_at"),
            source=self.name,
        )
