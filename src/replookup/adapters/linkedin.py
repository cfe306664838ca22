"""Professional-network adapter for LinkedIn.

LinkedIn exposes no public people search. Records are only available through
an OAuth token granted by the member themselves, so the adapter fetches the
token owner's profile and shares when both a token and a handle are supplied.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, SocialPlatform, TargetPerson

from .base import HttpSourceAdapter

LOGGER = logging.getLogger(__name__)


class LinkedInAdapter(HttpSourceAdapter):
    name = "linkedin_api"
    base_url = "https://api.linkedin.com/v2"

    def __init__(self, *, access_token: str | None = None, max_posts: int = 20, **kwargs) -> None:
        super().__init__(**kwargs)
        self._access_token = access_token
        self._max_posts = max_posts

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        handle = target.handle(SocialPlatform.LINKEDIN)
        if not handle:
            return []
        if not self._access_token:
            LOGGER.warning("LinkedIn public search is unavailable without a member access token; skipping %s", handle)
            return []

        async with self.client() as client:
            profile = await self.get_profile(client)
            if profile.content.get("publicIdentifier") not in (None, handle):
                LOGGER.warning("LinkedIn token belongs to %s, not %s; skipping", profile.content.get("publicIdentifier"), handle)
                return []
            results = [profile]
            results.extend(await self.get_posts(client, profile.content["id"]))
        return results

    async def get_profile(self, client: httpx.AsyncClient) -> RetrievalResult:
        data = await self.get_json(
            client,
            "/me",
            params={"projection": "(id,localizedFirstName,localizedLastName,localizedHeadline,vanityName,"
            "profilePicture(displayImage~:playableStreams))"},
        )
        return self._normalize_profile(data)

    async def get_posts(self, client: httpx.AsyncClient, person_id: str) -> List[RetrievalResult]:
        data = await self.get_json(
            client,
            "/shares",
            params={"q": "owners", "owners": f"urn:li:person:{person_id}", "count": self._max_posts},
        )
        return [self._normalize_post(element) for element in data.get("elements") or []]

    def _normalize_profile(self, data: Dict[str, Any]) -> RetrievalResult:
        vanity = data.get("vanityName") or data.get("publicIdentifier")
        return RetrievalResult(
            platform=Platform.LINKEDIN.value,
            type=RecordType.PROFILE,
            content={
                "id": data.get("id"),
                "publicIdentifier": vanity,
                "name": " ".join(
                    part for part in (data.get("localizedFirstName"), data.get("localizedLastName")) if part
                ),
                "headline": data.get("localizedHeadline"),
                "profilePicture": _largest_picture(data.get("profilePicture")),
            },
            url=f"https://linkedin.com/in/{vanity}",
            timestamp=None,
            source=self.name,
        )

    def _normalize_post(self, element: Dict[str, Any]) -> RetrievalResult:
        counts = element.get("totalSocialActivityCounts") or {}
        created = (element.get("created") or {}).get("time")
        return RetrievalResult(
            platform=Platform.LINKEDIN.value,
            type=RecordType.POST,
            content={
                "text": (element.get("text") or {}).get("text") or "",
                "engagement": {
                    "likes": counts.get("numLikes", 0),
                    "comments": counts.get("numComments", 0),
                    "shares": counts.get("numShares", 0),
                },
            },
            url=f"https://linkedin.com/feed/update/{element.get('id')}",
            timestamp=created / 1000 if isinstance(created, (int, float)) else None,
            source=self.name,
        )


def _largest_picture(picture: Any) -> str | None:
    if not isinstance(picture, dict):
        return None
    elements = (picture.get("displayImage~") or {}).get("elements") or []
    for element in reversed(elements):
        for identifier in element.get("identifiers") or []:
            if identifier.get("identifier"):
                return identifier["identifier"]
    return None
