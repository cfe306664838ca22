"""Code-hosting adapter for the GitHub REST API."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, SocialPlatform, TargetPerson

from .base import AdapterError, HttpSourceAdapter, strip_handle

COLLABORATION_EVENTS = frozenset({"PullRequestEvent", "IssuesEvent", "ForkEvent"})


class GitHubAdapter(HttpSourceAdapter):
    """Profile a GitHub account: the supplied handle, or the best search hit for the name."""

    name = "github_api"
    base_url = "https://api.github.com"

    def __init__(self, *, token: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._token = token

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "application/vnd.github+json"
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        async with self.client() as client:
            handle = target.handle(SocialPlatform.GITHUB)
            if handle:
                username = strip_handle(handle, "@")
                profile_url = f"https://github.com/{username}"
            else:
                users = await self.search_users(client, target.name)
                if not users:
                    return []
                username = users[0]["login"]
                profile_url = users[0].get("html_url") or f"https://github.com/{username}"
            analysis = await self.analyze_user_activity(client, username)

        return [
            RetrievalResult(
                platform=Platform.GITHUB.value,
                type=RecordType.PROFILE,
                content=analysis,
                url=profile_url,
                timestamp=None,
                source=self.name,
            )
        ]

    async def search_users(self, client: httpx.AsyncClient, query: str) -> List[Dict[str, Any]]:
        payload = await self.get_json(client, "/search/users", params={"q": query, "per_page": 10})
        items = payload.get("items") if isinstance(payload, dict) else None
        if items is None:
            raise AdapterError("GitHub user search returned no items array")
        return [item for item in items if item.get("login")]

    async def analyze_user_activity(self, client: httpx.AsyncClient, username: str) -> Dict[str, Any]:
        profile, repositories, events = await asyncio.gather(
            self.get_json(client, f"/users/{username}"),
            self.get_json(client, f"/users/{username}/repos", params={"per_page": 10, "sort": "updated"}),
            self.get_json(client, f"/users/{username}/events/public", params={"per_page": 30}),
        )
        repositories = repositories if isinstance(repositories, list) else []
        events = events if isinstance(events, list) else []
        return {
            "profile": profile,
            "repositories": repositories,
            "recentActivity": events,
            "analysis": {
                "totalRepos": len(repositories),
                "languages": extract_languages(repositories),
                "recentCommits": summarize_pushes(events),
                "collaborationPatterns": summarize_collaboration(events),
                "projectTypes": [_project_summary(repo) for repo in repositories],
            },
        }


def extract_languages(repositories: List[Dict[str, Any]]) -> List[str]:
    languages: List[str] = []
    for repo in repositories:
        language = repo.get("language")
        if language and language not in languages:
            languages.append(language)
    return languages


def summarize_pushes(events: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    pushes = [event for event in events if event.get("type") == "PushEvent"][:limit]
    return [
        {
            "repo": (event.get("repo") or {}).get("name"),
            "commits": len((event.get("payload") or {}).get("commits") or []),
            "date": event.get("created_at"),
        }
        for event in pushes
    ]


def summarize_collaboration(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"type": event.get("type"), "repo": (event.get("repo") or {}).get("name"), "date": event.get("created_at")}
        for event in events
        if event.get("type") in COLLABORATION_EVENTS
    ]


def _project_summary(repo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": repo.get("name"),
        "description": repo.get("description"),
        "language": repo.get("language"),
        "stars": repo.get("stargazers_count"),
        "forks": repo.get("forks_count"),
        "topics": repo.get("topics") or [],
        "isForked": repo.get("fork"),
        "lastUpdated": repo.get("updated_at"),
    }
