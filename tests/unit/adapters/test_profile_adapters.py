"""Payload normalization tests for the GitHub and LinkedIn adapters."""

from __future__ import annotations

from typing import List

import httpx
import pytest

from replookup.adapters import GitHubAdapter, LinkedInAdapter
from replookup.models import RecordType, SocialPlatform, TargetPerson


def _github_handler(paths: List[str]):
    def _handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        paths.append(path)
        if path == "/search/users":
            return httpx.Response(200, json={"items": [{"login": "ada-l", "html_url": "https://github.com/ada-l"}]})
        if path.endswith("/repos"):
            return httpx.Response(
                200,
                json=[
                    {"name": "engine", "language": "Python", "stargazers_count": 5, "fork": False},
                    {"name": "notes", "language": "Python"},
                    {"name": "site", "language": "TypeScript"},
                ],
            )
        if path.endswith("/events/public"):
            return httpx.Response(
                200,
                json=[
                    {"type": "PushEvent", "repo": {"name": "ada/engine"}, "payload": {"commits": [{}, {}]}},
                    {"type": "PullRequestEvent", "repo": {"name": "other/lib"}},
                    {"type": "WatchEvent", "repo": {"name": "other/x"}},
                ],
            )
        if path.startswith("/users/"):
            return httpx.Response(200, json={"login": path.rsplit("/", 1)[-1], "avatar_url": "https://avatars/ada"})
        return httpx.Response(404)

    return _handler


@pytest.mark.anyio
async def test_github_uses_handle_and_builds_activity_analysis():
    paths: List[str] = []
    adapter = GitHubAdapter(token="ghp", transport=httpx.MockTransport(_github_handler(paths)))
    target = TargetPerson(name="Ada", social_handles={SocialPlatform.GITHUB: "@ada"})

    results = await adapter.fetch(target)

    assert "/search/users" not in paths
    assert len(results) == 1
    record = results[0]
    assert record.platform == "GitHub"
    assert record.type is RecordType.PROFILE
    assert record.url == "https://github.com/ada"
    assert record.content["profile"]["avatar_url"] == "https://avatars/ada"
    analysis = record.content["analysis"]
    assert analysis["totalRepos"] == 3
    assert analysis["languages"] == ["Python", "TypeScript"]
    assert analysis["recentCommits"] == [{"repo": "ada/engine", "commits": 2, "date": None}]
    assert analysis["collaborationPatterns"][0]["type"] == "PullRequestEvent"
    assert analysis["projectTypes"][0]["stars"] == 5


@pytest.mark.anyio
async def test_github_falls_back_to_first_search_hit():
    paths: List[str] = []
    adapter = GitHubAdapter(transport=httpx.MockTransport(_github_handler(paths)))

    results = await adapter.fetch(TargetPerson(name="Ada Lovelace"))

    assert paths[0] == "/search/users"
    assert results[0].url == "https://github.com/ada-l"
    assert results[0].content["profile"]["login"] == "ada-l"


@pytest.mark.anyio
async def test_github_without_search_hits_returns_nothing():
    adapter = GitHubAdapter(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"items": []})))

    assert await adapter.fetch(TargetPerson(name="Nobody")) == []


@pytest.mark.anyio
async def test_linkedin_without_token_returns_nothing_and_makes_no_calls():
    calls: List[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    adapter = LinkedInAdapter(transport=httpx.MockTransport(_handler))
    target = TargetPerson(name="Ada", social_handles={SocialPlatform.LINKEDIN: "ada"})

    assert await adapter.fetch(target) == []
    assert await LinkedInAdapter(access_token="li", transport=httpx.MockTransport(_handler)).fetch(
        TargetPerson(name="Ada")
    ) == []
    assert calls == []


@pytest.mark.anyio
async def test_linkedin_with_token_fetches_profile_and_shares():
    def _handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer li"
        if request.url.path == "/v2/me":
            return httpx.Response(
                200,
                json={
                    "id": "abc",
                    "vanityName": "ada",
                    "localizedFirstName": "Ada",
                    "localizedLastName": "Lovelace",
                    "profilePicture": {
                        "displayImage~": {
                            "elements": [
                                {"identifiers": [{"identifier": "https://media/small.jpg"}]},
                                {"identifiers": [{"identifier": "https://media/large.jpg"}]},
                            ]
                        }
                    },
                },
            )
        if request.url.path == "/v2/shares":
            assert request.url.params["owners"] == "urn:li:person:abc"
            return httpx.Response(
                200,
                json={
                    "elements": [
                        {
                            "id": "urn:li:share:1",
                            "text": {"text": "New role!"},
                            "created": {"time": 1700000000000},
                            "totalSocialActivityCounts": {"numLikes": 3},
                        }
                    ]
                },
            )
        return httpx.Response(404)

    adapter = LinkedInAdapter(access_token="li", transport=httpx.MockTransport(_handler))
    target = TargetPerson(name="Ada Lovelace", social_handles={SocialPlatform.LINKEDIN: "ada"})

    results = await adapter.fetch(target)

    assert [r.type for r in results] == [RecordType.PROFILE, RecordType.POST]
    assert results[0].content["name"] == "Ada Lovelace"
    assert results[0].content["profilePicture"] == "https://media/large.jpg"
    assert results[1].content["engagement"] == {"likes": 3, "comments": 0, "shares": 0}
    assert results[1].timestamp.startswith("2023-11-14")
