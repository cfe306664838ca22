"""Payload normalization tests for the Reddit, Twitter and YouTube adapters."""

from __future__ import annotations

from typing import Dict, List

import httpx
import pytest

from replookup.adapters import AdapterError, RedditAdapter, TwitterAdapter, YouTubeAdapter
from replookup.models import RecordType, SocialPlatform, TargetPerson


def _listing(*children: Dict) -> Dict:
    return {"data": {"children": [{"data": child} for child in children]}}


def _reddit_handler(requests: List[httpx.Request]):
    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path == "/api/v1/access_token":
            return httpx.Response(200, json={"access_token": "reddit-token"})
        if path == "/search":
            return httpx.Response(
                200,
                json=_listing(
                    {"title": "Ada thread", "permalink": "/r/math/1", "created_utc": 1700000000},
                    {"body": "Ada rocks", "permalink": "/r/math/1/c", "created_utc": 1700000100},
                ),
            )
        if path == "/user/ada/about":
            return httpx.Response(
                200,
                json={"data": {"name": "ada", "icon_img": "https://styles.redditmedia.com/a.png?width=256&s=x"}},
            )
        if path == "/user/ada/submitted":
            return httpx.Response(200, json=_listing({"title": "My post", "permalink": "/r/x/2"}))
        if path == "/user/ada/comments":
            return httpx.Response(200, json=_listing({"body": "My comment", "permalink": "/r/x/3"}))
        return httpx.Response(404)

    return _handler


@pytest.mark.anyio
async def test_reddit_authenticates_and_merges_mentions_with_user_activity():
    requests: List[httpx.Request] = []
    adapter = RedditAdapter(client_id="id", client_secret="secret", transport=httpx.MockTransport(_reddit_handler(requests)))
    target = TargetPerson(name="Ada", social_handles={SocialPlatform.REDDIT: "u/ada"})

    results = await adapter.fetch(target)

    assert requests[0].url.host == "www.reddit.com"
    assert requests[0].headers["Authorization"].startswith("Basic ")
    assert all(r.headers["Authorization"] == "Bearer reddit-token" for r in requests[1:])
    assert [r.type for r in results] == [
        RecordType.POST,
        RecordType.COMMENT,
        RecordType.PROFILE,
        RecordType.POST,
        RecordType.COMMENT,
    ]
    assert results[0].timestamp.startswith("2023-11-14")
    assert results[1].url == "https://reddit.com/r/math/1/c"
    assert results[2].content["iconImg"] == "https://styles.redditmedia.com/a.png"
    assert all(r.platform == "Reddit" for r in results)


@pytest.mark.anyio
async def test_reddit_suspended_handle_keeps_mentions_and_remaining_lookups(caplog):
    handler = _reddit_handler([])

    def _suspended(request: httpx.Request) -> httpx.Response:
        if request.url.path in ("/user/ada/about", "/user/ada/submitted"):
            return httpx.Response(404)
        return handler(request)

    adapter = RedditAdapter(client_id="id", client_secret="secret", transport=httpx.MockTransport(_suspended))
    target = TargetPerson(name="Ada", social_handles={SocialPlatform.REDDIT: "ada"})

    results = await adapter.fetch(target)

    assert [r.type for r in results] == [RecordType.POST, RecordType.COMMENT, RecordType.COMMENT]
    assert results[2].content["text"] == "My comment"
    assert "Reddit profile lookup for u/ada failed" in caplog.text


@pytest.mark.anyio
async def test_reddit_without_token_raises_adapter_error():
    adapter = RedditAdapter(
        client_id="id",
        client_secret="secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"error": "invalid_grant"})),
    )

    with pytest.raises(AdapterError):
        await adapter.fetch(TargetPerson(name="Ada"))


@pytest.mark.anyio
async def test_twitter_filters_mentions_and_follows_handle_timeline():
    seen: List[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        seen.append(path)
        assert request.headers["Authorization"] == "Bearer tw"
        if path == "/2/users/search":
            return httpx.Response(200, json={"data": []})
        if path == "/2/tweets/search/recent":
            assert request.url.params["query"] == '"Ada Lovelace" -is:retweet'
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"id": "1", "text": "Reading about Ada Lovelace today", "created_at": "2024-03-01T00:00:00Z"},
                        {"id": "2", "text": "unrelated"},
                    ]
                },
            )
        if path == "/2/users/by/username/ada":
            return httpx.Response(
                200,
                json={"data": {"id": "42", "username": "ada", "profile_image_url": "https://pbs.twimg.com/ada.jpg"}},
            )
        if path == "/2/users/42/tweets":
            return httpx.Response(200, json={"data": [{"id": "3", "text": "hello"}]})
        return httpx.Response(404)

    adapter = TwitterAdapter(bearer_token="tw", transport=httpx.MockTransport(_handler))
    target = TargetPerson(name="Ada Lovelace", social_handles={SocialPlatform.TWITTER: "@ada"})

    results = await adapter.fetch(target)

    assert [r.url for r in results] == [
        "https://twitter.com/i/status/1",
        "https://twitter.com/ada",
        "https://twitter.com/i/status/3",
    ]
    assert results[0].timestamp == "2024-03-01T00:00:00Z"
    assert results[1].type is RecordType.PROFILE
    assert results[1].content["profileImageUrl"] == "https://pbs.twimg.com/ada.jpg"


@pytest.mark.anyio
async def test_youtube_searches_name_video_and_handle():
    queries: List[tuple[str, str]] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        queries.append((params["type"], params["q"]))
        if params["type"] == "channel":
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": {"channelId": f"UC-{params['q']}"},
                            "snippet": {"title": params["q"], "thumbnails": {"high": {"url": "https://yt/high.jpg"}}},
                        }
                    ]
                },
            )
        return httpx.Response(
            200,
            json={"items": [{"id": {"videoId": "vid1"}, "snippet": {"title": "Talk", "publishedAt": "2023-01-01T00:00:00Z"}}]},
        )

    adapter = YouTubeAdapter(api_key="yt", transport=httpx.MockTransport(_handler))
    target = TargetPerson(name="Ada", social_handles={SocialPlatform.YOUTUBE: "@adachannel"})

    results = await adapter.fetch(target)

    assert queries == [("channel", "Ada"), ("video", '"Ada"'), ("channel", "adachannel")]
    assert [r.type for r in results] == [RecordType.PROFILE, RecordType.VIDEO, RecordType.PROFILE]
    assert results[0].url == "https://youtube.com/channel/UC-Ada"
    assert results[0].content["thumbnails"]["high"]["url"] == "https://yt/high.jpg"
    assert results[1].url == "https://youtube.com/watch?v=vid1"
    assert results[1].timestamp == "2023-01-01T00:00:00Z"
