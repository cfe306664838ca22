"""Tests for the rule-based record categorizer."""

from __future__ import annotations

from replookup.models import CategoryKey, Platform, RecordType
from replookup.services.categorizer import CATEGORY_RULES, categorize


def test_categorize_always_returns_all_six_categories():
    categorized = categorize([])

    assert set(categorized) == set(CategoryKey)
    assert all(records == [] for records in categorized.values())
    assert set(CATEGORY_RULES) == set(CategoryKey)


def test_code_hosting_record_lands_in_professional_categories_only(record_factory):
    github = record_factory(Platform.GITHUB.value, RecordType.PROFILE)
    tweet = record_factory(Platform.TWITTER.value, RecordType.POST)

    categorized = categorize([github, tweet])

    for key in (CategoryKey.PROFESSIONAL_CONDUCT, CategoryKey.EXPERTISE, CategoryKey.CREDIBILITY):
        assert github in categorized[key]
    for key in (CategoryKey.PUBLIC_STATEMENTS, CategoryKey.CONTROVERSIES, CategoryKey.SOCIAL_BEHAVIOR):
        assert github not in categorized[key]

    assert tweet in categorized[CategoryKey.PUBLIC_STATEMENTS]
    assert tweet in categorized[CategoryKey.SOCIAL_BEHAVIOR]
    assert tweet not in categorized[CategoryKey.EXPERTISE]


def test_public_statements_requires_statement_record_types(record_factory):
    reddit_profile = record_factory(Platform.REDDIT.value, RecordType.PROFILE)
    reddit_comment = record_factory(Platform.REDDIT.value, RecordType.COMMENT)
    youtube_video = record_factory(Platform.YOUTUBE.value, RecordType.VIDEO)

    categorized = categorize([reddit_profile, reddit_comment, youtube_video])

    assert categorized[CategoryKey.PUBLIC_STATEMENTS] == [reddit_comment, youtube_video]
    assert reddit_profile in categorized[CategoryKey.SOCIAL_BEHAVIOR]


def test_search_platforms_feed_controversies(record_factory):
    records = [
        record_factory(Platform.GOOGLE_NEWS.value, RecordType.ARTICLE),
        record_factory(Platform.GOOGLE_SEARCH.value, RecordType.ARTICLE),
        record_factory(Platform.PERPLEXITY.value, RecordType.ARTICLE),
    ]

    assert categorize(records)[CategoryKey.CONTROVERSIES] == records


def test_every_record_including_unknown_platforms_is_in_credibility(record_factory):
    records = [
        record_factory("Mastodon", RecordType.POST),
        record_factory(Platform.LINKEDIN.value, RecordType.PROFILE),
        record_factory(Platform.GOOGLE_NEWS.value, RecordType.ARTICLE),
    ]

    categorized = categorize(records)

    assert categorized[CategoryKey.CREDIBILITY] == records
    assert all(records[0] not in bucket for key, bucket in categorized.items() if key is not CategoryKey.CREDIBILITY)


def test_categorize_is_deterministic_and_does_not_mutate_input(record_factory):
    records = [
        record_factory(Platform.GITHUB.value, RecordType.PROFILE),
        record_factory(Platform.REDDIT.value, RecordType.POST),
    ]
    snapshot = list(records)

    first = categorize(records)
    second = categorize(records)

    assert first == second
    assert records == snapshot
