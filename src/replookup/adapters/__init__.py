"""Source adapters translating external platforms into normalized records."""

from .base import AdapterError, HttpSourceAdapter, SourceAdapter
from .github import GitHubAdapter
from .linkedin import LinkedInAdapter
from .perplexity import PerplexityAdapter
from .reddit import RedditAdapter
from .serpapi import SerpApiAdapter
from .twitter import TwitterAdapter
from .youtube import YouTubeAdapter

__all__ = [
    "AdapterError",
    "GitHubAdapter",
    "HttpSourceAdapter",
    "LinkedInAdapter",
    "PerplexityAdapter",
    "RedditAdapter",
    "SerpApiAdapter",
    "SourceAdapter",
    "TwitterAdapter",
    "YouTubeAdapter",
]
