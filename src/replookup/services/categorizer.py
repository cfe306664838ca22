"""Bucket merged retrieval records into the six reputation categories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence

from replookup.models import CategoryKey, Platform, RecordType, RetrievalResult


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """Membership predicate: platform in ``platforms`` and, if set, type in ``types``.

    ``platforms=None`` admits every record.
    """

    platforms: Optional[FrozenSet[str]] = None
    types: Optional[FrozenSet[str]] = None

    def matches(self, record: RetrievalResult) -> bool:
        if self.platforms is not None and record.platform not in self.platforms:
            return False
        if self.types is not None and record.type.value not in self.types:
            return False
        return True


def _platforms(*platforms: Platform) -> FrozenSet[str]:
    return frozenset(platform.value for platform in platforms)


CATEGORY_RULES: Dict[CategoryKey, CategoryRule] = {
    CategoryKey.PROFESSIONAL_CONDUCT: CategoryRule(platforms=_platforms(Platform.LINKEDIN, Platform.GITHUB)),
    CategoryKey.PUBLIC_STATEMENTS: CategoryRule(
        platforms=_platforms(Platform.TWITTER, Platform.REDDIT, Platform.YOUTUBE),
        types=frozenset({RecordType.POST.value, RecordType.COMMENT.value, RecordType.VIDEO.value}),
    ),
    CategoryKey.SOCIAL_BEHAVIOR: CategoryRule(platforms=_platforms(Platform.REDDIT, Platform.TWITTER, Platform.YOUTUBE)),
    CategoryKey.CONTROVERSIES: CategoryRule(
        platforms=_platforms(Platform.GOOGLE_NEWS, Platform.GOOGLE_SEARCH, Platform.PERPLEXITY)
    ),
    CategoryKey.EXPERTISE: CategoryRule(platforms=_platforms(Platform.GITHUB, Platform.LINKEDIN, Platform.YOUTUBE)),
    CategoryKey.CREDIBILITY: CategoryRule(),
}


def categorize(records: Sequence[RetrievalResult]) -> Dict[CategoryKey, List[RetrievalResult]]:
    """Return every category key mapped to its member records, in input order."""

    return {key: [record for record in records if rule.matches(record)] for key, rule in CATEGORY_RULES.items()}


__all__ = ["CATEGORY_RULES", "CategoryRule", "categorize"]
