"""
Turn a user's profile into a Twitter recent-search query and label results.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from brandpilot.models import ProfileContext

SEARCH_FILTERS = " -is:retweet -is:reply"
FALLBACK_QUERY = "technology OR innovation OR startup" + SEARCH_FILTERS
MAX_QUERY_LENGTH = 4096
MAX_DESCRIPTION_WORDS = 15

_TERM_SEPARATOR = " OR "
_NON_WORD = re.compile(r"[^\w\s]")

# Checked in order; the first group with a whole-word hit wins.
_TOPIC_KEYWORDS: Sequence[tuple[str, frozenset[str]]] = (
    ("AI & Technology", frozenset({"ai", "technology", "tech"})),
    ("Startups", frozenset({"startup", "startups", "business"})),
    ("Marketing", frozenset({"marketing", "content"})),
)
DEFAULT_TOPIC = "General"

_WORD = re.compile(r"[a-z0-9]+")


def _quote(term: str) -> str:
    return f'"{term.strip()}"'


def description_keywords(description: Optional[str]) -> List[str]:
    """First few meaningful words of a free-form business description."""
    if not description:
        return []
    words: List[str] = []
    for raw in description.split()[:MAX_DESCRIPTION_WORDS]:
        if len(raw) <= 2:
            continue
        cleaned = _NON_WORD.sub("", raw)
        if cleaned:
            words.append(cleaned)
    return words


def collect_terms(context: ProfileContext) -> List[str]:
    terms: List[str] = [_quote(topic) for topic in context.topics if topic.strip()]
    onboarding = context.onboarding
    if onboarding is not None:
        for value in (onboarding.user_type, onboarding.domain, onboarding.social_media_goal):
            if value and value.strip():
                terms.append(_quote(value))
        terms.extend(
            _quote(word) for word in description_keywords(onboarding.business_description)
        )
    return terms


def join_terms(terms: Iterable[str], *, max_length: int = MAX_QUERY_LENGTH) -> str:
    """
    Join ``terms`` with ``OR`` and append the retweet/reply filters.

    When the result would exceed ``max_length`` the term list is cut at the last
    complete ``OR`` boundary that still leaves room for the filters.
    """
    terms = list(terms)
    if not terms:
        return FALLBACK_QUERY

    budget = max_length - len(SEARCH_FILTERS)
    body = _TERM_SEPARATOR.join(terms)
    if len(body) > budget:
        cut = body.rfind(_TERM_SEPARATOR, 0, budget + 1)
        body = body[:cut] if cut > 0 else ""
    if not body:
        return FALLBACK_QUERY
    return body + SEARCH_FILTERS


def build_search_query(context: ProfileContext, *, max_length: int = MAX_QUERY_LENGTH) -> str:
    return join_terms(collect_terms(context), max_length=max_length)


def classify_topic(
    text: str, context_annotations: Optional[Sequence[Mapping[str, Any]]] = None
) -> str:
    """Label a tweet using its first annotation domain, else keyword heuristics."""
    if context_annotations:
        domain = (context_annotations[0] or {}).get("domain") or {}
        name = domain.get("name")
        if name:
            return str(name)

    words = set(_WORD.findall(text.lower()))
    for topic, keywords in _TOPIC_KEYWORDS:
        if words & keywords:
            return topic
    return DEFAULT_TOPIC


__all__ = [
    "DEFAULT_TOPIC",
    "FALLBACK_QUERY",
    "MAX_QUERY_LENGTH",
    "SEARCH_FILTERS",
    "build_search_query",
    "classify_topic",
    "collect_terms",
    "description_keywords",
    "join_terms",
]
