try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from brandpilot.models import OnboardingProfile, Profile, ProfileContext
from brandpilot.services.search_query import (
    FALLBACK_QUERY,
    SEARCH_FILTERS,
    build_search_query,
    classify_topic,
    description_keywords,
    join_terms,
)


def _context(topics=None, **onboarding) -> ProfileContext:
    profile = Profile(id="u1", topics_of_interest=topics or [])
    return ProfileContext(
        user_id="u1",
        profile=profile,
        onboarding=OnboardingProfile(user_id="u1", **onboarding) if onboarding else None,
    )


def test_query_quotes_topics_and_onboarding_terms() -> None:
    context = _context(
        ["AI & Technology"],
        user_type="startup_founder",
        domain="fintech",
        social_media_goal="find_clients",
        business_description="We build AI tools, for small shops.",
    )

    query = build_search_query(context)

    assert query == (
        '"AI & Technology" OR "startup_founder" OR "fintech" OR "find_clients" OR '
        '"build" OR "tools" OR "for" OR "small" OR "shops"' + SEARCH_FILTERS
    )


def test_description_keywords_limit_and_filtering() -> None:
    words = " ".join(f"word{i}" for i in range(20))

    keywords = description_keywords("an AI ok " + words)

    assert "an" not in keywords and "AI" not in keywords
    assert "ok" not in keywords
    assert keywords[0] == "word0"
    assert len(keywords) == 12


def test_description_keywords_strip_non_ascii_punctuation() -> None:
    keywords = description_keywords("“Branding” studio—growth 🚀rocket café,")

    assert keywords == ["Branding", "studiogrowth", "rocket", "café"]


def test_empty_context_uses_fallback_query() -> None:
    assert build_search_query(ProfileContext(user_id="u1")) == FALLBACK_QUERY


def test_long_queries_are_cut_at_a_complete_term() -> None:
    terms = [f'"topic number {i}"' for i in range(400)]

    query = join_terms(terms, max_length=200)

    assert len(query) <= 200
    assert query.endswith(SEARCH_FILTERS)
    body = query[: -len(SEARCH_FILTERS)]
    assert all(part in terms for part in body.split(" OR "))


def test_classify_prefers_context_annotation_domain() -> None:
    annotations = [{"domain": {"id": "66", "name": "Interests and Hobbies Category"}}]

    assert classify_topic("startup news", annotations) == "Interests and Hobbies Category"


def test_classify_keyword_fallbacks_use_whole_words() -> None:
    assert classify_topic("New AI model released") == "AI & Technology"
    assert classify_topic("Raising money for my startup") == "Startups"
    assert classify_topic("Content strategy tips") == "Marketing"
    assert classify_topic("Said hello to the team") == "General"
