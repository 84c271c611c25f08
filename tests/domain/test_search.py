from __future__ import annotations

import asyncio

import pytest

from sprintiq.domain.model import CanonicalStory  # noqa: TC001
from sprintiq.domain.search import (
    AntiPatternAnalysis,
    EmbeddingUnavailableError,
    StorySearch,
    cosine_similarity,
    rank_by_similarity,
)
from tests.helpers.fakes import FakeEmbedder, FakeStoryStore
from tests.helpers.issues import make_story


def _store(*stories: CanonicalStory) -> FakeStoryStore:
    return FakeStoryStore(stories={story.issue_key: story for story in stories})


def test_cosine_similarity() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    with pytest.raises(ValueError, match="dimension"):
        cosine_similarity([1.0], [1.0, 2.0])


def test_rank_by_similarity_applies_threshold_and_top_k() -> None:
    close = make_story("S-1", embedding=(1.0, 0.1))
    closer = make_story("S-2", embedding=(1.0, 0.0))
    far = make_story("S-3", embedding=(0.0, 1.0))
    other_dimension = make_story("S-4", embedding=(1.0, 0.0, 0.0))

    matches = rank_by_similarity(
        [1.0, 0.0], [close, closer, far, other_dimension], threshold=0.7, top_k=5
    )

    assert [match.story.issue_key for match in matches] == ["S-2", "S-1"]
    assert rank_by_similarity([1.0, 0.0], [close, closer], threshold=0.7, top_k=1)[0].story is closer


def test_search_similar_stories_uses_query_embedding() -> None:
    store = _store(
        make_story("Q-1", embedding=(1.0, 0.0)),
        make_story("Q-2", embedding=(0.0, 1.0)),
    )
    embedder = FakeEmbedder(vectors={"login form": [0.9, 0.1]})
    search = StorySearch(store=store, embedder=embedder)

    matches = asyncio.run(search.search_similar_stories("login form"))

    assert [match.story.issue_key for match in matches] == ["Q-1"]
    assert matches[0].similarity > 0.9
    assert embedder.calls == ["login form"]


def test_search_raises_when_query_cannot_be_embedded() -> None:
    search = StorySearch(store=_store(), embedder=FakeEmbedder(fail_when=("query",)))

    with pytest.raises(EmbeddingUnavailableError):
        asyncio.run(search.search_similar_stories("query"))


def test_search_falls_back_to_text_match_when_dimensions_differ() -> None:
    store = _store(
        make_story("T-1", embedding=(1.0, 0.0), title="Checkout page redesign"),
        make_story("T-2", embedding=(1.0, 0.0), title="Payment retries"),
    )
    search = StorySearch(store=store, embedder=FakeEmbedder(vectors={"checkout": [1.0, 0.0, 0.0]}))

    matches = asyncio.run(search.search_similar_stories("checkout"))

    assert [match.story.issue_key for match in matches] == ["T-1"]
    assert matches[0].similarity == 0.5


def test_success_patterns_keep_completed_stories_and_collect_anti_patterns() -> None:
    done = make_story("P-1", embedding=(1.0, 0.0), status="Done", resolution="Fixed")
    open_feature = make_story(
        "P-2", embedding=(1.0, 0.05), status="Open", resolution=None, issue_type="Feature"
    )
    embedder = FakeEmbedder(vectors={"checkout moderate complexity": [1.0, 0.0]})
    search = StorySearch(store=_store(done, open_feature), embedder=embedder)

    result = asyncio.run(search.find_success_patterns("checkout", "moderate"))

    assert [match.story.issue_key for match in result.patterns] == ["P-1"]
    assert result.anti_patterns == [
        "Incomplete implementation",
        "Scope creep",
        "Lack of user feedback",
    ]


def test_story_templates_require_quality_and_are_limited() -> None:
    stories = [
        make_story(f"TP-{index}", embedding=(1.0, index / 10), status="Done", resolution="Fixed")
        for index in range(4)
    ]
    unfinished = make_story("TP-9", embedding=(1.0, 0.0), status="To Do", resolution=None)
    embedder = FakeEmbedder(vectors={"login simple story template": [1.0, 0.0]})
    search = StorySearch(store=_store(*stories, unfinished), embedder=embedder)

    templates = asyncio.run(search.find_story_templates("login", "simple", 2))

    assert [match.story.issue_key for match in templates] == ["TP-0", "TP-1"]
    assert all(len(match.story.metadata.acceptance_criteria) >= 3 for match in templates)


def _failed_and_done_stories() -> FakeStoryStore:
    return _store(
        make_story(
            "F-1",
            embedding=(1.0, 0.0),
            status="In Progress",
            resolution=None,
            issue_type="Feature",
        ),
        make_story("F-2", embedding=(1.0, 0.05), status="Done", resolution="Fixed"),
    )


def test_clean_story_has_no_warnings() -> None:
    search = StorySearch(store=_store(), embedder=FakeEmbedder())

    analysis = asyncio.run(
        search.analyze_story_for_anti_patterns(
            "Export invoices as CSV",
            "Generate a CSV file for the finance team",
            ["File contains every invoice"],
        )
    )

    assert analysis == AntiPatternAnalysis(warnings=[], risk_score=0.0)


def test_vague_wording_and_scope_overload_are_flagged() -> None:
    search = StorySearch(store=_store(), embedder=FakeEmbedder())

    analysis = asyncio.run(
        search.analyze_story_for_anti_patterns(
            "Maybe add exports",
            "Users want CSV and PDF, also XLSX, additionally JSON",
            [],
        )
    )

    assert analysis.warnings == [
        "Vague requirements detected - use specific, measurable criteria",
        "Scope overload detected - story may contain too many features",
    ]
    assert analysis.risk_score == pytest.approx(0.7)


def test_similar_failed_stories_pass_on_their_anti_patterns() -> None:
    query = "Export report Render the report Report renders"
    embedder = FakeEmbedder(vectors={query: [1.0, 0.0]})
    search = StorySearch(store=_failed_and_done_stories(), embedder=embedder)

    analysis = asyncio.run(
        search.analyze_story_for_anti_patterns(
            "Export report", "Render the report", ["Report renders"]
        )
    )

    assert embedder.calls == [query]
    assert analysis.warnings == [
        "1 similar stories had low completion rates (50%)",
        "Anti-pattern seen in similar stories: Incomplete implementation",
        "Anti-pattern seen in similar stories: Scope creep",
        "Anti-pattern seen in similar stories: Lack of user feedback",
    ]
    assert analysis.risk_score == pytest.approx(0.9)


def test_risk_score_is_capped_at_one() -> None:
    query = "Maybe export report Render and also additionally save Saved"
    search = StorySearch(
        store=_failed_and_done_stories(),
        embedder=FakeEmbedder(vectors={query: [1.0, 0.0]}),
    )

    analysis = asyncio.run(
        search.analyze_story_for_anti_patterns(
            "Maybe export report", "Render and also additionally save", ["Saved"]
        )
    )

    assert len(analysis.warnings) == 6
    assert analysis.risk_score == 1.0


def test_analysis_requires_an_embedded_story_text() -> None:
    search = StorySearch(store=_store(), embedder=FakeEmbedder(fail_when=("Export",)))

    with pytest.raises(EmbeddingUnavailableError):
        asyncio.run(search.analyze_story_for_anti_patterns("Export", "", []))
