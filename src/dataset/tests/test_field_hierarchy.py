"""
Tests for the research-field hierarchy and its lazy cache.
"""

from __future__ import annotations

import pytest

from dataset.hierarchy import FieldHierarchy, FieldHierarchyCache, hierarchy_score
from dataset.models import RankedPrediction
from scoring.automated import ranking_metric
from utils.schema import COMPONENT_RESEARCH_FIELD

TREE = [
    {
        "id": "cs",
        "label": "Computer Science",
        "children": [
            {
                "id": "ai",
                "label": "Artificial Intelligence",
                "children": [
                    {"id": "ml", "label": "Machine Learning"},
                    {"id": "nlp", "label": "Natural Language Processing"},
                ],
            }
        ],
    },
    {"id": "phys", "label": "Physics"},
]


def test_from_tree_builds_paths() -> None:
    """Paths should run from the root down to the requested node."""

    hierarchy = FieldHierarchy.from_tree(TREE)

    assert len(hierarchy) == 5
    assert hierarchy.path("machine learning") == ["cs", "ai", "ml"]
    assert hierarchy.path("nlp") == ["cs", "ai", "nlp"]
    assert hierarchy.path("Biology") == []


def test_hierarchy_score_bands() -> None:
    """Same node, siblings, unrelated and unknown fields should score distinctly."""

    hierarchy = FieldHierarchy.from_tree(TREE)

    assert hierarchy_score("Machine Learning", "machine_learning", hierarchy) == 1.0
    assert hierarchy_score("Machine Learning", "Natural Language Processing", hierarchy) == (
        pytest.approx(0.6 * 2 / 3 + 0.4 / 3)
    )
    assert hierarchy_score("Machine Learning", "Physics", hierarchy) == pytest.approx(0.1)
    assert hierarchy_score("Machine Learning", "Biology", hierarchy) is None


def test_cache_loads_once() -> None:
    """The loader should run only on first access."""

    calls = []

    def loader():
        calls.append(1)
        return TREE

    cache = FieldHierarchyCache(loader)
    assert cache.loaded is False

    first = cache.get()
    second = cache.get()

    assert first is second
    assert cache.loaded is True
    assert len(calls) == 1


def test_cache_accepts_single_root_tree() -> None:
    """A loader returning one root object should build the same tree."""

    cache = FieldHierarchyCache(lambda: TREE[0])

    hierarchy = cache.get()

    assert len(hierarchy) == 4
    assert hierarchy.path("Natural Language Processing") == ["cs", "ai", "nlp"]


def test_from_tree_skips_non_mapping_roots() -> None:
    """Entries that are not objects are ignored."""

    hierarchy = FieldHierarchy.from_tree(["stray", TREE[1], None])

    assert len(hierarchy) == 1
    assert hierarchy.path("Physics") == ["phys"]


def test_ranking_metric_reports_hierarchy_relevance() -> None:
    """A near miss should get partial relevance without changing the overall."""

    cache = FieldHierarchyCache(lambda: FieldHierarchy.from_tree(TREE))
    predictions = (RankedPrediction("Natural Language Processing"),)

    metric = ranking_metric(COMPONENT_RESEARCH_FIELD, "Machine Learning", predictions, cache)

    assert metric.dimensions["hierarchy_relevance"] == pytest.approx(0.6 * 2 / 3 + 0.4 / 3)
    assert metric.overall is None
