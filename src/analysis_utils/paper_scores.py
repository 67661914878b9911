"""Per-paper, per-evaluation scoring for one component.

This module ties the automated metric calculator to score fusion: each
paper gets one :class:`ComponentMetric` and one :class:`EvaluationScore` per
evaluation. Repeated evaluations of the same paper all count.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from dataset.hierarchy import FieldHierarchyCache
from dataset.models import Evaluation, Evaluator, Paper
from scoring.automated import ComponentMetric, compute_component_metric
from scoring.components import get_profile
from scoring.fusion import FusedScore, fuse_scores
from utils.schema import SCORE_METHOD_HYBRID, SCORE_METHOD_NONE


@dataclass(frozen=True)
class EvaluationScore:
    """Fused score of one evaluation for one component.

    Parameters
    ----------
    paper_id:
        Identifier of the evaluated paper.
    evaluator:
        Evaluation author.
    fused:
        Fused score, ``None`` when neither an automated score nor a rating
        is available.
    position:
        Rank at which the evaluator found the correct answer, falling back
        to the automatically derived rank.
    """

    paper_id: str
    evaluator: Evaluator
    fused: Optional[FusedScore]
    position: Optional[int] = None

    @property
    def final_score(self) -> Optional[float]:
        return self.fused.final_score if self.fused is not None else None

    @property
    def rating(self) -> Optional[int]:
        return self.fused.rating if self.fused is not None else None


@dataclass(frozen=True)
class PaperComponentScore:
    """All scoring results for one paper and one component."""

    paper: Paper
    component: str
    metric: ComponentMetric
    evaluation_scores: Tuple[EvaluationScore, ...]
    automated_only: Optional[FusedScore] = None

    @property
    def paper_id(self) -> str:
        return self.paper.paper_id

    @property
    def final_scores(self) -> List[float]:
        """Final scores per evaluation, or the automated score when unrated."""

        scores = [
            score.final_score
            for score in self.evaluation_scores
            if score.final_score is not None
        ]
        if not scores and self.automated_only is not None:
            scores = [self.automated_only.final_score]
        return scores

    @property
    def score(self) -> Optional[float]:
        scores = self.final_scores
        return float(np.mean(scores)) if scores else None

    @property
    def ratings(self) -> List[int]:
        return [score.rating for score in self.evaluation_scores if score.rating is not None]

    @property
    def mean_rating(self) -> Optional[float]:
        ratings = self.ratings
        return float(np.mean(ratings)) if ratings else None

    @property
    def score_method(self) -> str:
        methods = {
            score.fused.method for score in self.evaluation_scores if score.fused is not None
        }
        if not methods and self.automated_only is not None:
            return self.automated_only.method
        if not methods:
            return SCORE_METHOD_NONE
        if len(methods) == 1:
            return methods.pop()
        return SCORE_METHOD_HYBRID

    @property
    def positions(self) -> List[Optional[int]]:
        """Positions per evaluation, or the derived position once when unrated."""

        if self.evaluation_scores:
            return [score.position for score in self.evaluation_scores]
        return [self.metric.position]

    @property
    def position(self) -> Optional[int]:
        """Best rank among :attr:`positions`, ``None`` when never found."""

        found = [position for position in self.positions if position is not None]
        return min(found) if found else None


def score_evaluation(
    paper: Paper,
    evaluation: Evaluation,
    component: str,
    metric: ComponentMetric,
) -> EvaluationScore:
    """Return the fused score of ``evaluation`` for ``component``."""

    profile = get_profile(component)
    rating = evaluation.rating_for(component)
    fused = fuse_scores(
        metric.overall,
        rating.rating if rating is not None else None,
        evaluation.evaluator.expertise_multiplier,
        profile.weighting,
    )
    position = evaluation.position_for(component)
    if position is None:
        position = metric.position
    return EvaluationScore(
        paper_id=paper.paper_id,
        evaluator=evaluation.evaluator,
        fused=fused,
        position=position,
    )


def score_paper_component(
    paper: Paper,
    component: str,
    hierarchy: Optional[FieldHierarchyCache] = None,
    *,
    extra_evaluations: Sequence[Evaluation] = (),
) -> PaperComponentScore:
    """Return the metric and per-evaluation fused scores for one paper.

    Parameters
    ----------
    paper:
        Paper whose reference and system output are compared.
    component:
        Component identifier.
    hierarchy:
        Optional research-field hierarchy cache.
    extra_evaluations:
        Evaluations from duplicate records of the same paper.
    """

    metric = compute_component_metric(component, paper, hierarchy)
    evaluations = list(paper.evaluations) + list(extra_evaluations)
    scores = tuple(
        score_evaluation(paper, evaluation, component, metric) for evaluation in evaluations
    )
    automated_only = None
    if metric.overall is not None:
        automated_only = fuse_scores(
            metric.overall, None, 1.0, get_profile(component).weighting
        )
    return PaperComponentScore(
        paper=paper,
        component=component,
        metric=metric,
        evaluation_scores=scores,
        automated_only=automated_only,
    )


def group_papers(papers: Iterable[Paper]) -> Dict[str, List[Paper]]:
    """Group paper records by identifier, preserving first-seen order."""

    groups: Dict[str, List[Paper]] = {}
    for paper in papers:
        groups.setdefault(paper.paper_id, []).append(paper)
    return groups


def score_papers(
    papers: Iterable[Paper],
    component: str,
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> List[PaperComponentScore]:
    """Score every unique paper for ``component``.

    Duplicate records of the same paper are collapsed onto the first record;
    their evaluations are scored against it so that every evaluation counts.
    """

    results: List[PaperComponentScore] = []
    for records in group_papers(papers).values():
        first, rest = records[0], records[1:]
        extra = [evaluation for record in rest for evaluation in record.evaluations]
        results.append(
            score_paper_component(first, component, hierarchy, extra_evaluations=extra)
        )
    return results
