"""Inter-rater agreement over fused evaluation scores.

The metrics operate on per-evaluation scores grouped by paper:

- Fleiss' kappa over shared papers (two or more distinct evaluators), with
  scores discretized into five 20% buckets;
- per-paper variance bands for shared papers;
- cross-paper coefficient-of-variation consistency, used as a labelled
  fallback when too few shared papers exist, grouped with pandas by expertise
  tier and by prior knowledge-graph experience;
- rating-distribution shape (histogram, skewness, kurtosis);
- disagreement patterns among raters and between raters and the system's
  declared confidence.

Fleiss' kappa is computed with :func:`statsmodels.stats.inter_rater.fleiss_kappa`.
Observed and expected agreement are computed alongside so the statistic can
be audited. When every rating lands in the same bucket the expected
agreement is 1 and kappa is reported as 1.0 without calling the library.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats
from statsmodels.stats.inter_rater import fleiss_kappa

from analysis_utils.paper_scores import score_papers
from analysis_utils.statistics import compute_score_correlations, describe
from dataset.expertise import EXPERTISE_TIERS, expertise_tier
from dataset.hierarchy import FieldHierarchyCache
from dataset.models import Evaluator, Paper
from scoring.components import get_profile
from scoring.configs import RATING_SCALE
from utils.schema import COMPONENT_KEYS

LOGGER = logging.getLogger(__name__)

KAPPA_CATEGORY_EDGES = [0.2, 0.4, 0.6, 0.8]
KAPPA_CATEGORY_LABELS = ["0-20%", "20-40%", "40-60%", "60-80%", "80-100%"]
MIN_SHARED_PAPERS = 2

VARIANCE_BANDS = [
    ("high", 0.01),
    ("medium", 0.05),
    ("low", 0.1),
]
VARIANCE_DISAGREEMENT = "disagreement"

CV_HIGH = 15.0
CV_MODERATE = 25.0

HIGH_DISAGREEMENT_VARIANCE = 1.5
HIGH_EXPERTISE_WEIGHT = 4.0
EXPERTISE_RATING_GAP = 1.0
CALIBRATION_TOLERANCE = 0.2

DISTRIBUTION_BINS = [
    ("0-20%", 0.0, 0.2),
    ("20-40%", 0.2, 0.4),
    ("40-60%", 0.4, 0.6),
    ("60-80%", 0.6, 0.8),
    ("80-100%", 0.8, 1.01),
]


@dataclass(frozen=True)
class RaterScore:
    """One evaluator's score for one paper."""

    paper_id: str
    evaluator_id: str
    score: float
    expertise_weight: float = 1.0
    orkg_experience: bool = False


@dataclass(frozen=True)
class FleissKappaResult:
    """Fleiss' kappa with its ingredients.

    ``kappa`` is ``None`` when fewer than two usable shared papers exist;
    ``reason`` then explains why.
    """

    n_papers: int
    raters: int
    observed_agreement: Optional[float]
    expected_agreement: Optional[float]
    kappa: Optional[float]
    interpretation: str
    category_proportions: List[float] = field(default_factory=list)
    dropped_papers: int = 0
    reason: Optional[str] = None

    @property
    def applicable(self) -> bool:
        return self.kappa is not None

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["category_labels"] = list(KAPPA_CATEGORY_LABELS)
        return payload


@dataclass(frozen=True)
class VarianceAgreement:
    """Variance-band agreement over shared papers."""

    per_paper: Dict[str, Dict[str, object]]
    consensus: Dict[str, int]
    mean_variance: float
    agreement: float

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class CrossPaperConsistency:
    """Coefficient of variation over all evaluation scores.

    ``fallback`` marks the statistic as standing in for Fleiss' kappa.
    """

    mean: float
    std: float
    cv: float
    level: str
    count: int
    fallback: bool = False
    by_tier: Dict[str, Dict[str, float]] = field(default_factory=dict)
    by_experience: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class RatingDistribution:
    """Histogram and moments of a score vector."""

    bins: List[Dict[str, object]]
    mean: float
    std: float
    variance: float
    skewness: float
    kurtosis: float
    min: float
    max: float
    count: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class DisagreementPatterns:
    """Where raters disagree with each other or with the system."""

    high_disagreement: List[Dict[str, object]]
    expertise_differences: List[Dict[str, object]]
    system_overconfident: List[Dict[str, object]]
    system_underconfident: List[Dict[str, object]]

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def interpret_kappa(kappa: float) -> str:
    """Return the agreement band for ``kappa``."""

    if kappa < 0.2:
        return "slight"
    if kappa < 0.4:
        return "fair"
    if kappa < 0.6:
        return "moderate"
    if kappa < 0.8:
        return "substantial"
    return "almost perfect"


def categorize_score(score: float) -> int:
    """Return the 0-based 20%-bucket index for ``score``."""

    return int(np.searchsorted(KAPPA_CATEGORY_EDGES, score, side="right"))


def collapse_evaluators(rows: Sequence[RaterScore]) -> List[RaterScore]:
    """Merge rows of the same evaluator into one row carrying their mean score.

    The same evaluator can appear more than once for a paper when the paper
    was exported as several records.
    """

    grouped: Dict[str, List[RaterScore]] = {}
    for row in rows:
        grouped.setdefault(row.evaluator_id, []).append(row)
    return [
        replace(group[0], score=float(np.mean([row.score for row in group])))
        if len(group) > 1
        else group[0]
        for group in grouped.values()
    ]


def shared_papers(
    scores_by_paper: Mapping[str, Sequence[RaterScore]],
) -> Dict[str, List[RaterScore]]:
    """Return papers rated by at least two distinct evaluators.

    Each returned paper holds one row per evaluator.
    """

    shared: Dict[str, List[RaterScore]] = {}
    for paper_id, rows in scores_by_paper.items():
        collapsed = collapse_evaluators(rows)
        if len(collapsed) >= 2:
            shared[paper_id] = collapsed
    return shared


def _not_applicable(n_papers: int, raters: int, reason: str, dropped: int = 0) -> FleissKappaResult:
    return FleissKappaResult(
        n_papers=n_papers,
        raters=raters,
        observed_agreement=None,
        expected_agreement=None,
        kappa=None,
        interpretation="not applicable",
        dropped_papers=dropped,
        reason=reason,
    )


def compute_fleiss_kappa(
    scores_by_paper: Mapping[str, Sequence[RaterScore]],
) -> FleissKappaResult:
    """Return Fleiss' kappa over the shared papers in ``scores_by_paper``.

    Fleiss' kappa needs a constant number of ratings per item. The most
    common count of distinct evaluators among shared papers is used; shared
    papers with a different count are dropped and logged. Repeated scores of
    one evaluator for the same paper count once, at their mean.

    Parameters
    ----------
    scores_by_paper:
        Per-paper rater scores in ``[0, 1]``.

    Returns
    -------
    FleissKappaResult
        ``kappa`` is ``None`` with a reason when fewer than two shared papers
        remain.
    """

    shared = shared_papers(scores_by_paper)
    if len(shared) < MIN_SHARED_PAPERS:
        return _not_applicable(
            len(shared), 0, f"Need at least {MIN_SHARED_PAPERS} papers with 2+ evaluators"
        )

    count_frequency = Counter(len(rows) for rows in shared.values())
    raters = max(count_frequency.items(), key=lambda item: (item[1], item[0]))[0]
    usable = {paper_id: rows for paper_id, rows in shared.items() if len(rows) == raters}
    dropped = len(shared) - len(usable)
    if dropped:
        LOGGER.warning(
            "Dropped %d shared papers whose rater count differs from %d", dropped, raters
        )
    if len(usable) < MIN_SHARED_PAPERS:
        return _not_applicable(
            len(usable), raters, "Too few papers share a constant rater count", dropped
        )

    table = np.zeros((len(usable), len(KAPPA_CATEGORY_LABELS)), dtype=float)
    for row_index, rows in enumerate(usable.values()):
        for row in rows:
            table[row_index, categorize_score(row.score)] += 1

    n_items = table.shape[0]
    proportions = table.sum(axis=0) / (n_items * raters)
    per_item = ((table * (table - 1)).sum(axis=1)) / (raters * (raters - 1))
    observed = float(per_item.mean())
    expected = float((proportions**2).sum())

    if np.isclose(expected, 1.0):
        kappa = 1.0
    else:
        kappa = float(fleiss_kappa(table, method="fleiss"))

    return FleissKappaResult(
        n_papers=n_items,
        raters=raters,
        observed_agreement=observed,
        expected_agreement=expected,
        kappa=kappa,
        interpretation=interpret_kappa(kappa),
        category_proportions=[float(value) for value in proportions],
        dropped_papers=dropped,
    )


def variance_band(variance: float) -> str:
    for name, upper in VARIANCE_BANDS:
        if variance < upper:
            return name
    return VARIANCE_DISAGREEMENT


def compute_variance_agreement(
    scores_by_paper: Mapping[str, Sequence[RaterScore]],
) -> VarianceAgreement:
    """Classify each shared paper by the variance of its evaluators' scores."""

    consensus = {name: 0 for name, _ in VARIANCE_BANDS}
    consensus[VARIANCE_DISAGREEMENT] = 0
    per_paper: Dict[str, Dict[str, object]] = {}
    variances: List[float] = []
    for paper_id, rows in shared_papers(scores_by_paper).items():
        variance = float(np.var([row.score for row in rows]))
        band = variance_band(variance)
        consensus[band] += 1
        variances.append(variance)
        per_paper[paper_id] = {"variance": variance, "band": band, "raters": len(rows)}

    mean_variance = float(np.mean(variances)) if variances else 0.0
    return VarianceAgreement(
        per_paper=per_paper,
        consensus=consensus,
        mean_variance=mean_variance,
        agreement=1.0 - min(mean_variance * 10.0, 1.0),
    )


def consistency_level(cv: float) -> str:
    if cv < CV_HIGH:
        return "High"
    if cv < CV_MODERATE:
        return "Moderate"
    return "Low"


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Return ``std / mean * 100`` (population std), ``0`` when the mean is 0."""

    summary = describe(values)
    return summary.std / summary.mean * 100.0 if summary.mean > 0 else 0.0


def _summary_entry(values: Sequence[float]) -> Dict[str, float]:
    summary = describe(values)
    return {"mean": summary.mean, "std": summary.std, "count": summary.count}


def compute_cross_paper_consistency(
    rows: Iterable[RaterScore],
    *,
    fallback: bool = False,
) -> Optional[CrossPaperConsistency]:
    """Return cross-paper consistency over every evaluation score.

    Parameters
    ----------
    rows:
        All rater scores, shared or not.
    fallback:
        Whether the result stands in for an inapplicable Fleiss' kappa.

    Returns
    -------
    Optional[CrossPaperConsistency]
        ``None`` when fewer than two scores exist.
    """

    rows = list(rows)
    values = [row.score for row in rows]
    if len(values) < 2:
        return None

    summary = describe(values)
    cv = coefficient_of_variation(values)

    frame = pd.DataFrame(
        {
            "score": values,
            "tier": [expertise_tier(row.expertise_weight) for row in rows],
            "orkg_experience": [bool(row.orkg_experience) for row in rows],
        }
    )

    tier_groups = {
        tier_name: _summary_entry(group["score"].tolist())
        for tier_name, group in frame.groupby("tier", sort=False)
    }
    by_tier: Dict[str, Dict[str, float]] = {
        tier_name: tier_groups[tier_name]
        for tier_name, _, _ in EXPERTISE_TIERS
        if tier_name in tier_groups
    }

    with_orkg = frame["orkg_experience"].astype(bool)
    by_experience = {
        "with_orkg": _summary_entry(frame.loc[with_orkg, "score"].tolist()),
        "without_orkg": _summary_entry(frame.loc[~with_orkg, "score"].tolist()),
    }

    return CrossPaperConsistency(
        mean=summary.mean,
        std=summary.std,
        cv=cv,
        level=consistency_level(cv),
        count=summary.count,
        fallback=fallback,
        by_tier=by_tier,
        by_experience=by_experience,
    )


def compute_rating_distribution(values: Iterable[float]) -> RatingDistribution:
    """Histogram scores into 20% bins and report their moments.

    Skewness and kurtosis are the third and fourth standardized moments
    (kurtosis is not excess-adjusted). Both are 0 when the scores have no
    spread.
    """

    scores = np.asarray(list(values), dtype=float)
    bins = []
    for label, lower, upper in DISTRIBUTION_BINS:
        count = int(((scores >= lower) & (scores < upper)).sum()) if scores.size else 0
        bins.append({"range": label, "min": lower, "max": upper, "count": count})

    if scores.size == 0:
        return RatingDistribution(bins, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0)

    std = float(np.std(scores))
    if std > 0:
        skewness = float(scipy_stats.skew(scores, bias=True))
        kurtosis = float(scipy_stats.kurtosis(scores, fisher=False, bias=True))
    else:
        skewness = 0.0
        kurtosis = 0.0

    return RatingDistribution(
        bins=bins,
        mean=float(np.mean(scores)),
        std=std,
        variance=float(np.var(scores)),
        skewness=skewness,
        kurtosis=kurtosis,
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        count=int(scores.size),
    )


def collect_rater_scores(
    papers: Iterable[Paper],
    components: Sequence[str] = tuple(COMPONENT_KEYS),
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> Dict[str, List[RaterScore]]:
    """Return each evaluation's score per paper.

    An evaluation's score is the mean of its fused final scores over
    ``components``; evaluations with no computable score are left out.
    """

    papers = list(papers)
    collected: Dict[str, Dict[int, List[float]]] = {}
    evaluators: Dict[str, Dict[int, Evaluator]] = {}
    for component in components:
        for paper_score in score_papers(papers, component, hierarchy):
            paper_rows = collected.setdefault(paper_score.paper_id, {})
            paper_evaluators = evaluators.setdefault(paper_score.paper_id, {})
            for index, evaluation_score in enumerate(paper_score.evaluation_scores):
                paper_evaluators[index] = evaluation_score.evaluator
                if evaluation_score.final_score is not None:
                    paper_rows.setdefault(index, []).append(evaluation_score.final_score)

    result: Dict[str, List[RaterScore]] = {}
    for paper_id, rows in collected.items():
        for index, values in sorted(rows.items()):
            evaluator = evaluators[paper_id][index]
            result.setdefault(paper_id, []).append(
                RaterScore(
                    paper_id=paper_id,
                    evaluator_id=evaluator.evaluator_id,
                    score=float(np.mean(values)),
                    expertise_weight=evaluator.expertise_weight,
                    orkg_experience=evaluator.orkg_experience,
                )
            )
    return result


def _rating_frame(
    papers: Sequence[Paper],
    components: Sequence[str],
    hierarchy: Optional[FieldHierarchyCache],
) -> Tuple[pd.DataFrame, List[Dict[str, object]]]:
    rows: List[Dict[str, object]] = []
    calibration: List[Dict[str, object]] = []
    for component in components:
        profile = get_profile(component)
        for paper_score in score_papers(papers, component, hierarchy):
            for evaluation_score in paper_score.evaluation_scores:
                if evaluation_score.rating is None:
                    continue
                rows.append(
                    {
                        "component": component,
                        "paper_id": paper_score.paper_id,
                        "rating": float(evaluation_score.rating),
                        "expertise": evaluation_score.evaluator.expertise_weight,
                    }
                )
            mean_rating = paper_score.mean_rating
            prediction = profile.prediction(paper_score.paper)
            if profile.classified and mean_rating is not None and prediction.value:
                calibration.append(
                    {
                        "component": component,
                        "paperId": paper_score.paper_id,
                        "confidence": float(prediction.confidence),
                        "raterAccuracy": mean_rating / RATING_SCALE,
                    }
                )
    frame = pd.DataFrame(rows, columns=["component", "paper_id", "rating", "expertise"])
    return frame, calibration


def analyze_disagreement_patterns(
    papers: Iterable[Paper],
    components: Sequence[str] = tuple(COMPONENT_KEYS),
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> Optional[DisagreementPatterns]:
    """Find where raters disagree with each other or with the system.

    Per component, raw 1-5 ratings are pooled over all evaluations:

    - a rating variance above 1.5 marks a high-disagreement component;
    - when raters with expertise weight of at least 4 and raters below 4
      differ in mean rating by more than 1 point, the gap is reported.

    Per paper and classified component, the system's declared confidence is
    compared with the raters' mean normalized rating. A gap larger than 0.2
    is reported as overconfident (confidence higher) or underconfident.

    Returns
    -------
    Optional[DisagreementPatterns]
        ``None`` when no evaluation rated any of ``components``.
    """

    frame, calibration = _rating_frame(list(papers), components, hierarchy)
    if frame.empty:
        return None

    high_disagreement: List[Dict[str, object]] = []
    expertise_differences: List[Dict[str, object]] = []
    for component, group in frame.groupby("component", sort=False):
        ratings = group["rating"]
        variance = float(ratings.var(ddof=0))
        if variance > HIGH_DISAGREEMENT_VARIANCE:
            high_disagreement.append(
                {
                    "component": component,
                    "variance": variance,
                    "averageRating": float(ratings.mean()),
                    "ratings": [float(value) for value in ratings],
                }
            )

        is_high = group["expertise"] >= HIGH_EXPERTISE_WEIGHT
        high_ratings = ratings[is_high]
        low_ratings = ratings[~is_high]
        if high_ratings.empty or low_ratings.empty:
            continue
        difference = abs(float(high_ratings.mean()) - float(low_ratings.mean()))
        if difference > EXPERTISE_RATING_GAP:
            expertise_differences.append(
                {
                    "component": component,
                    "highExpertiseMean": float(high_ratings.mean()),
                    "lowExpertiseMean": float(low_ratings.mean()),
                    "difference": difference,
                }
            )

    overconfident: List[Dict[str, object]] = []
    underconfident: List[Dict[str, object]] = []
    for entry in calibration:
        error = entry["confidence"] - entry["raterAccuracy"]
        if abs(error) <= CALIBRATION_TOLERANCE:
            continue
        flagged = dict(entry, error=abs(error))
        (overconfident if error > 0 else underconfident).append(flagged)

    return DisagreementPatterns(
        high_disagreement=high_disagreement,
        expertise_differences=expertise_differences,
        system_overconfident=overconfident,
        system_underconfident=underconfident,
    )


def summarize_agreement(
    papers: Iterable[Paper],
    *,
    component: Optional[str] = None,
    components: Optional[Sequence[str]] = None,
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> Dict[str, object]:
    """Return every agreement statistic for the dataset or one component.

    Parameters
    ----------
    papers:
        Normalized papers; duplicates are collapsed onto the first record.
    component:
        Restrict scores to one component. ``None`` uses the mean over
        ``components`` per evaluation.
    components:
        Components pooled when ``component`` is not given. ``None`` means
        every component.
    hierarchy:
        Optional research-field hierarchy cache.

    Returns
    -------
    Dict[str, object]
        JSON-ready summary with the analysis mode, Fleiss' kappa, variance
        agreement, cross-paper consistency, rating distribution, disagreement
        patterns and expertise correlations.
    """

    papers = list(papers)
    if component:
        selected = [component]
    else:
        selected = list(components) if components else list(COMPONENT_KEYS)
    scores_by_paper = collect_rater_scores(papers, selected, hierarchy)
    all_rows = [row for rows in scores_by_paper.values() for row in rows]

    kappa = compute_fleiss_kappa(scores_by_paper)
    if not kappa.applicable:
        LOGGER.info(
            "Fleiss' kappa not applicable (%s); reporting cross-paper consistency as fallback",
            kappa.reason,
        )
    consistency = compute_cross_paper_consistency(all_rows, fallback=not kappa.applicable)
    shared_count = len(shared_papers(scores_by_paper))
    patterns = analyze_disagreement_patterns(papers, selected, hierarchy)

    return {
        "component": component or "overall",
        "analysisMode": "inter-rater" if kappa.applicable else "cross-paper",
        "sharedPapers": shared_count,
        "fleissKappa": kappa.to_dict(),
        "varianceAgreement": compute_variance_agreement(scores_by_paper).to_dict(),
        "crossPaperConsistency": consistency.to_dict() if consistency else None,
        "ratingDistribution": compute_rating_distribution(
            row.score for row in all_rows
        ).to_dict(),
        "components": selected,
        "disagreementPatterns": patterns.to_dict() if patterns else None,
        "correlations": compute_score_correlations(papers, selected, hierarchy),
    }


def component_kappas(
    papers: Iterable[Paper],
    components: Sequence[str] = tuple(COMPONENT_KEYS),
    hierarchy: Optional[FieldHierarchyCache] = None,
) -> Dict[str, Dict[str, object]]:
    """Return Fleiss' kappa per component."""

    papers = list(papers)
    return {
        component: compute_fleiss_kappa(
            collect_rater_scores(papers, [component], hierarchy)
        ).to_dict()
        for component in components
    }
