"""Strict in-memory model for papers, system output, and evaluations.

Every record here is a frozen dataclass produced once by
:func:`dataset.normalize.normalize_dataset`. Downstream scoring and analysis
code assumes these types and never re-validates upstream shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from utils.schema import SOURCE_EXTERNAL


@dataclass(frozen=True)
class GroundTruth:
    """Reference values for one paper, one optional field per component.

    Parameters
    ----------
    title, authors, doi, publication_year, venue:
        Bibliographic metadata. ``authors`` is kept in source order.
    research_field:
        Label of the reference research field.
    research_problem:
        Reference research problem title.
    template:
        Reference template name.
    """

    title: Optional[str] = None
    authors: Tuple[str, ...] = ()
    doi: Optional[str] = None
    publication_year: Optional[str] = None
    venue: Optional[str] = None
    research_field: Optional[str] = None
    research_problem: Optional[str] = None
    template: Optional[str] = None

    def metadata_value(self, name: str) -> Optional[str]:
        """Return a metadata field as a comparable string or ``None``."""

        if name == "authors":
            return "; ".join(self.authors) if self.authors else None
        value = getattr(self, name)
        return value if value else None


@dataclass(frozen=True)
class RankedPrediction:
    """One entry of a ranked prediction list (for example research fields)."""

    name: str
    score: float = 1.0


@dataclass(frozen=True)
class ComponentPrediction:
    """A single predicted value with its confidence and provenance.

    Parameters
    ----------
    value:
        Predicted text value, ``None`` when the system produced nothing.
    confidence:
        System confidence in ``[0, 1]``.
    source:
        ``"external"`` when retrieved from a reference source, otherwise
        ``"generated"``.
    """

    value: Optional[str] = None
    confidence: float = 1.0
    source: str = SOURCE_EXTERNAL


@dataclass(frozen=True)
class ExtractedProperty:
    """A content property extracted from the paper text."""

    value: Optional[str]
    confidence: Optional[float] = None
    evidence: Optional[str] = None


@dataclass(frozen=True)
class ContentExtraction:
    """Free-form content extraction for the ``content`` component.

    Parameters
    ----------
    properties:
        Mapping from property name to the extracted value.
    template_properties:
        Property names declared by the selected template. Empty when the
        template signal is missing.
    """

    properties: Mapping[str, ExtractedProperty] = field(default_factory=dict)
    template_properties: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SystemOutput:
    """Everything the extraction system produced for one paper."""

    metadata: Mapping[str, Optional[str]] = field(default_factory=dict)
    metadata_confidence: float = 1.0
    research_fields: Tuple[RankedPrediction, ...] = ()
    research_problem: ComponentPrediction = field(default_factory=ComponentPrediction)
    template: ComponentPrediction = field(default_factory=ComponentPrediction)
    content: ContentExtraction = field(default_factory=ContentExtraction)


@dataclass(frozen=True)
class Evaluator:
    """Profile of the person who authored an evaluation.

    Parameters
    ----------
    evaluator_id:
        Stable identifier for the evaluator.
    expertise_weight:
        Expertise on the ``[1, 5]`` scale used for tiering.
    expertise_multiplier:
        Multiplier applied to the evaluator's ratings during fusion.
    orkg_experience:
        Whether the evaluator has prior experience with the reference
        knowledge graph.
    role:
        Optional free-text role, kept for reporting.
    """

    evaluator_id: str
    expertise_weight: float = 1.0
    expertise_multiplier: float = 1.0
    orkg_experience: bool = False
    role: Optional[str] = None


@dataclass(frozen=True)
class ComponentRating:
    """A 1-5 rating for one component with an optional comment."""

    rating: int
    comments: Optional[str] = None

    @property
    def normalized(self) -> float:
        return self.rating / 5.0


@dataclass(frozen=True)
class Evaluation:
    """One evaluator's ratings (and optional positions) for one paper."""

    evaluator: Evaluator
    ratings: Mapping[str, ComponentRating] = field(default_factory=dict)
    positions: Mapping[str, int] = field(default_factory=dict)

    def rating_for(self, component: str) -> Optional[ComponentRating]:
        return self.ratings.get(component)

    def position_for(self, component: str) -> Optional[int]:
        return self.positions.get(component)


@dataclass(frozen=True)
class Paper:
    """A paper with its reference data, system output, and evaluations.

    Parameters
    ----------
    paper_id:
        DOI when available, otherwise an upstream token. Used for
        deduplication.
    title:
        Display title, taken from ground truth or system metadata.
    ground_truth:
        Reference record or ``None`` when the paper has none.
    system_output:
        Extracted values.
    evaluations:
        Evaluations in upstream order.
    doi:
        DOI when one is known.
    """

    paper_id: str
    title: Optional[str] = None
    ground_truth: Optional[GroundTruth] = None
    system_output: SystemOutput = field(default_factory=SystemOutput)
    evaluations: Tuple[Evaluation, ...] = ()
    doi: Optional[str] = None


@dataclass(frozen=True)
class Dataset:
    """Normalized collection of papers passed explicitly to the engine."""

    papers: Tuple[Paper, ...] = ()
    skipped_records: int = 0

    def __iter__(self):
        return iter(self.papers)

    def __len__(self) -> int:
        return len(self.papers)

    @property
    def evaluation_count(self) -> int:
        return sum(len(paper.evaluations) for paper in self.papers)

    def evaluators(self) -> Dict[str, Evaluator]:
        """Return evaluators keyed by id, first profile seen wins."""

        seen: Dict[str, Evaluator] = {}
        for paper in self.papers:
            for evaluation in paper.evaluations:
                seen.setdefault(evaluation.evaluator.evaluator_id, evaluation.evaluator)
        return seen
