"""Single normalization step from upstream payloads to the strict model.

Upstream exports arrive in several shapes (camelCase and snake_case keys,
``systemData`` versus ``systemOutput``, ratings as bare integers or nested
objects, evaluator profiles nested under ``userInfo``). All of that is
resolved here, exactly once, so the scoring and analysis layers can assume
well-typed :mod:`dataset.models` records.

Records that cannot be interpreted are skipped with a warning. Structural
problems with the payload as a whole, or values that are present but
invalid (a rating outside ``1..5``), raise :class:`DatasetError`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dataset.expertise import (
    calculate_expertise_weight,
    expertise_to_multiplier,
    multiplier_to_expertise,
)
from dataset.models import (
    ComponentPrediction,
    ComponentRating,
    ContentExtraction,
    Dataset,
    Evaluation,
    Evaluator,
    ExtractedProperty,
    GroundTruth,
    Paper,
    RankedPrediction,
    SystemOutput,
)
from utils.schema import (
    COMPONENT_KEYS,
    METADATA_FIELDS,
    SOURCE_EXTERNAL,
    SOURCE_GENERATED,
)

LOGGER = logging.getLogger(__name__)

RATING_MIN = 1
RATING_MAX = 5

_GENERATED_SOURCES = {"generated", "llm", "llm_generated", "ai", "system"}
_EXTERNAL_SOURCES = {"external", "orkg", "reference", "retrieved"}
_TRUE_STRINGS = {"true", "yes", "used", "1", "y"}


class DatasetError(ValueError):
    """Raised when an upstream payload cannot be normalized."""


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present, non-``None`` value among ``keys``."""

    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [_clean_text(item) for item in value]
        joined = "; ".join(part for part in parts if part)
        return joined or None
    if isinstance(value, Mapping):
        return _clean_text(_first(value, "label", "name", "title", "value"))
    text = str(value).strip()
    return text or None


def _as_float(value: Any, *, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise DatasetError(f"{name} must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise DatasetError(f"{name} must be numeric, got {value!r}") from err


def _as_positive(value: Any, *, name: str) -> Optional[float]:
    number = _as_float(value, name=name)
    if number is not None and not (0.0 < number < float("inf")):
        raise DatasetError(f"{name} must be a positive number, got {value!r}")
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _as_source(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text in _GENERATED_SOURCES:
        return SOURCE_GENERATED
    if text and text not in _EXTERNAL_SOURCES:
        LOGGER.debug("Unknown provenance %r treated as external", value)
    return SOURCE_EXTERNAL


def _authors(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = [part.strip() for part in value.replace(" and ", ";").split(";")]
        return tuple(part for part in parts if part)
    if isinstance(value, (list, tuple)):
        names = [_clean_text(item) for item in value]
        return tuple(name for name in names if name)
    return ()


def _year(value: Any) -> Optional[str]:
    text = _clean_text(value)
    if text is None:
        return None
    # ISO dates keep only the year.
    if len(text) >= 4 and text[:4].isdigit():
        return text[:4]
    return text


def normalize_ground_truth(raw: Any) -> Optional[GroundTruth]:
    """Return a :class:`GroundTruth` or ``None`` when no reference exists."""

    if not isinstance(raw, Mapping) or not raw:
        return None
    ground_truth = GroundTruth(
        title=_clean_text(raw.get("title")),
        authors=_authors(raw.get("authors")),
        doi=_clean_text(raw.get("doi")),
        publication_year=_year(_first(raw, "publication_year", "publicationYear", "year")),
        venue=_clean_text(raw.get("venue")),
        research_field=_clean_text(
            _first(raw, "research_field", "research_field_name", "researchField")
        ),
        research_problem=_clean_text(
            _first(raw, "research_problem", "research_problem_name", "researchProblem")
        ),
        template=_clean_text(_first(raw, "template", "template_name", "templateName")),
    )
    if ground_truth == GroundTruth():
        return None
    return ground_truth


def _ranked_predictions(raw: Any) -> Tuple[RankedPrediction, ...]:
    if isinstance(raw, (str, Mapping)):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return ()
    predictions: List[RankedPrediction] = []
    for item in raw:
        if isinstance(item, str):
            name = _clean_text(item)
            score = 1.0
        elif isinstance(item, Mapping):
            name = _clean_text(_first(item, "name", "label", "field", "value"))
            score = _as_float(_first(item, "score", "confidence"), name="field score")
        else:
            continue
        if name:
            predictions.append(RankedPrediction(name=name, score=1.0 if score is None else score))
    return tuple(predictions)


def _component_prediction(raw: Any) -> ComponentPrediction:
    if raw is None:
        return ComponentPrediction()
    if not isinstance(raw, Mapping):
        return ComponentPrediction(value=_clean_text(raw))
    confidence = _as_float(raw.get("confidence"), name="confidence")
    return ComponentPrediction(
        value=_clean_text(_first(raw, "value", "title", "name", "label")),
        confidence=1.0 if confidence is None else confidence,
        source=_as_source(_first(raw, "source", "provenance")),
    )


def _content(raw: Any) -> ContentExtraction:
    if not isinstance(raw, Mapping):
        return ContentExtraction()
    properties_raw = raw.get("properties")
    if not isinstance(properties_raw, Mapping):
        properties_raw = {
            key: value
            for key, value in raw.items()
            if key not in ("template_properties", "templateProperties")
        }
    properties: Dict[str, ExtractedProperty] = {}
    for name, value in properties_raw.items():
        if isinstance(value, Mapping):
            properties[str(name)] = ExtractedProperty(
                value=_clean_text(value.get("value")),
                confidence=_as_float(value.get("confidence"), name="property confidence"),
                evidence=_clean_text(value.get("evidence")),
            )
        else:
            properties[str(name)] = ExtractedProperty(value=_clean_text(value))
    template_props = _first(raw, "template_properties", "templateProperties") or []
    names = tuple(
        name for name in (_clean_text(item) for item in template_props) if name
    )
    return ContentExtraction(properties=properties, template_properties=names)


def normalize_system_output(raw: Any) -> SystemOutput:
    """Return a :class:`SystemOutput`, empty when ``raw`` is missing."""

    if not isinstance(raw, Mapping):
        return SystemOutput()
    metadata_raw = raw.get("metadata") or {}
    metadata: Dict[str, Optional[str]] = {}
    metadata_confidence = 1.0
    if isinstance(metadata_raw, Mapping):
        for name in METADATA_FIELDS:
            if name == "authors":
                authors = _authors(metadata_raw.get("authors"))
                metadata[name] = "; ".join(authors) if authors else None
            elif name == "publication_year":
                metadata[name] = _year(
                    _first(metadata_raw, "publication_year", "publicationYear", "year")
                )
            else:
                metadata[name] = _clean_text(metadata_raw.get(name))
        confidence = _as_float(metadata_raw.get("confidence"), name="metadata confidence")
        if confidence is not None:
            metadata_confidence = confidence

    return SystemOutput(
        metadata=metadata,
        metadata_confidence=metadata_confidence,
        research_fields=_ranked_predictions(
            _first(raw, "research_fields", "researchFields", "research_field")
        ),
        research_problem=_component_prediction(
            _first(raw, "research_problem", "researchProblem")
        ),
        template=_component_prediction(raw.get("template")),
        content=_content(raw.get("content")),
    )


def normalize_evaluator(raw: Mapping[str, Any], fallback_id: str) -> Evaluator:
    """Resolve evaluator identity and expertise from an evaluation record.

    When only one of expertise weight and multiplier is present the other is
    derived from it. When neither is present but a role profile is, the
    weight is computed from the role tables.
    """

    info = raw.get("userInfo") or raw.get("evaluator") or {}
    if not isinstance(info, Mapping):
        info = {}
    merged: Dict[str, Any] = dict(info)
    merged.update(
        (key, value) for key, value in raw.items() if key not in ("userInfo", "evaluator")
    )

    evaluator_id = _clean_text(
        _first(merged, "evaluatorId", "evaluator_id", "email", "id")
    )
    if evaluator_id is None:
        names = [_clean_text(merged.get("firstName")), _clean_text(merged.get("lastName"))]
        joined = "_".join(name for name in names if name)
        evaluator_id = joined or fallback_id

    prior = _as_bool(_first(merged, "orkgExperience", "orkg_experience", "priorExperience"))
    role = _clean_text(merged.get("role"))
    weight = _as_positive(
        _first(merged, "expertiseWeight", "expertise_weight"), name="expertise weight"
    )
    multiplier = _as_positive(
        _first(merged, "expertiseMultiplier", "expertise_multiplier"),
        name="expertise multiplier",
    )

    if weight is None and multiplier is None and role is not None:
        weight = calculate_expertise_weight(
            role,
            _clean_text(_first(merged, "domainExpertise", "domain_expertise")),
            _clean_text(_first(merged, "evaluationExperience", "evaluation_experience")),
            prior,
        ).final_weight
    if multiplier is None:
        multiplier = expertise_to_multiplier(weight)
    if weight is None:
        weight = multiplier_to_expertise(multiplier)

    return Evaluator(
        evaluator_id=evaluator_id,
        expertise_weight=weight,
        expertise_multiplier=multiplier,
        orkg_experience=prior,
        role=role,
    )


def _rating(component: str, raw: Any) -> Optional[ComponentRating]:
    comments = None
    if isinstance(raw, Mapping):
        comments = _clean_text(_first(raw, "comments", "comment"))
        raw = _first(raw, "rating", "score", "value")
    if raw is None or raw == "":
        return None
    value = _as_float(raw, name=f"{component} rating")
    if value is None:
        return None
    if not float(value).is_integer() or not RATING_MIN <= value <= RATING_MAX:
        raise DatasetError(
            f"{component} rating must be an integer in {RATING_MIN}..{RATING_MAX}, got {raw!r}"
        )
    return ComponentRating(rating=int(value), comments=comments)


def normalize_evaluation(raw: Mapping[str, Any], fallback_id: str) -> Evaluation:
    """Return a strict :class:`Evaluation` for one upstream evaluation record."""

    ratings_raw = raw.get("ratings") or {}
    ratings: Dict[str, ComponentRating] = {}
    if isinstance(ratings_raw, Mapping):
        for component, value in ratings_raw.items():
            if component not in COMPONENT_KEYS:
                LOGGER.debug("Ignoring rating for unknown component %r", component)
                continue
            rating = _rating(component, value)
            if rating is not None:
                ratings[component] = rating

    positions: Dict[str, int] = {}
    positions_raw = raw.get("positions") or {}
    if isinstance(positions_raw, Mapping):
        for component, value in positions_raw.items():
            position = _as_float(value, name=f"{component} position")
            if position is not None and position >= 1:
                positions[str(component)] = int(position)

    return Evaluation(
        evaluator=normalize_evaluator(raw, fallback_id),
        ratings=ratings,
        positions=positions,
    )


def normalize_paper(raw: Mapping[str, Any], index: int) -> Paper:
    """Return a strict :class:`Paper` for one upstream paper record.

    Raises
    ------
    DatasetError
        If the record has no usable identifier or carries invalid values.
    """

    ground_truth = normalize_ground_truth(_first(raw, "groundTruth", "ground_truth"))
    system_output = normalize_system_output(
        _first(raw, "systemOutput", "system_output", "systemData", "system_data")
    )

    doi = _clean_text(raw.get("doi"))
    if doi is None and ground_truth is not None:
        doi = ground_truth.doi
    if doi is None:
        doi = system_output.metadata.get("doi")
    token = _clean_text(_first(raw, "token", "id", "paper_id"))
    paper_id = doi or token
    if paper_id is None:
        raise DatasetError(f"Paper record {index} has neither DOI nor token")

    title = _clean_text(raw.get("title"))
    if title is None and ground_truth is not None:
        title = ground_truth.title
    if title is None:
        title = system_output.metadata.get("title")

    evaluations_raw = _first(raw, "evaluations", "userEvaluations", "user_evaluations") or []
    if not isinstance(evaluations_raw, Sequence) or isinstance(evaluations_raw, str):
        raise DatasetError(f"Paper {paper_id}: evaluations must be a list")
    evaluations = tuple(
        normalize_evaluation(item, fallback_id=f"{paper_id}#eval{pos}")
        for pos, item in enumerate(evaluations_raw)
        if isinstance(item, Mapping)
    )

    return Paper(
        paper_id=paper_id,
        title=title,
        ground_truth=ground_truth,
        system_output=system_output,
        evaluations=evaluations,
        doi=doi,
    )


def _paper_records(payload: Any) -> List[Any]:
    if isinstance(payload, Mapping):
        papers = payload.get("papers")
        if isinstance(papers, Mapping):
            return [
                {"token": key, **value} if isinstance(value, Mapping) else value
                for key, value in papers.items()
            ]
        if isinstance(papers, list):
            return papers
        raise DatasetError("Dataset mapping must contain a 'papers' list or mapping")
    if isinstance(payload, list):
        return payload
    raise DatasetError(
        f"Dataset payload must be a list or mapping, got {type(payload).__name__}"
    )


def normalize_dataset(payload: Any, *, strict: bool = False) -> Dataset:
    """Normalize an upstream payload into a :class:`Dataset`.

    Parameters
    ----------
    payload:
        A list of paper records, or a mapping with a ``papers`` list or
        token-keyed mapping.
    strict:
        When ``True``, the first invalid paper record raises instead of being
        skipped.

    Returns
    -------
    Dataset
        Papers in payload order together with the number of skipped records.

    Raises
    ------
    DatasetError
        If the payload shape is unusable, or a record is invalid and
        ``strict`` is set.
    """

    records = _paper_records(payload)
    papers: List[Paper] = []
    skipped = 0
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            LOGGER.warning("Skipping paper record %d: not an object", index)
            skipped += 1
            continue
        try:
            papers.append(normalize_paper(record, index))
        except DatasetError as err:
            if strict:
                raise
            LOGGER.warning("Skipping paper record %d: %s", index, err)
            skipped += 1
    return Dataset(papers=tuple(papers), skipped_records=skipped)
