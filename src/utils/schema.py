"""Centralized schema constants for dataset inputs and export payloads.

This module defines component identifiers, classification labels, provenance
tags, and the field names of the per-component export artifact. Import these
constants instead of repeating string literals across modules so the export
schema stays stable for downstream tooling.
"""

from __future__ import annotations

SCHEMA_VERSION = "1.0"


# Extraction components -----------------------------------------------------

COMPONENT_METADATA = "metadata"
COMPONENT_RESEARCH_FIELD = "research_field"
COMPONENT_RESEARCH_PROBLEM = "research_problem"
COMPONENT_TEMPLATE = "template"
COMPONENT_CONTENT = "content"

COMPONENT_KEYS = [
    COMPONENT_METADATA,
    COMPONENT_RESEARCH_FIELD,
    COMPONENT_RESEARCH_PROBLEM,
    COMPONENT_TEMPLATE,
    COMPONENT_CONTENT,
]

METADATA_FIELDS = ["title", "authors", "doi", "publication_year", "venue"]


# Classification labels -----------------------------------------------------

LABEL_TP = "TP"
LABEL_FN = "FN"
LABEL_FP = "FP"
LABEL_TN = "TN"
LABEL_NA = "N/A"

MATRIX_LABELS = [LABEL_TP, LABEL_FN, LABEL_FP, LABEL_TN]


# Provenance ----------------------------------------------------------------

SOURCE_EXTERNAL = "external"
SOURCE_GENERATED = "generated"


# Score methods -------------------------------------------------------------

SCORE_METHOD_HYBRID = "hybrid"
SCORE_METHOD_AUTOMATED = "automated"
SCORE_METHOD_USER = "user_rating"
SCORE_METHOD_NONE = "none"


# Export artifact (confusion_matrix_<component>.json) ----------------------

EXPORT_SCHEMA_VERSION = "schemaVersion"
EXPORT_COMPONENT = "component"
EXPORT_CONFIDENCE_THRESHOLD = "confidenceThreshold"
EXPORT_MATRIX = "matrix"
EXPORT_METRICS = "metrics"
EXPORT_PAPER_BREAKDOWN = "paperBreakdown"
EXPORT_COVERAGE = "coverage"
EXPORT_SOURCE_STATS = "sourceStats"
EXPORT_POSITION_STATS = "positionStats"
EXPORT_SCORING_STATS = "scoringStats"
EXPORT_COUNTS = "counts"
EXPORT_TIMESTAMP = "timestamp"
EXPORT_INSUFFICIENT_GT = "insufficientGroundTruth"

MATRIX_TP = "tp"
MATRIX_FN = "fn"
MATRIX_FP = "fp"
MATRIX_TN = "tn"

METRIC_ACCURACY = "accuracy"
METRIC_PRECISION = "precision"
METRIC_RECALL = "recall"
METRIC_F1 = "f1Score"

BREAKDOWN_DOI = "doi"
BREAKDOWN_TITLE = "title"
BREAKDOWN_GROUND_TRUTH = "groundTruth"
BREAKDOWN_SYSTEM_PREDICTION = "systemPrediction"
BREAKDOWN_CLASSIFICATION = "classification"
BREAKDOWN_SCORE = "score"
BREAKDOWN_SCORE_METHOD = "scoreMethod"
BREAKDOWN_USER_RATING = "userRating"
BREAKDOWN_SOURCE = "source"
BREAKDOWN_POSITION = "position"

BREAKDOWN_COLUMNS = [
    BREAKDOWN_DOI,
    BREAKDOWN_TITLE,
    BREAKDOWN_GROUND_TRUTH,
    BREAKDOWN_SYSTEM_PREDICTION,
    BREAKDOWN_CLASSIFICATION,
    BREAKDOWN_SCORE,
    BREAKDOWN_SCORE_METHOD,
    BREAKDOWN_USER_RATING,
    BREAKDOWN_SOURCE,
    BREAKDOWN_POSITION,
]

COVERAGE_TOTAL = "totalPapers"
COVERAGE_WITH_GT = "withGroundTruth"
COVERAGE_WITHOUT_GT = "withoutGroundTruth"

SOURCE_STATS_EXTERNAL = "orkg"
SOURCE_STATS_GENERATED = "llm"
SOURCE_STATS_EXTERNAL_ACCURACY = "orkgAccuracy"
SOURCE_STATS_GENERATED_RATING = "llmUserRating"

POSITION_TOP1 = "top1"
POSITION_TOP3 = "top3"
POSITION_TOP5 = "top5"
POSITION_OUTSIDE = "outside"

SCORING_OVERALL = "overallScore"
SCORING_GT_BASED = "gtBasedScore"
SCORING_USER_RATING = "userRatingScore"
SCORING_SCORED_PAPERS = "scoredPapers"
SCORING_GT_SCORED_PAPERS = "gtScoredPapers"
SCORING_USER_RATED_PAPERS = "userRatedPapers"

COUNTS_TOTAL_EVALUATIONS = "totalEvaluations"
COUNTS_TOTAL_UNIQUE_PAPERS = "totalUniquePapers"
