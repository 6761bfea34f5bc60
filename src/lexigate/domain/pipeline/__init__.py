"""Promotion pipeline steps and the services that drive them."""

from __future__ import annotations

from .approval import (
    COLD_START_THRESHOLD,
    MANUAL_REVIEW_MESSAGE,
    MIN_CONFIDENCE,
    ApprovalStep,
    review_priority,
)
from .events import PipelineEventLogger
from .normalization import NormalizationStep, parse_array
from .orchestrator import PipelineOrchestrator
from .promotion import HEADLINE_FIELDS, approved_record, approved_table_name, promote_validated
from .review import ReviewService
from .similarity import DEFAULT_SIMILARITY_THRESHOLD, similarity, trigrams
from .validation import CEFR_LEVELS, SUPPORTED_LANGUAGES, ValidationStep, describe_payload

__all__ = [
    "CEFR_LEVELS",
    "COLD_START_THRESHOLD",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "HEADLINE_FIELDS",
    "MANUAL_REVIEW_MESSAGE",
    "MIN_CONFIDENCE",
    "SUPPORTED_LANGUAGES",
    "ApprovalStep",
    "NormalizationStep",
    "PipelineEventLogger",
    "PipelineOrchestrator",
    "ReviewService",
    "ValidationStep",
    "approved_record",
    "approved_table_name",
    "describe_payload",
    "parse_array",
    "promote_validated",
    "review_priority",
    "similarity",
    "trigrams",
]
