"""Promotion pipeline settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_float, env_int
from .errors import InvalidConfigurationValueError

DEFAULT_BATCH_SIZE = 50
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_MAX_NORMALIZATION_FAILURES = 3
DEFAULT_REVIEW_SAMPLE_RATE = 0.1


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable settings injected into ``PipelineOrchestrator``.

    ``auto_approval`` is an environment-level override (staging, test corpora): when
    set, VALIDATED items are processed in ``process_batch`` and the manual-review
    requirement is bypassed.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    auto_approval: bool = False
    max_normalization_failures: int = DEFAULT_MAX_NORMALIZATION_FAILURES
    review_sample_rate: float = DEFAULT_REVIEW_SAMPLE_RATE

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise InvalidConfigurationValueError("batch_size", self.batch_size, "at least 1")
        if self.retry_attempts < 1:
            raise InvalidConfigurationValueError(
                "retry_attempts", self.retry_attempts, "at least 1"
            )
        if self.max_normalization_failures < 1:
            raise InvalidConfigurationValueError(
                "max_normalization_failures", self.max_normalization_failures, "at least 1"
            )
        if not 0.0 <= self.review_sample_rate <= 1.0:
            raise InvalidConfigurationValueError(
                "review_sample_rate", self.review_sample_rate, "between 0 and 1"
            )


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        batch_size=env_int("LEXIGATE_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        retry_attempts=env_int("LEXIGATE_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS),
        auto_approval=env_bool("LEXIGATE_AUTO_APPROVAL", default=False),
        max_normalization_failures=env_int(
            "LEXIGATE_MAX_NORMALIZATION_FAILURES", DEFAULT_MAX_NORMALIZATION_FAILURES
        ),
        review_sample_rate=env_float("LEXIGATE_REVIEW_SAMPLE_RATE", DEFAULT_REVIEW_SAMPLE_RATE),
    )
