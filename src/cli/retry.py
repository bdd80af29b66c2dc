"""Caller-level retry with exponential backoff for LLM calls."""

import logging

import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from llm import LLMRateLimitError, TransportError

logger = structlog.stdlib.get_logger(__name__)

RETRYABLE_LLM_ERRORS = (TransportError, LLMRateLimitError)


def llm_retry(
    max_attempts: int = 3,
    min_wait: float = 2.0,
    max_wait: float = 30.0,
    exceptions: tuple = RETRYABLE_LLM_ERRORS,
):
    """Retry decorator for non-streaming LLM API calls.

    Works on both sync and async callables. Only network failures and rate
    limits are retried by default; auth and parse errors fail fast.

    Args:
        max_attempts: Max retry attempts
        min_wait: Min wait between retries (seconds)
        max_wait: Max wait between retries (seconds)
        exceptions: Exception types to retry on
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retry_from_config(retry_config):
    """Create the LLM retry decorator from a RetryConfig model."""
    return llm_retry(
        max_attempts=retry_config.max_attempts,
        min_wait=retry_config.min_wait,
        max_wait=retry_config.llm_max_wait,
    )
