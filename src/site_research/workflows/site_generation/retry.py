import logging

from workflows.retry_policy import (
    RetryPolicy,
    retry_if_exception,
    retry_policy,
    stop_after_attempt,
    wait_exponential,
)

from site_research.errors import is_configuration_error


logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 300.0


def is_retryable(error: BaseException) -> bool:
    """Configuration errors fail the step at once; everything else is retried."""
    if is_configuration_error(error):
        logger.error(f"Not retrying configuration error: {error}")
        return False
    logger.warning(f"Step failed, retrying if attempts remain: {error}")
    return True


def exponential_retry(
    retries: int,
    initial_delay: float,
    multiplier: float = 2.0,
    max_delay: float = MAX_RETRY_DELAY,
) -> RetryPolicy:
    """Allow ``retries`` retries after the first failure.

    Retry ``n`` (from 0) waits ``initial_delay * multiplier**n`` seconds, capped at ``max_delay``.
    """
    return retry_policy(
        retry=retry_if_exception(is_retryable),
        wait=wait_exponential(multiplier=initial_delay, exp_base=multiplier, max=max_delay),
        stop=stop_after_attempt(retries + 1),
    )


RESEARCH_RETRY = exponential_retry(retries=3, initial_delay=10)
HTML_RETRY = exponential_retry(retries=3, initial_delay=15)
LEGAL_RETRY = exponential_retry(retries=3, initial_delay=10)
SCORE_RETRY = exponential_retry(retries=2, initial_delay=10)
UPLOAD_RETRY = exponential_retry(retries=3, initial_delay=5)
STATUS_RETRY = exponential_retry(retries=3, initial_delay=5)

ALL_RETRY_POLICIES = [
    RESEARCH_RETRY,
    HTML_RETRY,
    LEGAL_RETRY,
    SCORE_RETRY,
    UPLOAD_RETRY,
    STATUS_RETRY,
]
