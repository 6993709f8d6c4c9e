"""
Resilience Infrastructure.

Structured retry logging shared by every tenacity policy in the project.

Usage:
    from modules.backend.core.resilience import log_retry

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type((StorageError, httpx.TransportError)),
        before_sleep=log_retry,
        reraise=True,
    )
    async def fetch_status():
        ...

Filter retry events from the log file with:
    jq 'select(.resilience_event != null)' logs/system.jsonl
"""

from typing import Any

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)


def log_retry(retry_state: Any) -> None:
    """Tenacity before_sleep callback that emits structured retry events.

    Pass this as `before_sleep=log_retry` in any @retry decorator.

    Args:
        retry_state: tenacity.RetryCallState instance
    """
    duration_ms = None
    if retry_state.outcome_timestamp and retry_state.start_time:
        duration_ms = round(
            (retry_state.outcome_timestamp - retry_state.start_time) * 1000
        )

    error = None
    if retry_state.outcome and retry_state.outcome.failed:
        error = type(retry_state.outcome.exception()).__name__

    fn_name = getattr(retry_state.fn, "__name__", "unknown")

    logger.warning(
        f"Retrying {fn_name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": fn_name,
            "attempt": retry_state.attempt_number,
            "duration_ms": duration_ms,
            "error": error,
        },
    )
