"""Status polling for documents still being processed upstream.

The engine never polls on its own. Callers that load a document while an
extractor is still working pass their own status function here and get the
final status back once it leaves the processing states.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_exponential

from citesync.config import Settings, get_settings
from citesync.exceptions import StatusPollTimeoutError
from citesync.logging import get_logger, log_failure

logger = get_logger("polling")


def wait_for_status(
    poll: Callable[[], str],
    processing_states: Iterable[str] | None = None,
    max_attempts: int | None = None,
    interval: float | None = None,
    max_interval: float | None = None,
    sleep: Callable[[float], None] | None = None,
    settings: Settings | None = None,
) -> str:
    """Call ``poll`` until it reports a status outside the processing states.

    Args:
        poll: Returns the current status, e.g. "PROCESSING" or "COMPLETED"
        processing_states: Statuses that mean "still working" (case-insensitive)
        max_attempts: Polls before giving up
        interval: First wait between polls, in seconds
        max_interval: Cap on the exponential backoff, in seconds
        sleep: Sleep function (injectable for tests)
        settings: Defaults for the arguments above

    Returns:
        The first status outside the processing states

    Raises:
        StatusPollTimeoutError: If every attempt reported a processing state
    """
    settings = settings or get_settings()
    busy = {s.upper() for s in (processing_states or settings.processing_states)}
    attempts = max_attempts or settings.poll_max_attempts
    first = interval if interval is not None else settings.poll_interval_seconds
    cap = max_interval if max_interval is not None else settings.poll_max_interval_seconds

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=first, min=first, max=cap),
        retry=retry_if_result(lambda status: (status or "").upper() in busy),
        before_sleep=lambda state: logger.debug(
            f"Status {state.outcome.result()!r} after attempt {state.attempt_number}, polling again"
        ),
        sleep=sleep or time.sleep,
    )

    try:
        return retrying(poll)
    except RetryError as e:
        last_status = e.last_attempt.result()
        error = StatusPollTimeoutError(attempts, last_status)
        log_failure(logger, "wait_for_status", error, context={"attempts": attempts})
        raise error from e
