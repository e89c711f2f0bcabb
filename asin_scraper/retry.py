import logging
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from .logging_utils import log_event
from .models import ExtractionResult, Task, TaskState
from .policy import PacingPolicy
from .utils import describe_error, failed_result

logger = logging.getLogger(__name__)


class RetryController:
    """
    Drives one task through its attempts.

    Attempt n succeeds -> SUCCEEDED. Attempt n raises and n < max_attempts ->
    randomized backoff, then attempt n+1. The last attempt raises -> FAILED,
    returned as a record carrying that attempt's error message.

    Only exceptions count as failures; a page that loads but lacks fields is a
    success with None fields. Backoff comes from the pacing policy so a seeded
    run waits the same way every time.
    """

    def __init__(self, max_attempts: int, pacing: PacingPolicy):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.pacing = pacing

    def _backoff(self, retry_state: RetryCallState) -> float:
        return self.pacing.backoff_delay()

    async def run(
        self,
        task: Task,
        url: str,
        attempt: Callable[[], Awaitable[ExtractionResult]],
    ) -> ExtractionResult:
        task.state = TaskState.IN_FLIGHT
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._backoff,
            sleep=self.pacing.pause,
            retry=retry_if_exception_type(Exception),
            reraise=True,
        )

        try:
            async for try_ in retrying:
                with try_:
                    task.attempts = try_.retry_state.attempt_number
                    try:
                        result = await attempt()
                    except Exception as e:
                        log_event(
                            logger, logging.WARNING, "attempt_failed",
                            identifier=task.identifier, attempt=task.attempts,
                            error_type=type(e).__name__, error=describe_error(e),
                        )
                        raise
        except Exception as e:
            task.state = TaskState.FAILED
            return failed_result(task.identifier, url, describe_error(e), task.attempts)

        task.state = TaskState.SUCCEEDED
        result.attempts = task.attempts
        return result
