import re
from enum import Enum


class FetchState(Enum):
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    WAITING = "waiting"
    TERMINAL_FAILURE = "terminal_failure"


class RetryPolicy:
    """Which failures are worth another attempt, and how long to wait first."""

    MAX_ATTEMPTS = 3
    BASE_DELAY_SECONDS = 1.0

    TRANSIENT_ERROR_PATTERN = re.compile(
        r"fetch failed|network|timed? ?out|econnreset|econnrefused|socket hang up"
        r"|connection (?:error|reset|refused|aborted)|temporarily unavailable"
        r"|overloaded",
        re.IGNORECASE,
    )

    def __init__(self, max_attempts=MAX_ATTEMPTS, base_delay=BASE_DELAY_SECONDS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    @staticmethod
    def status_code_of(error):
        status = getattr(error, "status_code", None)
        if status is None:
            status = getattr(error, "status", None)
        return status if isinstance(status, int) else None

    def is_retryable(self, error):
        status = self.status_code_of(error)
        if status is None or status >= 500:
            return True
        return bool(self.TRANSIENT_ERROR_PATTERN.search(str(error)))

    def delay_before_retry(self, retry_number):
        """Delay before retry k (1-based): base, 2 * base, 4 * base, ..."""
        return self.base_delay * 2 ** (retry_number - 1)


class RetryStateMachine:
    """
    Tracks one fetch across its attempts.

    ATTEMPTING -> SUCCESS
    ATTEMPTING -> RETRYABLE_FAILURE -> WAITING -> ATTEMPTING
    ATTEMPTING -> TERMINAL_FAILURE  (non-retryable error or budget spent)
    """

    def __init__(self, policy=None):
        self.policy = policy or RetryPolicy()
        self.state = FetchState.ATTEMPTING
        self.attempt = 0
        self.last_error = None

    @property
    def attempts_left(self):
        return self.policy.max_attempts - self.attempt

    @property
    def finished(self):
        return self.state in (FetchState.SUCCESS, FetchState.TERMINAL_FAILURE)

    def _require(self, *states):
        if self.state not in states:
            expected = ", ".join(s.name for s in states)
            raise RuntimeError(
                f"Invalid transition from {self.state.name}; expected {expected}."
            )

    def start_attempt(self):
        self._require(FetchState.ATTEMPTING)
        self.attempt += 1
        return self.attempt

    def record_success(self):
        self._require(FetchState.ATTEMPTING)
        self.state = FetchState.SUCCESS
        return self.state

    def record_failure(self, error):
        self._require(FetchState.ATTEMPTING)
        self.last_error = error
        if self.policy.is_retryable(error) and self.attempts_left > 0:
            self.state = FetchState.RETRYABLE_FAILURE
        else:
            self.state = FetchState.TERMINAL_FAILURE
        return self.state

    def begin_wait(self):
        """Moves to WAITING and returns the delay in seconds before the next attempt."""
        self._require(FetchState.RETRYABLE_FAILURE)
        self.state = FetchState.WAITING
        return self.policy.delay_before_retry(self.attempt)

    def resume(self):
        self._require(FetchState.WAITING)
        self.state = FetchState.ATTEMPTING
        return self.state
