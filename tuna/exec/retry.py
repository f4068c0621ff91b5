#!/usr/bin/env python3
import logging
import random
import threading
import time
from typing import Callable, Optional, TypeVar

import requests

from tuna.errors import (
    EmptyChoicesError,
    MalformedResponseError,
    QueryReadError,
    RateLimitCancelledError,
    TaskCancelledError,
)

T = TypeVar('T')

RETRYABLE = {
    'timeout',
    'connection',
    '5xx',
    '429_rate_limit',
    'malformed_response',
    'empty_choices',
}


def classify_error(error: BaseException) -> str:
    if isinstance(error, RateLimitCancelledError):
        return 'rate_limit_cancelled'
    if isinstance(error, TaskCancelledError):
        return 'cancelled'
    if isinstance(error, QueryReadError):
        return 'query_read'
    if isinstance(error, EmptyChoicesError):
        return 'empty_choices'
    if isinstance(error, MalformedResponseError):
        return 'malformed_response'
    if isinstance(error, requests.exceptions.Timeout):
        return 'timeout'
    if isinstance(error, requests.exceptions.ConnectionError):
        return 'connection'
    if isinstance(error, requests.exceptions.HTTPError):
        status = error.response.status_code if error.response is not None else 0
        if status == 429:
            return '429_rate_limit'
        if status >= 500:
            return '5xx'
        return '4xx'
    return 'unknown'


def is_retryable(error_type: Optional[str]) -> bool:
    return error_type in RETRYABLE


def extract_retry_after(error: BaseException) -> Optional[int]:
    if isinstance(error, requests.exceptions.HTTPError) and error.response is not None:
        retry_after = error.response.headers.get('Retry-After')
        if retry_after:
            try:
                return int(retry_after)
            except ValueError:
                return None
    return None


class RetryPolicy:
    """
    Retries transient provider failures with jittered exponential backoff.

    Applied by the executor around each chat call. Cancellation and
    non-transient errors (4xx, unreadable input, unknown exceptions) are
    raised on the first occurrence.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 60.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay

    def execute_with_retry(
        self,
        fn: Callable[[], T],
        model: str = 'unknown',
        cancel: Optional[threading.Event] = None,
    ) -> T:
        for attempt in range(self.max_attempts):
            try:
                result = fn()
                if attempt > 0:
                    self.logger.debug(f"Request succeeded after {attempt+1} attempts: model={model}")
                return result

            except Exception as e:
                error_type = classify_error(e)
                final = attempt >= self.max_attempts - 1
                if final or not is_retryable(error_type):
                    raise

                delay = self.backoff(attempt, extract_retry_after(e))
                self.logger.debug(
                    f"{error_type} error, retrying in {delay:.1f}s: model={model}, "
                    f"attempt={attempt+1}/{self.max_attempts}, error={e}"
                )

                if cancel is not None:
                    if cancel.wait(delay):
                        raise TaskCancelledError(f"cancelled while backing off after: {e}") from e
                else:
                    time.sleep(delay)

        # range() above always returns or raises
        raise AssertionError("unreachable")

    def backoff(self, attempt: int, retry_after: Optional[int] = None) -> float:
        if retry_after is not None:
            return float(min(retry_after, self.max_delay))
        delay = self.base_delay * (2 ** attempt)
        jitter = random.uniform(0, self.base_delay / 2) if self.base_delay > 0 else 0.0
        return min(delay + jitter, self.max_delay)
