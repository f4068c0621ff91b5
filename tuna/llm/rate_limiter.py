import time
import threading
from typing import Dict, Optional

from tuna.config.rate_limit import RateLimit
from tuna.config.registry import ProviderRegistry
from tuna.errors import RateLimitCancelledError


class RateLimiter:
    """
    Token bucket for one provider.

    Refills one token every `rate_limit.interval` seconds up to `capacity`
    (1 by default, so requests are spread evenly instead of bursting).
    The bucket starts full.
    """

    def __init__(self, rate_limit: RateLimit, capacity: int = 1):
        self.rate_limit = rate_limit
        self.capacity = float(capacity)
        self.interval = rate_limit.interval
        self.lock = threading.Lock()

        self.tokens = self.capacity
        self.last_update = time.monotonic()

        self.total_admitted = 0
        self.total_waited = 0.0

    def acquire(self, cancel: Optional[threading.Event] = None) -> float:
        """
        Block until a token is consumed.

        Sleeps outside the lock and re-checks after every wake-up, so
        concurrent callers never over-admit.

        Returns:
            Seconds spent waiting

        Raises:
            RateLimitCancelledError: `cancel` was set before or during the wait
        """
        waited = 0.0
        while True:
            if cancel is not None and cancel.is_set():
                raise RateLimitCancelledError(str(self.rate_limit))

            with self.lock:
                self._refill_tokens()
                if self.tokens >= 1.0:
                    self.tokens -= 1.0
                    self.total_admitted += 1
                    self.total_waited += waited
                    return waited
                wait_time = max((1.0 - self.tokens) * self.interval, 0.0)

            start = time.monotonic()
            if cancel is not None:
                if cancel.wait(wait_time):
                    raise RateLimitCancelledError(str(self.rate_limit))
            else:
                time.sleep(wait_time)
            waited += time.monotonic() - start

    def _refill_tokens(self):
        now = time.monotonic()
        elapsed = now - self.last_update
        self.tokens = min(self.tokens + elapsed / self.interval, self.capacity)
        self.last_update = now

    def get_status(self) -> Dict:
        with self.lock:
            return {
                'rate_limit': str(self.rate_limit),
                'admitted': self.total_admitted,
                'waited_sec': self.total_waited,
            }


class RateGate:
    """
    One independent RateLimiter per rate-limited provider.

    Providers without a configured limit have no limiter and are admitted
    immediately. The limiter dict is built once and only read afterwards,
    so the only shared mutable state is inside each limiter.
    """

    def __init__(self, limiters: Optional[Dict[str, RateLimiter]] = None):
        self._limiters: Dict[str, RateLimiter] = dict(limiters or {})

    @classmethod
    def from_registry(cls, registry: ProviderRegistry) -> "RateGate":
        return cls({
            provider.name: RateLimiter(provider.rate_limit)
            for provider in registry.providers()
            if provider.rate_limit is not None
        })

    def admit(self, provider_name: str, cancel: Optional[threading.Event] = None) -> float:
        """
        Wait for the provider's next token.

        Returns:
            Seconds spent waiting (0.0 for unlimited providers)

        Raises:
            RateLimitCancelledError: `cancel` was set before or while waiting
        """
        if cancel is not None and cancel.is_set():
            raise RateLimitCancelledError(provider_name)

        limiter = self._limiters.get(provider_name)
        if limiter is None:
            return 0.0

        try:
            return limiter.acquire(cancel)
        except RateLimitCancelledError:
            raise RateLimitCancelledError(provider_name) from None

    def get_status(self) -> Dict[str, Dict]:
        """Per-provider admission counts and total wait, for the run summary."""
        return {name: limiter.get_status() for name, limiter in self._limiters.items()}
