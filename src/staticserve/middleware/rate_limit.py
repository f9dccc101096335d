"""
=============================================================================
RATE LIMITING AND BLOCKLIST
=============================================================================

Counts requests per client IP and temporarily blocks clients that send
too many.

=============================================================================
HOW IT WORKS
=============================================================================

Each IP has a request counter and, possibly, a block expiry time:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      PER-IP STATE MACHINE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    request ──► blocked? ──yes──► 403 (count untouched)              │
    │                   │                                                  │
    │                   no                                                 │
    │                   ▼                                                  │
    │              count += 1                                              │
    │                   │                                                  │
    │              count > limit? ──yes──► block for 5 minutes, 403       │
    │                   │                                                  │
    │                   no                                                 │
    │                   ▼                                                  │
    │               ALLOWED                                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Blocks expire lazily: there is no timer thread. The next is_blocked()
call after the expiry time sees a stale entry, drops it, and lets the
client through.

=============================================================================
THE COUNTER NEVER RESETS
=============================================================================

This is a lifetime counter, not a window. There is no refill and no
reset when a block expires:

    t=0       requests 1..100    ALLOWED
    t=0       request 101        RATE_LIMITED (count=101, blocked)
    t=0..5m   requests           403 without counting
    t=5m      request            count=102 > 100 → RATE_LIMITED again

A client that has been blocked once gets blocked again by its first
request after the block expires. Only reset() (or a restart) clears it.

=============================================================================
THREAD SAFETY
=============================================================================

Every worker thread shares one RateLimiter. Without a lock, two requests
from the same IP could both read count=100, both write 101, and both
pass. A single lock covers the whole read-increment-compare sequence and
every change to the blocklist.

=============================================================================
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, forbidden


logger = logging.getLogger(__name__)


DEFAULT_RATE_LIMIT = 100
DEFAULT_BLOCK_SECONDS = 5 * 60


class RateLimitDecision(Enum):
    """Outcome of RateLimiter.check_and_record()."""

    ALLOWED = "allowed"
    RATE_LIMITED = "rate_limited"


@dataclass
class ClientState:
    """
    Rate limiting state for one client IP.

    Attributes:
        ip: Client IP address
        request_count: Requests counted so far (never decremented)
        blocked_until: Clock value at which the block ends, or None
    """

    ip: str
    request_count: int = 0
    blocked_until: Optional[float] = None


class RateLimiter:
    """
    Per-IP request counter with a temporary blocklist.

    =========================================================================
    USAGE
    =========================================================================

        limiter = RateLimiter(limit=100, block_seconds=300)

        if limiter.is_blocked(ip):
            return forbidden()
        if limiter.check_and_record(ip) is RateLimitDecision.RATE_LIMITED:
            return forbidden()

    =========================================================================
    """

    def __init__(
        self,
        limit: int = DEFAULT_RATE_LIMIT,
        block_seconds: float = DEFAULT_BLOCK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the rate limiter.

        Args:
            limit: Requests allowed per IP. The request that takes the
                   count above this value is rejected and blocks the IP.
            block_seconds: How long a block lasts.
            clock: Time source returning seconds (time.monotonic).
        """
        self.limit = limit
        self.block_seconds = block_seconds
        self._clock = clock

        self._clients: Dict[str, ClientState] = {}
        self._lock = threading.Lock()

    def _state(self, ip: str) -> ClientState:
        # Caller holds the lock
        state = self._clients.get(ip)
        if state is None:
            state = self._clients[ip] = ClientState(ip=ip)
        return state

    def is_blocked(self, ip: str) -> bool:
        """
        Check whether an IP is currently blocked.

        An expired block is removed here. The request count is left alone.
        """
        with self._lock:
            state = self._clients.get(ip)
            if state is None or state.blocked_until is None:
                return False

            if self._clock() >= state.blocked_until:
                state.blocked_until = None
                logger.info(f"Block expired for {ip}")
                return False

            return True

    def check_and_record(self, ip: str) -> RateLimitDecision:
        """
        Count a request from ip and decide whether it may proceed.

        Exceeding the limit blocks the IP for block_seconds.

        Returns:
            RateLimitDecision.ALLOWED or RateLimitDecision.RATE_LIMITED
        """
        with self._lock:
            state = self._state(ip)
            state.request_count += 1

            if state.request_count <= self.limit:
                return RateLimitDecision.ALLOWED

            state.blocked_until = self._clock() + self.block_seconds
            count = state.request_count

        logger.warning(
            f"Rate limit exceeded by {ip} ({count} requests), "
            f"blocked for {self.block_seconds:g}s"
        )
        return RateLimitDecision.RATE_LIMITED

    def request_count(self, ip: str) -> int:
        """Get the number of requests counted for an IP."""
        with self._lock:
            state = self._clients.get(ip)
            return state.request_count if state else 0

    @property
    def blocked_ips(self) -> set:
        """IPs whose block has not expired yet."""
        now = self._clock()
        with self._lock:
            return {
                ip for ip, state in self._clients.items()
                if state.blocked_until is not None and now < state.blocked_until
            }

    def reset(self, ip: Optional[str] = None):
        """
        Forget counts and blocks.

        Args:
            ip: Specific IP to reset, or None to reset all.
        """
        with self._lock:
            if ip is None:
                self._clients.clear()
            else:
                self._clients.pop(ip, None)


class RateLimitMiddleware(Middleware):
    """
    Counts each request against its client IP and answers 403 once the
    client is over the limit.

    The blocklist check for already-blocked clients happens earlier, in
    the server, before the request line is even read. This middleware
    only does the counting part.
    """

    def __init__(self, limiter: RateLimiter):
        self.limiter = limiter

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        decision = self.limiter.check_and_record(request.client_ip)

        if decision is RateLimitDecision.RATE_LIMITED:
            return forbidden()

        return next(request)
