"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting behaviour wrapped around the static file handler:

    LoggingMiddleware       access log line for every 200
    RateLimitMiddleware     per-IP counting and blocking (RateLimiter)
    CompressionMiddleware   gzip for html/css/js files

See base.py for how the pipeline is assembled.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import ACCESS_LOGGER_NAME, LoggingMiddleware, RequestLog
from .compression import COMPRESSIBLE_EXTENSIONS, CompressionMiddleware, compress_response
from .rate_limit import (
    ClientState,
    RateLimitDecision,
    RateLimiter,
    RateLimitMiddleware,
)

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "CompressionMiddleware",

    # Supporting types
    "ACCESS_LOGGER_NAME",
    "COMPRESSIBLE_EXTENSIONS",
    "ClientState",
    "RateLimitDecision",
    "RateLimiter",
    "RequestLog",
    "compress_response",
]
