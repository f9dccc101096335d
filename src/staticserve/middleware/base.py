"""
=============================================================================
MIDDLEWARE BASE CLASSES
=============================================================================

Middleware wraps the request handler to add behaviour before and after
it runs, without the handler knowing about it.

=============================================================================
THE PIPELINE
=============================================================================

The server builds this onion once at startup:

    ┌─────────────────────────────────────────────────────────────┐
    │  LoggingMiddleware        logs every 200                    │
    │  ┌───────────────────────────────────────────────────────┐  │
    │  │  RateLimitMiddleware   counts, blocks, answers 403    │  │
    │  │  ┌─────────────────────────────────────────────────┐  │  │
    │  │  │  CompressionMiddleware   gzips html/css/js      │  │  │
    │  │  │  ┌───────────────────────────────────────────┐  │  │  │
    │  │  │  │        StaticFileHandler                  │  │  │  │
    │  │  │  └───────────────────────────────────────────┘  │  │  │
    │  │  └─────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────┘

Request flows inward (first added first), the response flows back out.
A middleware can short-circuit by returning a response without calling
next(); RateLimitMiddleware does exactly that for a client over its limit.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# NextHandler is the signature for the next middleware or final handler.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements __call__:

        def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    and either calls next(request) to continue the chain, or returns a
    response of its own to stop it.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains multiple middleware together with a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())          # outermost
        pipeline.add(RateLimitMiddleware(limiter))
        handler = pipeline.wrap(static_handler)

        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Add middleware to the pipeline.

        Middleware is executed in the order added (first added = outermost).
        Returns self for chaining.
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware.

        We build from the inside out, so the first middleware added ends
        up as the outermost layer:

            handler
            → Compression(handler)
            → RateLimit(Compression(handler))
            → Logging(RateLimit(Compression(handler)))

        Args:
            handler: The final request handler

        Returns:
            A callable running the whole chain
        """
        wrapped = handler
        for middleware in reversed(self._middleware):
            wrapped = self._create_wrapped_handler(middleware, wrapped)
        return wrapped

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler,
    ) -> NextHandler:
        # One closure per layer, bound to this layer's pair
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
