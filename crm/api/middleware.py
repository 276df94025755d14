"""Middleware for request context and idempotent retries."""

import logging
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from crm.core.idempotency import IDEMPOTENCY_HEADER, build_cache_key
from crm.core.request_context import clear_request_id, set_request_id
from crm.infrastructure.redis import RedisClient, redis_client
from crm.settings import settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ID that log records pick up."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Replay the stored response for a repeated Idempotency-Key.

    Only mutating requests that carry the header explicitly take part, and
    only 2xx responses are stored. Without Redis every request passes
    straight through.
    """

    def __init__(self, app, client: RedisClient | None = None) -> None:
        super().__init__(app)
        self.client = client or redis_client

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with idempotency check.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response (cached if idempotent, or new)
        """
        idempotency_key = request.headers.get(IDEMPOTENCY_HEADER)
        if (
            request.method not in _MUTATING_METHODS
            or not idempotency_key
            or not self.client.enabled
        ):
            return await call_next(request)

        cache_key = build_cache_key(
            idempotency_key,
            request.method,
            request.url.path,
            request.headers.get("Authorization"),
        )

        cached_response = await self.client.get_json(cache_key)
        if cached_response:
            logger.info("Replaying idempotent response", extra={"path": request.url.path})
            return Response(
                content=cached_response["body"],
                status_code=cached_response["status_code"],
                media_type=cached_response.get("content_type"),
            )

        response = await call_next(request)
        if not 200 <= response.status_code < 300:
            return response

        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk

        await self.client.set_json(
            cache_key,
            {
                "body": response_body.decode(),
                "status_code": response.status_code,
                "content_type": response.headers.get("content-type"),
            },
            ttl=settings.idempotency_ttl_seconds,
        )

        headers = dict(response.headers)
        headers.pop("content-length", None)
        return Response(
            content=response_body,
            status_code=response.status_code,
            headers=headers,
        )
