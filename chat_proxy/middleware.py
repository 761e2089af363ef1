"""Request tracking middleware."""

import time
import uuid

from fastapi import Request
from loguru import logger

MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(value: str | None) -> str:
    """Reuse a caller-supplied request ID when it is sane, else mint one."""
    if value and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable():
        return value
    return str(uuid.uuid4())


async def add_request_id(request: Request, call_next):
    """Tag the request with an ID, log its outcome and echo the ID back.

    Args:
        request: Incoming FastAPI request.
        call_next: Next middleware or handler in chain.

    Returns:
        Response with X-Request-ID header.

    """
    request_id = resolve_request_id(request.headers.get("X-Request-ID"))
    request.state.request_id = request_id
    started = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({(time.perf_counter() - started) * 1000:.0f} ms)"
        )

        return response
