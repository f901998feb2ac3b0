import asyncio
import time

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..core.config import settings
from ..core.exceptions import ErrorCode
from ..core.log_config import logger
from ..schemas.common import error_envelope

class TimingMiddleware(BaseHTTPMiddleware):
    """Logs request duration and cuts off handlers that run past the timeout."""

    def __init__(self, app, timeout_seconds: float = settings.request_timeout_seconds):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Request to {request.url.path} timed out after {self.timeout_seconds}s.")
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content=error_envelope(ErrorCode.INTERNAL, "Request timed out"),
            )

        elapsed_time = time.time() - start_time
        logger.info(f"{request.method} {request.url.path} took {elapsed_time:.4f} seconds.")

        return response
