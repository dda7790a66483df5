"""LoggingMiddleware -- 请求级日志

每个请求生成 ULID request_id，绑定到 structlog contextvars（扫描引擎在同一请求内的日志也会带上），
并通过 X-Request-ID 响应头返回。请求结束时输出一条 request_completed（含 elapsed_ms）。
探针路径 /healthz 被频繁轮询，不输出请求日志。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()

QUIET_PATHS = frozenset({"/healthz"})


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as e:
            await log.aexception("request_failed", exc_info=e, elapsed_ms=_elapsed_ms(start))
            raise

        if path not in QUIET_PATHS:
            await log.ainfo(
                "request_completed",
                status_code=response.status_code,
                elapsed_ms=_elapsed_ms(start),
            )

        response.headers["X-Request-ID"] = request_id
        return response
