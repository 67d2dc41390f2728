import logging
from collections.abc import Awaitable, Callable
from http import HTTPStatus

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _error_code(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase.lower().replace(" ", "_")
    except ValueError:
        return "http_error"


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Last-resort handler for exceptions that escape the routers.

    Route-level ``HTTPException``s are rendered by FastAPI itself; anything
    reaching this point is wrapped in the error envelope. Internal details
    are logged, never returned.
    """
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": _error_code(exc.status_code),
                    "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
                },
                "request_id": request_id,
            },
        )
    except Exception:
        request_id = getattr(request.state, "request_id", None)
        logger.exception(
            "Unhandled exception on %s %s request_id=%s",
            request.method,
            request.url.path,
            request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {"code": "internal_error", "message": "An unexpected error occurred"},
                "request_id": request_id,
            },
        )
