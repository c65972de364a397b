import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from app.domain.exceptions import AppError, NotFound, Conflict, Unprocessable, Unauthorized, InvalidInput, Forbidden
from app.core.ctx import REQUEST_ID_CTX

logger = logging.getLogger("app.api")

MEDIA_TYPE = "application/problem+json"
RETRY_AFTER_SECONDS = "1"

_PROBLEMS: dict[type[AppError], tuple[int, str]] = {
    NotFound: (status.HTTP_404_NOT_FOUND, "Not Found"),
    Unauthorized: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    Forbidden: (status.HTTP_403_FORBIDDEN, "Forbidden"),
    Conflict: (status.HTTP_409_CONFLICT, "Conflict"),
    InvalidInput: (status.HTTP_400_BAD_REQUEST, "Bad Request"),
    Unprocessable: (status.HTTP_422_UNPROCESSABLE_ENTITY, "Unprocessable Entity"),
    AppError: (status.HTTP_400_BAD_REQUEST, "Application Error"),
}


def _problem_for(exc: AppError) -> tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in _PROBLEMS:
            return _PROBLEMS[cls]
    return _PROBLEMS[AppError]


def _bearer_challenge(description: str | None) -> str:
    attributes = ['realm="api"', 'error="invalid_token"']
    if description:
        attributes.append(f'error_description="{description}"')
    return "Bearer " + ", ".join(attributes)


def _headers_for(exc: AppError, detail: str | None) -> dict[str, str] | None:
    if isinstance(exc, Unauthorized):
        return {"WWW-Authenticate": _bearer_challenge(detail)}
    if isinstance(exc, Conflict) and exc.ctx.get("retryable"):
        return {"Retry-After": RETRY_AFTER_SECONDS}
    return None


def _problem(
    request: Request,
    *,
    http_status: int,
    title: str,
    detail: str | None = None,
    context: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "status": http_status,
        "title": title,
        "detail": detail,
        "instance": str(request.url),
    }
    trace_id = REQUEST_ID_CTX.get()
    if trace_id:
        body["trace_id"] = trace_id
    if context:
        body["context"] = context
    return JSONResponse(status_code=http_status, content=body, media_type=MEDIA_TYPE, headers=headers)


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        http_status, title = _problem_for(exc)
        detail = str(exc) or None
        return _problem(
            request,
            http_status=http_status,
            title=title,
            detail=detail,
            context=exc.ctx or None,
            headers=_headers_for(exc, detail)
        )

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Unhandled storage error on %s %s", request.method, request.url.path, exc_info=exc)
        return _problem(
            request,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            title="Internal Server Error",
            detail="Unexpected storage error"
        )
