from typing import Any


def _normalize(value: Any) -> Any:
    if hasattr(value, "quantize"):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize(v) for v in value]
    return value if isinstance(value, (str, int, float, bool, type(None))) else str(value)


def normalize_ctx(ctx: dict[str, Any]) -> dict[str, Any]:
    return {k: _normalize(v) for k, v in ctx.items()}


class AppError(Exception):
    def __init__(self, message: str = "", *, ctx: dict | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.ctx = normalize_ctx(ctx or {})


class NotFound(AppError):
    pass
class Unauthorized(AppError):
    pass
class Forbidden(AppError):
    pass
class Conflict(AppError):
    pass
class InvalidInput(AppError):
    pass
class Unprocessable(AppError):
    pass
