from contextvars import ContextVar
from typing import Any

REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
ROUTE_CTX: ContextVar[str | None] = ContextVar("route", default=None)
CLIENT_IP_CTX: ContextVar[str | None] = ContextVar("client_ip", default=None)
REDIS_CTX: ContextVar[Any] = ContextVar("redis", default=None)
ACTOR_ID_CTX: ContextVar[int | None] = ContextVar("actor_id", default=None)
ACTOR_ROLE_CTX: ContextVar[str | None] = ContextVar("actor_role", default=None)


def get_request_id() -> str | None:
    return REQUEST_ID_CTX.get()


def get_route() -> str | None:
    return ROUTE_CTX.get()


def get_client_ip() -> str | None:
    return CLIENT_IP_CTX.get()


def get_redis() -> Any:
    return REDIS_CTX.get()


def get_actor_id() -> int | None:
    return ACTOR_ID_CTX.get()


def get_actor_role() -> str | None:
    return ACTOR_ROLE_CTX.get()
