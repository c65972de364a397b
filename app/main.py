import logging
from fastapi import FastAPI
from app.api.exceptions import register_error_handler
from app.api.v1.routes import events, ticket_types, transactions
from app.core.config import LOG_LEVEL
from app.core.middleware.http_ctx import HttpContextMiddleware
from app.core.redis import create_redis

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


async def lifespan(app: FastAPI):
    r = await create_redis()
    app.state.redis = r
    try:
        yield
    finally:
        if r is not None:
            await r.aclose()


app = FastAPI(title="Event Ticket Inventory API", lifespan=lifespan)
app.add_middleware(HttpContextMiddleware, request_id_header="X-Request-ID")
register_error_handler(app)
app.include_router(events.router)
app.include_router(ticket_types.router)
app.include_router(transactions.router)
