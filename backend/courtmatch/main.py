from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .database import build_engine, build_sessionmaker
from .infrastructure.transaction import SqlAlchemyTransactionRunner
from .routers import availability, matches
from .utils.request_id import REQUEST_ID_HEADER, bind_request_id, reset_request_id


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    engine = build_engine(settings)
    app.state.tx_runner = SqlAlchemyTransactionRunner(
        build_sessionmaker(engine),
        max_attempts=settings.tx_max_attempts,
        backoff_seconds=settings.tx_backoff_seconds,
        timeout_seconds=settings.tx_timeout_seconds,
    )
    try:
        yield
    finally:
        await engine.dispose()


async def request_id_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    request_id, token = bind_request_id(request.headers.get(REQUEST_ID_HEADER))
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app = FastAPI(title="Court Matchmaking API", lifespan=lifespan)
app.middleware("http")(request_id_middleware)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(availability.router)
app.include_router(matches.router)
