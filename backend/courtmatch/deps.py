from fastapi import Header, HTTPException, Request, status

from .config import get_settings
from .domain.repositories import TransactionRunner
from .domain.services import PlayerIdentity
from .utils.auth import decode_access_token


async def get_transaction_runner(request: Request) -> TransactionRunner:
    runner = getattr(request.app.state, "tx_runner", None)
    if runner is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store not configured")
    return runner


async def get_current_player(authorization: str | None = Header(default=None)) -> PlayerIdentity:
    if authorization is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Bearer token required")
    settings = get_settings()
    try:
        return decode_access_token(token.strip(), secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
