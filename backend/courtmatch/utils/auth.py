from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import jwt
from jwt import InvalidTokenError

from ..domain.availability import parse_category
from ..domain.errors import ValidationError
from ..domain.services import PlayerIdentity


def create_access_token(
    *,
    uid: str,
    name: str,
    category: str,
    secret: str,
    photo_url: Optional[str] = None,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": uid, "name": name, "category": category, "iat": now, "exp": exp}
    if photo_url is not None:
        payload["photo_url"] = photo_url
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> PlayerIdentity:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if not sub:
        raise ValueError("token missing sub")
    name = payload.get("name")
    if not name:
        raise ValueError("token missing name")
    try:
        category = parse_category(payload.get("category"))
    except ValidationError as exc:
        raise ValueError("token category is not recognised") from exc
    if category is None:
        raise ValueError("token missing category")
    return PlayerIdentity(
        uid=str(sub),
        name=str(name),
        category=category,
        photo_url=payload.get("photo_url"),
    )
