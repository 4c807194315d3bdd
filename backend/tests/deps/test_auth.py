from datetime import timedelta

import jwt
import pytest
from courtmatch.config import get_settings
from courtmatch.deps import get_current_player
from courtmatch.models import Category
from courtmatch.utils.auth import create_access_token
from fastapi import HTTPException

SECRET = "testsecret"


@pytest.fixture(autouse=True)
def _set_auth_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_SECRET", SECRET)
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_get_current_player_accepts_valid_token() -> None:
    token = create_access_token(
        uid="firebase-uid-1", name="Lucia", category="4ta", secret=SECRET, photo_url="https://img.test/l.png"
    )
    player = await get_current_player(authorization=f"Bearer {token}")
    assert player.uid == "firebase-uid-1"
    assert player.name == "Lucia"
    assert player.category == Category.FOURTH
    assert player.photo_url == "https://img.test/l.png"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer ", "Basic dXNlcjpwYXNz"])
async def test_get_current_player_rejects_missing_or_malformed_header(header: str | None) -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_player(authorization=header)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_player_rejects_expired_token() -> None:
    token = create_access_token(
        uid="u-1", name="Ana", category="5ta", secret=SECRET, expires_delta=timedelta(seconds=-1)
    )
    with pytest.raises(HTTPException) as excinfo:
        await get_current_player(authorization=f"Bearer {token}")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_player_rejects_wrong_secret() -> None:
    token = create_access_token(uid="u-1", name="Ana", category="5ta", secret="other-secret")
    with pytest.raises(HTTPException) as excinfo:
        await get_current_player(authorization=f"Bearer {token}")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "claims",
    [
        {"name": "Ana", "category": "5ta"},
        {"sub": "u-1", "category": "5ta"},
        {"sub": "u-1", "name": "Ana"},
        {"sub": "u-1", "name": "Ana", "category": "1ra"},
    ],
)
async def test_get_current_player_requires_identity_claims(claims: dict[str, str]) -> None:
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    with pytest.raises(HTTPException) as excinfo:
        await get_current_player(authorization=f"Bearer {token}")
    assert excinfo.value.status_code == 401
