from datetime import datetime, timedelta, timezone

import pytest
from courtmatch.config import get_settings
from courtmatch.utils.time import local_now, to_utc_naive, unix_seconds


def test_to_utc_naive_converts_offsets() -> None:
    buenos_aires = timezone(timedelta(hours=-3))
    assert to_utc_naive(datetime(2030, 5, 6, 21, 0, tzinfo=buenos_aires)) == datetime(2030, 5, 7, 0, 0)


def test_to_utc_naive_rejects_naive_values() -> None:
    with pytest.raises(ValueError):
        to_utc_naive(datetime(2030, 5, 6, 21, 0))


def test_unix_seconds_treats_naive_as_utc() -> None:
    aware = datetime(2030, 5, 6, 12, 0, tzinfo=timezone.utc)
    assert unix_seconds(aware) == unix_seconds(aware.replace(tzinfo=None)) == int(aware.timestamp())


def test_local_now_uses_configured_zone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMEZONE", "Europe/Madrid")
    get_settings.cache_clear()
    try:
        now = local_now()
        assert now.tzinfo is not None
        assert str(now.tzinfo) == "Europe/Madrid"
    finally:
        monkeypatch.delenv("TIMEZONE")
        get_settings.cache_clear()
