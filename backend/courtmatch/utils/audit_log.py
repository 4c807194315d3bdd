from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal, Optional

from .request_id import get_request_id

if TYPE_CHECKING:
    from ..models import Match

AuditAction = Literal["match.created", "match.joined"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(_handler)
_audit_logger.propagate = False


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _match_fields(match: "Match") -> dict[str, Any]:
    return {
        "match_id": match.id,
        "court_id": _plain(match.court_id),
        "date": match.date,
        "start": match.start,
        "end": match.end,
        "category": _plain(match.category),
        "player_count": len(match.players),
    }


def emit_audit_log(
    *,
    action: AuditAction,
    match: "Match",
    uid: str,
    status_from: Optional[str],
    status_to: Optional[str],
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Write one JSON line per committed state change.

    Keys whose value is None are left out. Raises RuntimeError if the
    record cannot be written, so callers can surface the failure.
    """
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "request_id": get_request_id(),
        "uid": uid,
        **_match_fields(match),
        "status_from": _plain(status_from),
        "status_to": _plain(status_to),
        "message": message,
    }
    if extra:
        record.update(extra)

    try:
        _audit_logger.info(json.dumps({k: v for k, v in record.items() if v is not None}, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
