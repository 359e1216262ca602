from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import Principal
from ..time_utils import parse_iso_datetime, to_utc_z
from .pharmacy_access_service import scope_query_to_pharmacies


MAX_LIMIT = 1000


class AuditQueryError(Exception):
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise AuditQueryError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise AuditQueryError("start must not be after end")
    return start_dt, end_dt


def _scoped(principal: Principal):
    """Events the principal may read: every event for super_admin, otherwise its pharmacies'."""
    return scope_query_to_pharmacies(db.session.query(SecurityEvent), SecurityEvent.pharmacy_id, principal)


def _filtered(
    principal: Principal,
    *,
    user_id: int | None,
    event_type: str | None,
    success: bool | None,
    start_dt: datetime | None,
    end_dt: datetime | None,
):
    query = _scoped(principal)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if success is not None:
        query = query.filter(SecurityEvent.success.is_(success))
    if start_dt:
        query = query.filter(SecurityEvent.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(SecurityEvent.occurred_at <= end_dt)
    return query


def list_security_events(
    principal: Principal,
    *,
    user_id: int | None = None,
    event_type: str | None = None,
    success: bool | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> dict:
    """Newest-first page of the security events visible to the principal."""
    if limit < 1 or limit > MAX_LIMIT:
        raise AuditQueryError(f"limit must be between 1 and {MAX_LIMIT}")
    if offset < 0:
        raise AuditQueryError("offset must not be negative")
    start_dt, end_dt = _parse_range(start, end)

    query = _filtered(
        principal,
        user_id=user_id,
        event_type=event_type,
        success=success,
        start_dt=start_dt,
        end_dt=end_dt,
    )
    total = query.count()
    events = query.order_by(
        SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()
    ).offset(offset).limit(limit).all()

    return {
        "user_id": user_id,
        "event_type": event_type,
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "limit": limit,
        "offset": offset,
        "total": total,
        "events": [event.to_dict() for event in events],
    }


def get_security_event(principal: Principal, event_id: int) -> SecurityEvent | None:
    """Single event, or None when it does not exist or lies outside the principal's pharmacies."""
    return _scoped(principal).filter(SecurityEvent.id == event_id).first()


def security_event_stats(principal: Principal, *, start: str | None = None, end: str | None = None) -> dict:
    start_dt, end_dt = _parse_range(start, end)
    query = _filtered(
        principal,
        user_id=None,
        event_type=None,
        success=None,
        start_dt=start_dt,
        end_dt=end_dt,
    )

    rows = query.with_entities(
        SecurityEvent.event_type,
        SecurityEvent.success,
        func.count(SecurityEvent.id),
    ).group_by(SecurityEvent.event_type, SecurityEvent.success).all()

    by_event_type: dict[str, int] = {}
    failures = 0
    for event_type, success, count in rows:
        by_event_type[event_type] = by_event_type.get(event_type, 0) + count
        if not success:
            failures += count

    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "total": sum(by_event_type.values()),
        "failures": failures,
        "by_event_type": dict(sorted(by_event_type.items())),
    }

