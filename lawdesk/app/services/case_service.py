from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from lawdesk.app.domain.contracts import CaseCreateIn, CaseScope, CaseUpdateIn
from lawdesk.app.models import (
    LawCase,
    LawClient,
    LawDocument,
    LawEvent,
    LawInvoice,
    LawTask,
    User,
)
from lawdesk.app.services import case_number_service, case_query_service

logger = logging.getLogger(__name__)

CASE_NOT_FOUND = "Case not found"
DETAIL_RELATION_LIMIT = 10
UPCOMING_EVENT_LIMIT = 5
UPDATABLE_FIELDS = (
    "title",
    "description",
    "client_id",
    "case_type",
    "status",
    "priority",
    "assigned_to_id",
    "filing_date",
    "next_hearing_date",
    "closing_date",
)
REQUIRED_FIELDS = {"title", "client_id", "case_type", "status", "priority"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def row_to_dict(row: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        data[column.key] = _as_utc(value) if isinstance(value, datetime) else value
    return data


def serialize_user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "full_name": user.full_name, "email": user.email}


def _serialize_client_summary(client: Optional[LawClient]) -> Optional[dict]:
    if client is None:
        return None
    return {
        "id": client.id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "client_type": client.client_type,
    }


def serialize_case(row: LawCase) -> dict:
    payload = row_to_dict(row)
    payload["client"] = row_to_dict(row.client) if row.client else None
    payload["assigned_to"] = serialize_user_summary(row.assigned_to)
    return payload


def require_case(db: Session, scope: CaseScope, case_id: str) -> LawCase:
    # Missing and other-tenant cases are indistinguishable to the caller.
    row = (
        db.execute(
            select(LawCase).where(
                LawCase.id == case_id,
                LawCase.owner_uid == scope.owner_uid,
                LawCase.organization_id == scope.organization_id,
            )
        )
        .scalars()
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail=CASE_NOT_FOUND)
    return row


def _require_client(db: Session, scope: CaseScope, client_id: str) -> LawClient:
    client = (
        db.execute(
            select(LawClient).where(
                LawClient.id == client_id,
                LawClient.owner_uid == scope.owner_uid,
                LawClient.organization_id == scope.organization_id,
            )
        )
        .scalars()
        .first()
    )
    if not client:
        raise HTTPException(status_code=400, detail="Client not found")
    return client


def _require_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=400, detail="Assigned user not found")
    return user


def create_case(db: Session, scope: CaseScope, user_id: Optional[str], payload: CaseCreateIn) -> dict:
    _require_client(db, scope, payload.client_id)
    if payload.assigned_to_id:
        _require_user(db, payload.assigned_to_id)

    def _build(case_number: str) -> LawCase:
        return LawCase(
            owner_uid=scope.owner_uid,
            organization_id=scope.organization_id,
            case_number=case_number,
            title=payload.title,
            description=payload.description,
            client_id=payload.client_id,
            case_type=payload.case_type,
            status=payload.status or "active",
            priority=payload.priority or "medium",
            assigned_to_id=payload.assigned_to_id,
            filing_date=payload.filing_date,
            next_hearing_date=payload.next_hearing_date,
        )

    row = case_number_service.create_with_case_number(db, scope.owner_uid, _build, year=_now().year)
    logger.info(
        "[cases] created case=%s number=%s owner=%s org=%s by=%s",
        row.id,
        row.case_number,
        scope.owner_uid,
        scope.organization_id,
        user_id,
    )
    return serialize_case(row)


def list_cases(db: Session, scope: CaseScope, raw_filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    descriptor = case_query_service.compile_case_query(scope, raw_filters)
    page_stmt, count_stmt = case_query_service.build_case_statements(descriptor)
    rows = (
        db.execute(page_stmt.options(selectinload(LawCase.client), selectinload(LawCase.assigned_to)))
        .scalars()
        .all()
    )
    total = int(db.execute(count_stmt).scalar_one() or 0)
    counts = _child_counts(db, [row.id for row in rows])

    data: List[dict] = []
    for row in rows:
        item = row_to_dict(row)
        item["client"] = _serialize_client_summary(row.client)
        item["assigned_to"] = serialize_user_summary(row.assigned_to)
        item["_count"] = counts.get(row.id, _empty_counts())
        data.append(item)
    return {"data": data, "pagination": case_query_service.pagination_summary(descriptor, total)}


def _empty_counts() -> Dict[str, int]:
    return {"documents": 0, "tasks": 0, "events": 0, "invoices": 0}


def _child_counts(db: Session, case_ids: List[str]) -> Dict[str, Dict[str, int]]:
    counts: Dict[str, Dict[str, int]] = {case_id: _empty_counts() for case_id in case_ids}
    if not case_ids:
        return counts
    for key, model in (
        ("documents", LawDocument),
        ("tasks", LawTask),
        ("events", LawEvent),
        ("invoices", LawInvoice),
    ):
        rows = db.execute(
            select(model.case_id, func.count())
            .where(model.case_id.in_(case_ids))
            .group_by(model.case_id)
        ).all()
        for case_id, count in rows:
            counts[case_id][key] = int(count or 0)
    return counts


def get_case(db: Session, scope: CaseScope, case_id: str) -> dict:
    row = require_case(db, scope, case_id)
    documents = (
        db.execute(
            select(LawDocument)
            .options(selectinload(LawDocument.uploaded_by))
            .where(LawDocument.case_id == row.id)
            .order_by(LawDocument.created_at.desc(), LawDocument.id.desc())
            .limit(DETAIL_RELATION_LIMIT)
        )
        .scalars()
        .all()
    )
    tasks = (
        db.execute(
            select(LawTask)
            .options(selectinload(LawTask.assigned_to))
            .where(LawTask.case_id == row.id)
            .order_by(LawTask.created_at.desc(), LawTask.id.desc())
            .limit(DETAIL_RELATION_LIMIT)
        )
        .scalars()
        .all()
    )
    events = (
        db.execute(
            select(LawEvent)
            .where(LawEvent.case_id == row.id, LawEvent.event_date >= _now())
            .order_by(LawEvent.event_date.asc(), LawEvent.id.asc())
            .limit(UPCOMING_EVENT_LIMIT)
        )
        .scalars()
        .all()
    )
    invoices = (
        db.execute(
            select(LawInvoice)
            .where(LawInvoice.case_id == row.id)
            .order_by(LawInvoice.created_at.desc(), LawInvoice.id.desc())
            .limit(DETAIL_RELATION_LIMIT)
        )
        .scalars()
        .all()
    )

    payload = serialize_case(row)
    payload["documents"] = [
        {**row_to_dict(doc), "uploaded_by": serialize_user_summary(doc.uploaded_by)} for doc in documents
    ]
    payload["tasks"] = [{**row_to_dict(task), "assigned_to": serialize_user_summary(task.assigned_to)} for task in tasks]
    payload["events"] = [row_to_dict(event) for event in events]
    payload["invoices"] = [row_to_dict(invoice) for invoice in invoices]
    return payload


def update_case(db: Session, scope: CaseScope, case_id: str, payload: CaseUpdateIn) -> dict:
    row = require_case(db, scope, case_id)
    data = payload.model_dump(exclude_unset=True)

    # Reference checks only run when the reference actually changes.
    client_id = data.get("client_id")
    if client_id and client_id != row.client_id:
        _require_client(db, scope, client_id)
    assigned_to_id = data.get("assigned_to_id")
    if assigned_to_id and assigned_to_id != row.assigned_to_id:
        _require_user(db, assigned_to_id)

    for key in UPDATABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if value is None and key in REQUIRED_FIELDS:
            continue
        setattr(row, key, value)

    db.flush()
    db.refresh(row)
    return serialize_case(row)


def delete_case(db: Session, scope: CaseScope, case_id: str) -> dict:
    row = require_case(db, scope, case_id)
    case_number = row.case_number
    db.delete(row)
    db.flush()
    logger.info("[cases] deleted case=%s number=%s owner=%s", case_id, case_number, scope.owner_uid)
    return {"success": True, "id": case_id}
