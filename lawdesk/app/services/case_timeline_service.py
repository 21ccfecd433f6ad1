from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy import select, text
from sqlalchemy.orm import Session, selectinload

from lawdesk.app.api import config
from lawdesk.app.domain.contracts import CaseScope
from lawdesk.app.models import LawDocument, LawEvent, LawInvoice, LawTask
from lawdesk.app.services.case_service import require_case, row_to_dict, serialize_user_summary

logger = logging.getLogger(__name__)

TIMELINE_SOURCE_LIMIT = 20
TIMELINE_TYPES = ("document", "task", "task_completed", "event", "invoice", "invoice_paid")

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class TimelineEntry:
    type: str
    date: datetime
    id: str
    title: str
    data: Dict[str, Any]

    def as_dict(self) -> dict:
        return {"type": self.type, "date": self.date, "id": self.id, "title": self.title, "data": self.data}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# -------------------------
# Projection
# -------------------------

def project_document(doc: Dict[str, Any]) -> List[TimelineEntry]:
    return [
        TimelineEntry(
            type="document",
            date=_as_utc(doc["created_at"]),
            id=doc["id"],
            title=f"Document uploaded: {doc['file_name']}",
            data=doc,
        )
    ]


def project_task(task: Dict[str, Any]) -> List[TimelineEntry]:
    entries = [
        TimelineEntry(
            type="task",
            date=_as_utc(task["created_at"]),
            id=task["id"],
            title=f"Task created: {task['title']}",
            data=task,
        )
    ]
    if task.get("completed_date") is not None:
        entries.append(
            TimelineEntry(
                type="task_completed",
                date=_as_utc(task["completed_date"]),
                id=task["id"],
                title=f"Task completed: {task['title']}",
                data=task,
            )
        )
    return entries


def project_event(event: Dict[str, Any]) -> List[TimelineEntry]:
    return [
        TimelineEntry(
            type="event",
            date=_as_utc(event["event_date"]),
            id=event["id"],
            title=f"{event['event_type']}: {event['title']}",
            data=event,
        )
    ]


def project_invoice(invoice: Dict[str, Any]) -> List[TimelineEntry]:
    entries = [
        TimelineEntry(
            type="invoice",
            date=_as_utc(invoice["created_at"]),
            id=invoice["id"],
            title=f"Invoice {invoice['invoice_number']}: {invoice['status']}",
            data=invoice,
        )
    ]
    if invoice.get("paid_date") is not None:
        entries.append(
            TimelineEntry(
                type="invoice_paid",
                date=_as_utc(invoice["paid_date"]),
                id=invoice["id"],
                title=f"Invoice {invoice['invoice_number']} paid",
                data=invoice,
            )
        )
    return entries


def merge_timeline(
    documents: Sequence[Dict[str, Any]],
    tasks: Sequence[Dict[str, Any]],
    events: Sequence[Dict[str, Any]],
    invoices: Sequence[Dict[str, Any]],
) -> List[TimelineEntry]:
    """
    Newest first. The sort is stable, so equal dates keep emission order:
    documents, tasks (each followed by its completion), events, invoices (each followed by its payment).
    """
    entries: List[TimelineEntry] = []
    for doc in documents:
        entries.extend(project_document(doc))
    for task in tasks:
        entries.extend(project_task(task))
    for event in events:
        entries.extend(project_event(event))
    for invoice in invoices:
        entries.extend(project_invoice(invoice))
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


# -------------------------
# Fetch
# -------------------------

# SQLite checks the deadline every this many VM instructions.
_SQLITE_PROGRESS_STEPS = 1000


def _remaining_ms(deadline: float) -> int:
    return max(1, int((deadline - time.monotonic()) * 1000))


@contextmanager
def _timeline_session(session_factory: SessionFactory, deadline: float) -> Iterator[Session]:
    """
    Session whose statements are aborted by the store once `deadline` (time.monotonic())
    passes, so a fetch abandoned by the request timeout releases its connection.
    """
    db = session_factory()
    dbapi_conn = None
    try:
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {_remaining_ms(deadline)}"))
        elif dialect == "sqlite":
            dbapi_conn = db.connection().connection.dbapi_connection
            dbapi_conn.set_progress_handler(lambda: int(time.monotonic() > deadline), _SQLITE_PROGRESS_STEPS)
        yield db
    finally:
        if dbapi_conn is not None:
            dbapi_conn.set_progress_handler(None, 0)
        db.close()


def _fetch_documents(session_factory: SessionFactory, case_id: str, deadline: float) -> List[dict]:
    with _timeline_session(session_factory, deadline) as db:
        rows = (
            db.execute(
                select(LawDocument)
                .options(selectinload(LawDocument.uploaded_by))
                .where(LawDocument.case_id == case_id)
                .order_by(LawDocument.created_at.desc(), LawDocument.id.desc())
                .limit(TIMELINE_SOURCE_LIMIT)
            )
            .scalars()
            .all()
        )
        return [{**row_to_dict(row), "uploaded_by": serialize_user_summary(row.uploaded_by)} for row in rows]


def _fetch_tasks(session_factory: SessionFactory, case_id: str, deadline: float) -> List[dict]:
    with _timeline_session(session_factory, deadline) as db:
        rows = (
            db.execute(
                select(LawTask)
                .options(selectinload(LawTask.assigned_to))
                .where(LawTask.case_id == case_id)
                .order_by(LawTask.created_at.desc(), LawTask.id.desc())
                .limit(TIMELINE_SOURCE_LIMIT)
            )
            .scalars()
            .all()
        )
        return [{**row_to_dict(row), "assigned_to": serialize_user_summary(row.assigned_to)} for row in rows]


def _fetch_events(session_factory: SessionFactory, case_id: str, deadline: float) -> List[dict]:
    with _timeline_session(session_factory, deadline) as db:
        rows = (
            db.execute(
                select(LawEvent)
                .where(LawEvent.case_id == case_id)
                .order_by(LawEvent.event_date.desc(), LawEvent.id.desc())
                .limit(TIMELINE_SOURCE_LIMIT)
            )
            .scalars()
            .all()
        )
        return [row_to_dict(row) for row in rows]


def _fetch_invoices(session_factory: SessionFactory, case_id: str, deadline: float) -> List[dict]:
    with _timeline_session(session_factory, deadline) as db:
        rows = (
            db.execute(
                select(LawInvoice)
                .where(LawInvoice.case_id == case_id)
                .order_by(LawInvoice.created_at.desc(), LawInvoice.id.desc())
                .limit(TIMELINE_SOURCE_LIMIT)
            )
            .scalars()
            .all()
        )
        return [row_to_dict(row) for row in rows]


def _load_case_number(session_factory: SessionFactory, scope: CaseScope, case_id: str, deadline: float) -> str:
    with _timeline_session(session_factory, deadline) as db:
        return require_case(db, scope, case_id).case_number


async def fetch_case_activity(
    session_factory: SessionFactory, case_id: str, deadline: float
) -> Tuple[List[dict], List[dict], List[dict], List[dict]]:
    """Run the four stream queries side by side, one session each. Any failure fails the lot."""
    documents, tasks, events, invoices = await asyncio.gather(
        asyncio.to_thread(_fetch_documents, session_factory, case_id, deadline),
        asyncio.to_thread(_fetch_tasks, session_factory, case_id, deadline),
        asyncio.to_thread(_fetch_events, session_factory, case_id, deadline),
        asyncio.to_thread(_fetch_invoices, session_factory, case_id, deadline),
    )
    return documents, tasks, events, invoices


async def _collect(session_factory: SessionFactory, scope: CaseScope, case_id: str, deadline: float) -> dict:
    case_number = await asyncio.to_thread(_load_case_number, session_factory, scope, case_id, deadline)
    documents, tasks, events, invoices = await fetch_case_activity(session_factory, case_id, deadline)
    timeline = merge_timeline(documents, tasks, events, invoices)
    return {
        "caseId": case_id,
        "caseNumber": case_number,
        "timeline": [entry.as_dict() for entry in timeline],
    }


async def build_case_timeline(session_factory: SessionFactory, scope: CaseScope, case_id: str) -> dict:
    """
    Case lookup and the four stream fetches share one budget. Past it the request
    fails with 503 and the store aborts whatever statements are still running.
    """
    timeout = config.timeline_fetch_timeout_seconds()
    deadline = time.monotonic() + timeout
    try:
        return await asyncio.wait_for(_collect(session_factory, scope, case_id, deadline), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("[timeline] fetch timed out case=%s timeout=%ss", case_id, timeout)
        raise HTTPException(status_code=503, detail="Timeline unavailable") from exc
