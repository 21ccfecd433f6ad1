import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from lawdesk.app.db import SessionLocal
from lawdesk.app.domain.contracts import CaseScope
from lawdesk.app.models import LawCase, LawDocument, LawEvent, LawInvoice, LawTask
from lawdesk.app.services import case_timeline_service
from lawdesk.app.services.case_timeline_service import (
    TIMELINE_SOURCE_LIMIT,
    TIMELINE_TYPES,
    build_case_timeline,
    merge_timeline,
)

DAY = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def _day(n: int) -> datetime:
    return DAY + timedelta(days=n)


def _document(doc_id, created_at, name="engagement.pdf"):
    return {"id": doc_id, "file_name": name, "created_at": created_at}


def _task(task_id, created_at, completed_date=None, title="Draft motion"):
    return {"id": task_id, "title": title, "created_at": created_at, "completed_date": completed_date}


def _event(event_id, event_date, title="Status conference", event_type="hearing"):
    return {"id": event_id, "title": title, "event_type": event_type, "event_date": event_date}


def _invoice(invoice_id, created_at, paid_date=None, number="INV-0007", status="sent"):
    return {
        "id": invoice_id,
        "invoice_number": number,
        "status": status,
        "created_at": created_at,
        "paid_date": paid_date,
    }


def test_merge_orders_newest_first_and_expands_completions():
    timeline = merge_timeline(
        documents=[_document("d1", _day(3))],
        tasks=[_task("t1", _day(1), completed_date=_day(5))],
        events=[],
        invoices=[_invoice("i1", _day(2), paid_date=_day(4))],
    )

    assert [entry.type for entry in timeline] == ["task_completed", "invoice_paid", "document", "invoice", "task"]
    assert [entry.id for entry in timeline] == ["t1", "i1", "d1", "i1", "t1"]
    assert timeline[0].title == "Task completed: Draft motion"
    assert timeline[1].title == "Invoice INV-0007 paid"
    assert timeline[2].title == "Document uploaded: engagement.pdf"
    assert timeline[3].title == "Invoice INV-0007: sent"
    assert timeline[4].title == "Task created: Draft motion"
    assert {entry.type for entry in timeline} <= set(TIMELINE_TYPES)


def test_open_task_and_unpaid_invoice_yield_single_entries():
    timeline = merge_timeline(
        documents=[],
        tasks=[_task("t1", _day(1))],
        events=[_event("e1", _day(2))],
        invoices=[_invoice("i1", _day(0))],
    )
    assert [(entry.type, entry.id) for entry in timeline] == [("event", "e1"), ("task", "t1"), ("invoice", "i1")]
    assert timeline[0].title == "hearing: Status conference"


def test_equal_dates_keep_emission_order():
    same = _day(2)
    timeline = merge_timeline(
        documents=[_document("d1", same)],
        tasks=[_task("t1", same, completed_date=same)],
        events=[_event("e1", same)],
        invoices=[_invoice("i1", same, paid_date=same)],
    )
    assert [entry.type for entry in timeline] == [
        "document",
        "task",
        "task_completed",
        "event",
        "invoice",
        "invoice_paid",
    ]


def test_naive_dates_are_treated_as_utc():
    timeline = merge_timeline(
        documents=[_document("d1", datetime(2026, 5, 2, 9, 0))],
        tasks=[_task("t1", _day(0))],
        events=[],
        invoices=[],
    )
    assert [entry.id for entry in timeline] == ["d1", "t1"]
    assert timeline[0].date.tzinfo is not None


def test_empty_streams_give_empty_timeline():
    assert merge_timeline([], [], [], []) == []


def _seed_case(db, scope, client, number="LAW-2026-001"):
    row = LawCase(
        owner_uid=scope.owner_uid,
        organization_id=scope.organization_id,
        case_number=number,
        title="Harbor lease dispute",
        case_type="civil",
        client_id=client.id,
    )
    db.add(row)
    db.commit()
    return row


def _child_scope(scope, case_id):
    return {"owner_uid": scope.owner_uid, "organization_id": scope.organization_id, "case_id": case_id}


def test_build_case_timeline_reads_every_stream(sqlite_session, seed_scope):
    scope, client, user = seed_scope()
    case = _seed_case(sqlite_session, scope, client)
    refs = _child_scope(scope, case.id)
    sqlite_session.add_all(
        [
            LawDocument(**refs, file_name="retainer.pdf", created_at=_day(3), uploaded_by_id=user.id),
            LawTask(**refs, title="File answer", created_at=_day(1), completed_date=_day(5), status="completed"),
            LawEvent(**refs, title="Mediation", event_type="meeting", event_date=_day(6), created_at=_day(0)),
            LawInvoice(**refs, invoice_number="INV-0001", amount=1200, status="paid", created_at=_day(2), paid_date=_day(4)),
        ]
    )
    sqlite_session.commit()

    result = asyncio.run(build_case_timeline(SessionLocal, scope, case.id))

    assert result["caseId"] == case.id
    assert result["caseNumber"] == "LAW-2026-001"
    assert [entry["type"] for entry in result["timeline"]] == [
        "event",
        "task_completed",
        "invoice_paid",
        "document",
        "invoice",
        "task",
    ]
    document_entry = result["timeline"][3]
    assert document_entry["data"]["uploaded_by"]["full_name"] == "Dana Reyes"
    dates = [entry["date"] for entry in result["timeline"]]
    assert dates == sorted(dates, reverse=True)


def test_each_stream_is_capped(sqlite_session, seed_scope):
    scope, client, _ = seed_scope()
    case = _seed_case(sqlite_session, scope, client)
    refs = _child_scope(scope, case.id)
    sqlite_session.add_all(
        [LawDocument(**refs, file_name=f"exhibit-{idx}.pdf", created_at=_day(0) + timedelta(minutes=idx)) for idx in range(25)]
    )
    sqlite_session.commit()

    result = asyncio.run(build_case_timeline(SessionLocal, scope, case.id))

    assert len(result["timeline"]) == TIMELINE_SOURCE_LIMIT
    assert result["timeline"][0]["title"] == "Document uploaded: exhibit-24.pdf"
    assert result["timeline"][-1]["title"] == "Document uploaded: exhibit-5.pdf"


def test_timeline_for_other_tenant_is_not_found(sqlite_session, seed_scope):
    scope, client, _ = seed_scope()
    case = _seed_case(sqlite_session, scope, client)
    outsider = CaseScope(owner_uid=scope.owner_uid, organization_id="someone-else")

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(build_case_timeline(SessionLocal, outsider, case.id))

    assert excinfo.value.status_code == 404
    assert excinfo.value.detail == "Case not found"


def test_slow_stream_times_out_as_unavailable(sqlite_session, seed_scope, monkeypatch):
    scope, client, _ = seed_scope()
    case = _seed_case(sqlite_session, scope, client)

    def _slow_documents(session_factory, case_id, deadline):
        time.sleep(0.5)
        return []

    monkeypatch.setenv("TIMELINE_FETCH_TIMEOUT_SECONDS", "0.05")
    monkeypatch.setattr(case_timeline_service, "_fetch_documents", _slow_documents)

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(build_case_timeline(SessionLocal, scope, case.id))

    assert excinfo.value.status_code == 503
    assert excinfo.value.detail == "Timeline unavailable"


def test_stream_failure_fails_whole_timeline(sqlite_session, seed_scope, monkeypatch):
    scope, client, _ = seed_scope()
    case = _seed_case(sqlite_session, scope, client)

    def _broken_tasks(session_factory, case_id, deadline):
        raise RuntimeError("tasks table unavailable")

    monkeypatch.setattr(case_timeline_service, "_fetch_tasks", _broken_tasks)

    with pytest.raises(RuntimeError, match="tasks table unavailable"):
        asyncio.run(build_case_timeline(SessionLocal, scope, case.id))


def test_slow_case_lookup_counts_against_the_same_budget(sqlite_session, seed_scope, monkeypatch):
    scope, client, _ = seed_scope()
    case = _seed_case(sqlite_session, scope, client)
    real_lookup = case_timeline_service._load_case_number

    def _slow_lookup(session_factory, lookup_scope, case_id, deadline):
        time.sleep(0.5)
        return real_lookup(session_factory, lookup_scope, case_id, deadline)

    monkeypatch.setenv("TIMELINE_FETCH_TIMEOUT_SECONDS", "0.05")
    monkeypatch.setattr(case_timeline_service, "_load_case_number", _slow_lookup)

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(build_case_timeline(SessionLocal, scope, case.id))

    assert excinfo.value.status_code == 503


def test_statements_past_the_deadline_are_aborted(sqlite_engine):
    runaway = text(
        "WITH RECURSIVE counter(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM counter) "
        "SELECT count(*) FROM counter"
    )
    started = time.monotonic()

    with pytest.raises(OperationalError, match="interrupted"):
        with case_timeline_service._timeline_session(SessionLocal, time.monotonic() + 0.1) as db:
            db.execute(runaway)

    assert time.monotonic() - started < 5

    # The pooled connection comes back without the deadline attached.
    with SessionLocal() as db:
        assert db.execute(text("SELECT 1")).scalar_one() == 1
