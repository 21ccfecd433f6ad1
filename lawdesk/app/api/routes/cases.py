from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, sessionmaker

from lawdesk.app.api.deps import get_case_scope, get_current_user_id
from lawdesk.app.db import get_db, get_session_factory
from lawdesk.app.domain.contracts import CaseCreateIn, CaseDeleteOut, CaseScope, CaseUpdateIn
from lawdesk.app.services import case_service, case_timeline_service
from lawdesk.app.services.case_number_service import ConcurrencyConflict

router = APIRouter(prefix="/api/cases", tags=["cases"])


@router.get("")
def list_cases(
    q: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    case_type: Optional[str] = Query(default=None, alias="caseType"),
    priority: Optional[str] = Query(default=None),
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    assigned_to_id: Optional[str] = Query(default=None, alias="assignedToId"),
    # Pagination values stay raw strings; the query compiler clamps instead of rejecting.
    limit: Optional[str] = Query(default=None),
    page: Optional[str] = Query(default=None),
    offset: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    scope: CaseScope = Depends(get_case_scope),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    raw_filters = {
        "q": q,
        "status": status,
        "caseType": case_type,
        "priority": priority,
        "clientId": client_id,
        "assignedToId": assigned_to_id,
        "limit": limit,
        "page": page,
        "offset": offset,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    }
    return case_service.list_cases(db, scope, raw_filters)


@router.get("/{case_id}")
def get_case(case_id: str, scope: CaseScope = Depends(get_case_scope), db: Session = Depends(get_db)):
    return case_service.get_case(db, scope, case_id)


@router.get("/{case_id}/timeline")
async def get_case_timeline(
    case_id: str,
    scope: CaseScope = Depends(get_case_scope),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return await case_timeline_service.build_case_timeline(session_factory, scope, case_id)


@router.post("", status_code=201)
def post_case(
    req: CaseCreateIn,
    scope: CaseScope = Depends(get_case_scope),
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        payload = case_service.create_case(db, scope, user_id, req)
    except ConcurrencyConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc), headers={"Retry-After": "1"}) from exc
    db.commit()
    return payload


@router.patch("/{case_id}")
def patch_case(
    case_id: str,
    req: CaseUpdateIn,
    scope: CaseScope = Depends(get_case_scope),
    db: Session = Depends(get_db),
):
    payload = case_service.update_case(db, scope, case_id, req)
    db.commit()
    return payload


@router.delete("/{case_id}", response_model=CaseDeleteOut)
def delete_case(case_id: str, scope: CaseScope = Depends(get_case_scope), db: Session = Depends(get_db)):
    payload = case_service.delete_case(db, scope, case_id)
    db.commit()
    return payload
