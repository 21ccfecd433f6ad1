# lawdesk/app/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from lawdesk.app.domain.contracts import CaseScope


def _header(request: Request, name: str) -> Optional[str]:
    value = request.headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def get_case_scope(request: Request) -> CaseScope:
    """
    Tenant scope for the request.

    Reads identity already resolved by the upstream auth layer:
      - X-Owner-Uid
      - X-Organization-Id

    NOTE:
    - These headers are trusted here; verifying them is the gateway's job.
    - The scope is never taken from query params or bodies.
    """
    owner_uid = _header(request, "X-Owner-Uid")
    organization_id = _header(request, "X-Organization-Id")
    if not owner_uid or not organization_id:
        raise HTTPException(status_code=401, detail="Missing X-Owner-Uid or X-Organization-Id header")
    return CaseScope(owner_uid=owner_uid, organization_id=organization_id)


def get_current_user_id(request: Request) -> Optional[str]:
    return _header(request, "X-User-Id")
