from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy import Select, func, or_, select

from lawdesk.app.domain.contracts import CaseScope, QueryDescriptor
from lawdesk.app.models import CASE_PRIORITIES, CASE_STATUSES, CASE_TYPES, LawCase

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# Largest OFFSET every supported store accepts as a bound parameter.
MAX_SKIP = 2**31 - 1
DEFAULT_PAGE = 1
DEFAULT_ORDER_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"

SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "caseNumber": "case_number",
    "status": "status",
    "priority": "priority",
    "filingDate": "filing_date",
    "nextHearingDate": "next_hearing_date",
}
SORT_FIELDS.update({column: column for column in list(SORT_FIELDS.values())})

ENUM_FILTERS = {
    "status": (("status",), CASE_STATUSES),
    "case_type": (("caseType", "case_type"), CASE_TYPES),
    "priority": (("priority",), CASE_PRIORITIES),
}
REFERENCE_FILTERS = {
    "client_id": ("clientId", "client_id"),
    "assigned_to_id": ("assignedToId", "assigned_to_id"),
}


def _first(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def compile_case_query(scope: CaseScope, raw_filters: Optional[Mapping[str, Any]]) -> QueryDescriptor:
    """
    Sanitize an untrusted list request into a bounded QueryDescriptor.

    Never raises: out-of-range numbers are clamped, unknown enum values and sort keys are
    dropped. Scope comes only from `scope`; tenant keys inside raw_filters are ignored.
    """
    raw = raw_filters or {}

    limit = _as_int(raw.get("limit"))
    limit = DEFAULT_LIMIT if limit is None else min(max(limit, 1), MAX_LIMIT)

    page = _as_int(raw.get("page"))
    page = DEFAULT_PAGE if page is None else min(max(page, 1), MAX_SKIP // limit + 1)

    offset = _as_int(raw.get("offset"))
    skip = max(offset, 0) if offset is not None else (page - 1) * limit
    skip = min(skip, MAX_SKIP)

    filters: Dict[str, str] = {}
    for column, (names, allowed) in ENUM_FILTERS.items():
        value = _as_text(_first(raw, *names))
        if value in allowed:
            filters[column] = value
    for column, names in REFERENCE_FILTERS.items():
        value = _as_text(_first(raw, *names))
        if value:
            filters[column] = value

    order_by = SORT_FIELDS.get(_as_text(_first(raw, "sortBy", "sort_by")) or "")
    if order_by:
        sort_order = "asc" if _first(raw, "sortOrder", "sort_order") == "asc" else "desc"
    else:
        order_by, sort_order = DEFAULT_ORDER_BY, DEFAULT_SORT_ORDER

    return QueryDescriptor(
        owner_uid=scope.owner_uid,
        organization_id=scope.organization_id,
        filters=filters,
        search=_as_text(raw.get("q")),
        order_by=order_by,
        sort_order=sort_order,
        page=page,
        skip=skip,
        limit=limit,
    )


def _conditions(descriptor: QueryDescriptor) -> list:
    conditions = [
        LawCase.owner_uid == descriptor.owner_uid,
        LawCase.organization_id == descriptor.organization_id,
    ]
    for column, value in descriptor.filters.items():
        conditions.append(getattr(LawCase, column) == value)
    if descriptor.search:
        conditions.append(
            or_(
                LawCase.title.icontains(descriptor.search, autoescape=True),
                LawCase.description.icontains(descriptor.search, autoescape=True),
                LawCase.case_number.icontains(descriptor.search, autoescape=True),
            )
        )
    return conditions


def build_case_statements(descriptor: QueryDescriptor) -> Tuple[Select, Select]:
    """Page statement and matching count statement for a compiled descriptor."""
    conditions = _conditions(descriptor)
    column = getattr(LawCase, descriptor.order_by)
    if descriptor.sort_order == "asc":
        ordering = (column.asc(), LawCase.id.asc())
    else:
        ordering = (column.desc(), LawCase.id.desc())
    page_stmt = (
        select(LawCase)
        .where(*conditions)
        .order_by(*ordering)
        .offset(descriptor.skip)
        .limit(descriptor.limit)
    )
    count_stmt = select(func.count()).select_from(LawCase).where(*conditions)
    return page_stmt, count_stmt


def pagination_summary(descriptor: QueryDescriptor, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / descriptor.limit) if descriptor.limit else 0
    return {
        "total": total,
        "page": descriptor.page,
        "limit": descriptor.limit,
        "offset": descriptor.skip,
        "totalPages": total_pages,
        "hasNextPage": descriptor.page < total_pages,
        "hasPreviousPage": descriptor.page > 1,
    }
