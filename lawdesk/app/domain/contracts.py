from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CaseType = Literal["civil", "criminal", "corporate", "family", "immigration", "other"]
CaseStatus = Literal["active", "pending", "closed", "archived"]
# A new case can only start open.
InitialCaseStatus = Literal["active", "pending"]
CasePriority = Literal["low", "medium", "high", "urgent"]


@dataclass(frozen=True)
class CaseScope:
    """Tenant partition every case query is bound to. Always server-derived."""

    owner_uid: str
    organization_id: str


@dataclass(frozen=True)
class QueryDescriptor:
    owner_uid: str
    organization_id: str
    filters: Dict[str, str] = field(default_factory=dict)
    search: Optional[str] = None
    order_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    skip: int = 0
    limit: int = 20


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CaseCreateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    client_id: str = Field(..., min_length=1, alias="clientId")
    case_type: CaseType = Field(..., alias="caseType")
    status: Optional[InitialCaseStatus] = None
    priority: Optional[CasePriority] = None
    assigned_to_id: Optional[str] = Field(default=None, alias="assignedToId")
    filing_date: Optional[datetime] = Field(default=None, alias="filingDate")
    next_hearing_date: Optional[datetime] = Field(default=None, alias="nextHearingDate")

    @field_validator("filing_date", "next_hearing_date", "assigned_to_id", mode="before")
    @classmethod
    def _blank_as_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CaseUpdateIn(BaseModel):
    """
    Partial update. Only fields the caller actually sent are applied
    (model_dump(exclude_unset=True)); an explicit null clears a nullable field.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    client_id: Optional[str] = Field(default=None, alias="clientId")
    case_type: Optional[CaseType] = Field(default=None, alias="caseType")
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    assigned_to_id: Optional[str] = Field(default=None, alias="assignedToId")
    filing_date: Optional[datetime] = Field(default=None, alias="filingDate")
    next_hearing_date: Optional[datetime] = Field(default=None, alias="nextHearingDate")
    closing_date: Optional[datetime] = Field(default=None, alias="closingDate")

    @field_validator("filing_date", "next_hearing_date", "closing_date", "assigned_to_id", mode="before")
    @classmethod
    def _blank_as_null(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CaseDeleteOut(BaseModel):
    success: bool
    id: str
