from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lawdesk.app.db import Base


# -------------------------
# Helpers
# -------------------------

CASE_TYPES = ("civil", "criminal", "corporate", "family", "immigration", "other")
CASE_STATUSES = ("active", "pending", "closed", "archived")
CASE_PRIORITIES = ("low", "medium", "high", "urgent")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uuid_str() -> str:
    return str(uuid.uuid4())


# -------------------------
# Referenced entities
# -------------------------

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class LawClient(Base):
    __tablename__ = "law_clients"
    __table_args__ = (
        Index("ix_law_clients_scope", "owner_uid", "organization_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    client_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        server_default=text("'individual'"),
        default="individual",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# -------------------------
# Cases
# -------------------------

class LawCase(Base):
    """
    A matter handled by the firm.

    case_number is LAW-<year>-<seq>; unique per owner and never rewritten after insert.
    """
    __tablename__ = "law_cases"
    __table_args__ = (
        UniqueConstraint("owner_uid", "case_number", name="uq_law_cases_owner_case_number"),
        Index("ix_law_cases_scope_status", "owner_uid", "organization_id", "status"),
        Index("ix_law_cases_scope_created", "owner_uid", "organization_id", "created_at"),
        Index("ix_law_cases_client_id", "client_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)

    case_number: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    case_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'active'"),
        default="active",
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'medium'"),
        default="medium",
    )

    client_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("law_clients.id"),
        nullable=False,
    )
    assigned_to_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    filing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_hearing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    client = relationship("LawClient")
    assigned_to = relationship("User")

    documents = relationship(
        "LawDocument",
        back_populates="case",
        cascade="all, delete-orphan",
    )
    tasks = relationship(
        "LawTask",
        back_populates="case",
        cascade="all, delete-orphan",
    )
    events = relationship(
        "LawEvent",
        back_populates="case",
        cascade="all, delete-orphan",
    )
    invoices = relationship(
        "LawInvoice",
        back_populates="case",
        cascade="all, delete-orphan",
    )


class CaseNumberSequence(Base):
    """
    Highest case-number suffix issued per (owner_uid, year).
    Only ever incremented; deleted cases leave gaps.
    """
    __tablename__ = "case_number_sequences"
    __table_args__ = (
        UniqueConstraint("owner_uid", "year", name="uq_case_number_sequences_owner_year"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# -------------------------
# Case activity streams
# -------------------------

class LawDocument(Base):
    __tablename__ = "law_documents"
    __table_args__ = (
        Index("ix_law_documents_case_created", "case_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("law_cases.id", ondelete="CASCADE"),
        nullable=True,
    )

    file_name: Mapped[str] = mapped_column(String(300), nullable=False)
    file_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    file_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    document_type: Mapped[str] = mapped_column(String(40), nullable=False, default="other")
    uploaded_by_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    case = relationship("LawCase", back_populates="documents")
    uploaded_by = relationship("User")


class LawTask(Base):
    __tablename__ = "law_tasks"
    __table_args__ = (
        Index("ix_law_tasks_case_created", "case_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("law_cases.id", ondelete="CASCADE"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="todo")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_to_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    case = relationship("LawCase", back_populates="tasks")
    assigned_to = relationship("User")


class LawEvent(Base):
    __tablename__ = "law_events"
    __table_args__ = (
        Index("ix_law_events_case_event_date", "case_id", "event_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("law_cases.id", ondelete="CASCADE"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    case = relationship("LawCase", back_populates="events")


class LawInvoice(Base):
    __tablename__ = "law_invoices"
    __table_args__ = (
        Index("ix_law_invoices_case_created", "case_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    owner_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    case_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("law_cases.id", ondelete="CASCADE"),
        nullable=True,
    )

    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    case = relationship("LawCase", back_populates="invoices")
