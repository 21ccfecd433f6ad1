from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from lawdesk.app.api import config
from lawdesk.app.models import CaseNumberSequence, LawCase, utcnow

logger = logging.getLogger(__name__)

CASE_NUMBER_PREFIX = "LAW"
SUFFIX_WIDTH = 3
# Postgres serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}
# Unique constraints an allocation race can trip, by name (Postgres) and by the
# column list SQLite reports instead.
_ALLOCATION_CONSTRAINTS = {
    "uq_law_cases_owner_case_number": "law_cases.owner_uid, law_cases.case_number",
    "uq_case_number_sequences_owner_year": "case_number_sequences.owner_uid, case_number_sequences.year",
}

T = TypeVar("T")


class ConcurrencyConflict(RuntimeError):
    """Raised when no case number could be allocated within the retry budget."""

    def __init__(self, owner_uid: str, year: int, attempts: int):
        super().__init__(
            f"could not allocate a case number for owner '{owner_uid}' in {year} after {attempts} attempts"
        )
        self.owner_uid = owner_uid
        self.year = year
        self.attempts = attempts


def case_number_prefix(year: int) -> str:
    return f"{CASE_NUMBER_PREFIX}-{year}-"


def format_case_number(year: int, value: int) -> str:
    return f"{case_number_prefix(year)}{value:0{SUFFIX_WIDTH}d}"


def parse_case_number_suffix(case_number: str, year: int) -> Optional[int]:
    prefix = case_number_prefix(year)
    if not case_number or not case_number.startswith(prefix):
        return None
    suffix = case_number[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def _observed_max_suffix(db: Session, owner_uid: str, year: int) -> int:
    # Suffixes are compared numerically; "LAW-2025-1000" sorts before "LAW-2025-999" as text.
    numbers = (
        db.execute(
            select(LawCase.case_number).where(
                LawCase.owner_uid == owner_uid,
                LawCase.case_number.startswith(case_number_prefix(year), autoescape=True),
            )
        )
        .scalars()
        .all()
    )
    suffixes = [parse_case_number_suffix(number, year) for number in numbers]
    return max((value for value in suffixes if value is not None), default=0)


def _ensure_counter(db: Session, owner_uid: str, year: int) -> None:
    existing = db.execute(
        select(CaseNumberSequence.id).where(
            CaseNumberSequence.owner_uid == owner_uid,
            CaseNumberSequence.year == year,
        )
    ).first()
    if existing:
        return
    db.add(
        CaseNumberSequence(
            owner_uid=owner_uid,
            year=year,
            last_value=_observed_max_suffix(db, owner_uid, year),
        )
    )
    # A concurrent first-of-year allocation surfaces here as IntegrityError.
    db.flush()


def _increment_counter(db: Session, owner_uid: str, year: int, floor: int) -> int:
    stmt = (
        update(CaseNumberSequence)
        .where(
            CaseNumberSequence.owner_uid == owner_uid,
            CaseNumberSequence.year == year,
        )
        .values(
            last_value=case(
                (CaseNumberSequence.last_value < floor, floor),
                else_=CaseNumberSequence.last_value,
            )
            + 1,
            updated_at=utcnow(),
        )
        .returning(CaseNumberSequence.last_value)
        .execution_options(synchronize_session=False)
    )
    return int(db.execute(stmt).scalar_one())


def allocate_case_number(db: Session, owner_uid: str, *, year: int, floor: int = 0) -> str:
    """
    Reserve the next case number for (owner_uid, year).

    The counter row stays write-locked until the caller's transaction ends, so concurrent
    allocators for the same scope queue behind each other in the database. `floor` lifts
    the counter past numbers that exist in law_cases but were never issued by it.
    """
    if not owner_uid:
        raise ValueError("owner_uid is required to allocate a case number")
    _ensure_counter(db, owner_uid, year)
    return format_case_number(year, _increment_counter(db, owner_uid, year, floor))


def _is_allocation_conflict(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    if getattr(diag, "constraint_name", None) in _ALLOCATION_CONSTRAINTS:
        return True
    message = str(orig or exc)
    return any(name in message or columns in message for name, columns in _ALLOCATION_CONSTRAINTS.items())


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, IntegrityError):
        return _is_allocation_conflict(exc)
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _RETRYABLE_PGCODES:
        return True
    message = str(orig or exc).lower()
    return "locked" in message or "could not serialize" in message


def create_with_case_number(
    db: Session,
    owner_uid: str,
    build_row: Callable[[str], T],
    *,
    year: int,
) -> T:
    """
    Allocate a case number and insert the row built from it, as one unit.

    Unique-constraint and lock conflicts roll the session back and retry with a fresh
    read of the highest stored suffix. The session must carry no other pending changes.
    """
    max_attempts = config.case_number_max_attempts()
    deadline = time.monotonic() + config.case_number_budget_seconds()
    floor = 0
    attempt = 0
    while attempt < max_attempts:
        attempt += 1
        try:
            case_number = allocate_case_number(db, owner_uid, year=year, floor=floor)
            row = build_row(case_number)
            db.add(row)
            db.flush()
            return row
        except (IntegrityError, OperationalError) as exc:
            db.rollback()
            if not _is_retryable(exc):
                raise
            logger.warning(
                "[case_numbers] allocation conflict owner=%s year=%s attempt=%s/%s: %s",
                owner_uid,
                year,
                attempt,
                max_attempts,
                exc.__class__.__name__,
            )
            remaining = deadline - time.monotonic()
            if attempt >= max_attempts or remaining <= 0:
                break
            floor = _observed_max_suffix(db, owner_uid, year)
            time.sleep(min(random.uniform(0.005, 0.025) * attempt, remaining))

    logger.warning(
        "[case_numbers] allocation exhausted owner=%s year=%s attempts=%s",
        owner_uid,
        year,
        attempt,
    )
    raise ConcurrencyConflict(owner_uid, year, attempt)
