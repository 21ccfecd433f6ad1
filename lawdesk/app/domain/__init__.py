"""Domain contracts and shared types."""

from lawdesk.app.domain.contracts import (  # noqa: F401
    CaseCreateIn,
    CaseDeleteOut,
    CaseScope,
    CaseUpdateIn,
    QueryDescriptor,
)
