"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class FailureKind(str, Enum):
    """Why an ingest call did not succeed."""

    validation = "validation"
    internal = "internal"


@dataclass(slots=True)
class PayloadCheck:
    """Tagged outcome of validating a raw ingest payload."""

    valid: bool
    fields: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None


@dataclass(slots=True)
class IngestResult:
    """Outcome of a single ingest call."""

    ok: bool
    error: Optional[str] = None
    failure: Optional[FailureKind] = None

    @classmethod
    def success(cls) -> "IngestResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, failure: FailureKind, error: str) -> "IngestResult":
        return cls(ok=False, error=error, failure=failure)
