"""Pydantic models for Ocrolus API responses."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

OCROLUS_SUCCESS = "200"

VERIFIED_STATUSES = {"VERIFICATION_COMPLETE"}
REJECTED_STATUSES = {"REJECTED"}
PENDING_STATUSES = {"PENDING", "UPLOADED", "PROCESSING", "VERIFYING", "VERIFICATION_IN_PROGRESS"}


class DocumentState(str, Enum):
    """Processing state of one document inside a Book."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    OTHER = "other"

    @classmethod
    def from_status(cls, status: Optional[str]) -> "DocumentState":
        value = (status or "").upper()
        if value in VERIFIED_STATUSES:
            return cls.VERIFIED
        if value in REJECTED_STATUSES:
            return cls.REJECTED
        if value in PENDING_STATUSES or value.startswith("PENDING"):
            return cls.PENDING
        return cls.OTHER


class OcrolusEnvelope(BaseModel):
    """Common `{status, message, response}` wrapper of Ocrolus responses."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    status: Optional[str] = None
    message: Optional[str] = None
    response: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status == OCROLUS_SUCCESS

    @property
    def error_message(self) -> Optional[str]:
        """Top-level message, falling back to response.message."""
        if self.message:
            return self.message
        if isinstance(self.response, dict):
            return self.response.get("message")
        return None


class BookDocument(BaseModel):
    """One document entry from the book status `docs` list."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    pk: Optional[str] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_description: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = None

    @property
    def identifier(self) -> Optional[str]:
        return self.pk or self.uuid

    @property
    def state(self) -> DocumentState:
        return DocumentState.from_status(self.status)

    @property
    def rejection(self) -> Optional[str]:
        return self.rejection_reason or self.reason

    @property
    def rejection_detail(self) -> Optional[str]:
        return self.rejection_description or self.description


class BookStatus(BaseModel):
    """The `response` object of the book status endpoint."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    pk: Optional[str] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    book_status: Optional[str] = None
    book_class: Optional[str] = None
    created_ts: Optional[str] = None
    docs: List[BookDocument] = Field(default_factory=list)

    @field_validator("docs", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v


class DocumentReport(BaseModel):
    """What the status report surfaces for a single document."""

    identifier: Optional[str] = None
    name: Optional[str] = None
    state: DocumentState
    status: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = None


class StatusReport(BaseModel):
    """Point-in-time ingestion snapshot of a Book."""

    book: BookStatus
    documents: List[DocumentReport] = []

    @property
    def total(self) -> int:
        return len(self.documents)

    @property
    def verified(self) -> int:
        return sum(1 for d in self.documents if d.state == DocumentState.VERIFIED)

    @property
    def rejected(self) -> int:
        return sum(1 for d in self.documents if d.state == DocumentState.REJECTED)

    def counts(self) -> Dict[str, int]:
        return {"total": self.total, "verified": self.verified, "rejected": self.rejected}


class UploadResult(BaseModel):
    """Successful upload response."""

    status: str
    message: Optional[str] = None
    response: Optional[Any] = None
    body: Dict[str, Any] = {}
