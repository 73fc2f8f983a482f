"""Data models for the contact intake API.

This module defines the Pydantic models for the submission entity and the
request/response bodies, plus the normalization and validation rules applied
to raw contact-form payloads.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from opsscale.exceptions import InvalidSubmissionError

# Anti-bot trap; real visitors never see or fill this field
HONEYPOT_FIELD = "company"

# Basic local@domain.tld shape, not full RFC 5322
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_honeypot_hit(payload: Mapping[str, Any]) -> bool:
    """Check whether the honeypot field carries a value.

    Args:
        payload: Raw request payload

    Returns:
        True if the submission should be silently discarded
    """
    return bool(payload.get(HONEYPOT_FIELD))


def is_valid_email(value: str) -> bool:
    """Check that an address has the basic ``x@y.z`` shape."""
    return EMAIL_PATTERN.fullmatch(value) is not None


class ContactFields(BaseModel):
    """Normalized contact-form fields.

    Every field is a trimmed string; missing or null input becomes ``""``.
    No length limits apply here, they are enforced where submissions are
    persisted.

    Attributes:
        name: Submitter's name
        email: Submitter's email address
        message: Message content
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ContactFields":
        """Coerce each textual field of a raw payload to a trimmed string.

        Args:
            payload: Raw request payload (untyped key/value input)

        Returns:
            Normalized fields
        """
        return cls(
            name=_coerce_text(payload.get("name")),
            email=_coerce_text(payload.get("email")),
            message=_coerce_text(payload.get("message")),
        )

    def validate_fields(self) -> None:
        """Validate the normalized fields.

        Raises:
            InvalidSubmissionError: If name or message is empty, or the email
                does not match the basic address shape
        """
        if not self.name:
            raise InvalidSubmissionError("name is required")
        if not is_valid_email(self.email):
            raise InvalidSubmissionError("email is malformed")
        if not self.message:
            raise InvalidSubmissionError("message is required")


def _coerce_text(value: Any) -> str:
    return str(value or "").strip()


class Submission(BaseModel):
    """A validated contact submission.

    Submissions are immutable; persisting one yields a copy carrying the
    identifier assigned by the storage backend.

    Attributes:
        name: Submitter's name
        email: Submitter's email, lower-cased
        message: Message content
        originating_address: Client address from X-Forwarded-For or the socket peer
        created_at: UTC creation timestamp
        id: Storage-assigned identifier, None until persisted
    """

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    message: str
    originating_address: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    id: str | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @classmethod
    def from_fields(
        cls, fields: ContactFields, originating_address: str | None = None
    ) -> "Submission":
        """Build a submission from fields that already passed validation."""
        return cls(
            name=fields.name,
            email=fields.email,
            message=fields.message,
            originating_address=originating_address,
        )

    def with_id(self, submission_id: str) -> "Submission":
        """Return a copy carrying the storage-assigned identifier."""
        return self.model_copy(update={"id": submission_id})


@dataclass(frozen=True)
class IntakeResult:
    """Composite outcome of one pipeline run.

    Attributes:
        accepted: Whether the submission passed the honeypot and validation
        stored: Whether a durable record was written
        mailed: Whether the notification transport accepted the message
        id: Storage-assigned identifier when stored
        reason: Rejection reason when not accepted
        discarded: True for honeypot hits (reported as accepted)
    """

    accepted: bool
    stored: bool = False
    mailed: bool = False
    id: str | None = None
    reason: str | None = None
    discarded: bool = False

    @classmethod
    def rejected(cls, reason: str = "invalid input") -> "IntakeResult":
        return cls(accepted=False, reason=reason)

    @classmethod
    def trapped(cls) -> "IntakeResult":
        return cls(accepted=True, discarded=True)


class ContactResponse(BaseModel):
    """Successful contact submission response.

    Attributes:
        success: Always True
        saved: Whether the submission was stored
        id: Storage identifier, null when not stored
        mailed: Whether a notification email was delivered
    """

    success: bool = Field(default=True, description="Submission accepted")
    saved: bool = Field(..., description="Whether the submission was stored")
    id: str | None = Field(
        default=None,
        description="Storage identifier of the submission",
        examples=["66f1c2a9e4b0a1b2c3d4e5f6"],
    )
    mailed: bool = Field(..., description="Whether a notification email was sent")

    @classmethod
    def from_result(cls, result: IntakeResult) -> "ContactResponse":
        return cls(saved=result.stored, id=result.id, mailed=result.mailed)


class ErrorResponse(BaseModel):
    """Error response body."""

    success: bool = False
    error: str = Field(..., examples=["Invalid input."])


class HealthResponse(BaseModel):
    """Liveness/readiness report.

    Attributes:
        ok: Always True while the process serves requests
        db: Whether storage is available
        mail: Whether a mail transport is configured
    """

    ok: bool = True
    db: bool
    mail: bool
