from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


# --- Inbound event ---

class SubmissionPayload(BaseModel):
    form_name: str | None = None
    data: dict[str, Any]
    id: str | None = None  # submission identifier assigned by the form platform
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class SubmissionEvent(BaseModel):
    payload: SubmissionPayload
    model_config = ConfigDict(extra="ignore")


# --- Persisted comment ---

COMMENT_MAX_LENGTH = 2000


def utc_now() -> datetime:
    """Current UTC time truncated to the millisecond precision that is persisted."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class CommentRecord(BaseModel):
    id: str
    name: str = Field(min_length=1)
    comment: str = Field(min_length=1, max_length=COMMENT_MAX_LENGTH)
    date: datetime = Field(default_factory=utc_now)

    @field_serializer("date")
    def _serialize_date(self, value: datetime) -> str:
        # 2024-05-01T10:00:00.123Z, the shape static-site templates already parse
        value = value.astimezone(timezone.utc)
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# --- Outcome ---

class Outcome(str, Enum):
    SKIPPED = "skipped"
    REJECTED = "rejected"
    PUBLISHED = "published"
    PENDING_REVIEW = "pending_review"
    FAILED = "failed"


class SubmissionResponse(BaseModel):
    outcome: Outcome
    message: str | None = None
    error: str | None = None
    comment_id: str | None = None
    commit_sha: str | None = None
    commit_url: str | None = None
    pr_number: int | None = None
    pr_url: str | None = None
    missing_fields: list[str] | None = None
