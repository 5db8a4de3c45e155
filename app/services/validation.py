"""
Submission validator: turns a form-platform payload into a comment.

Checks run in a fixed order: form filter, honeypot, required fields,
length.  A form outside the comment naming convention is not an error;
``validate_submission`` returns None so the caller can answer with a
neutral "skipped" and the platform does not retry.  Every other problem
raises ``SubmissionRejected``.

The submitter email is carried on ``ValidatedSubmission`` for the
review-request body only; it never reaches the ``CommentRecord``.
"""
import logging
from dataclasses import dataclass
from typing import Any

from app.config import Settings, settings
from app.errors import SubmissionRejected
from app.schemas import COMMENT_MAX_LENGTH, CommentRecord, SubmissionPayload, utc_now

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("name", "comment", "article_slug", "article_title")


@dataclass(frozen=True)
class ValidatedSubmission:
    record: CommentRecord
    article_slug: str
    article_title: str
    email: str | None = None
    submission_id: str | None = None


def _text(value: Any) -> str:
    """Return *value* as a stripped string; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


def validate_submission(
    payload: SubmissionPayload,
    config: Settings = settings,
) -> ValidatedSubmission | None:
    form_name = payload.form_name
    if not form_name or not form_name.startswith(config.FORM_NAME_PREFIX):
        logger.info(
            'Form name "%s" does not match prefix "%s". Skipping.', form_name, config.FORM_NAME_PREFIX
        )
        return None

    data = payload.data
    if data.get(config.HONEYPOT_FIELD):
        logger.warning("Bot submission detected (honeypot filled) on form %s.", form_name)
        raise SubmissionRejected(SubmissionRejected.SPAM, "Spam submission detected.")

    values = {field: _text(data.get(field)) for field in REQUIRED_FIELDS}
    missing = [field for field in REQUIRED_FIELDS if not values[field]]
    if missing:
        logger.warning("Missing required fields on form %s: %s", form_name, ", ".join(missing))
        raise SubmissionRejected(
            SubmissionRejected.MISSING_FIELDS,
            f"Missing required fields: {', '.join(missing)}",
            missing=missing,
        )

    # measured as submitted, before trimming
    comment_length = len(str(data["comment"]))
    if comment_length > COMMENT_MAX_LENGTH:
        logger.warning("Comment too long on form %s: %d chars", form_name, comment_length)
        raise SubmissionRejected(
            SubmissionRejected.TOO_LONG,
            f"Comment is too long (max {COMMENT_MAX_LENGTH} chars).",
        )

    now = utc_now()
    submission_id = _text(payload.id) or None
    record = CommentRecord(
        id=submission_id or str(int(now.timestamp() * 1000)),
        name=values["name"],
        comment=values["comment"],
        date=now,
    )
    return ValidatedSubmission(
        record=record,
        article_slug=values["article_slug"],
        article_title=values["article_title"],
        email=_text(data.get("email")) or None,
        submission_id=submission_id,
    )
