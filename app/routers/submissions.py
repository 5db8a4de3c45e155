import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from app.dependencies import get_appender
from app.errors import MalformedSubmission
from app.schemas import Outcome, SubmissionEvent, SubmissionResponse
from app.services.comment_service import DirectAppender, ReviewAppender
from app.services.validation import validate_submission

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submissions"])


async def read_event(request: Request) -> SubmissionEvent:
    """Decode the raw body; anything unusable is a malformed request, not a 422."""
    body = await request.body()
    try:
        return SubmissionEvent.model_validate(json.loads(body))
    except (ValueError, ValidationError) as exc:
        raise MalformedSubmission(str(exc)) from exc


@router.post(
    "/api/v1/submissions",
    response_model=SubmissionResponse,
    response_model_exclude_none=True,
)
@router.post(
    "/.netlify/functions/submission-created",
    response_model=SubmissionResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def submission_created(
    event: SubmissionEvent = Depends(read_event),
    appender: DirectAppender | ReviewAppender = Depends(get_appender),
):
    payload = event.payload
    submission = validate_submission(payload)
    if submission is None:
        return SubmissionResponse(
            outcome=Outcome.SKIPPED,
            message=f'Form "{payload.form_name}" not a comment form. Submission skipped.',
        )

    result = await appender.append(submission)
    if result.review is not None:
        return SubmissionResponse(
            outcome=result.outcome,
            message="Comment submitted and pull request created successfully.",
            comment_id=result.record.id,
            commit_sha=result.commit.sha,
            pr_number=result.review.number,
            pr_url=result.review.url,
        )
    return SubmissionResponse(
        outcome=result.outcome,
        message="Comment published successfully.",
        comment_id=result.record.id,
        commit_sha=result.commit.sha,
        commit_url=result.commit.url,
    )
