"""
Append-protocol tests: direct commits, review branches, optimistic
concurrency and cleanup after partial failure.

These call the appenders directly against the recording in-memory store,
so every store round trip is visible in ``store.calls``.
"""
import json

import pytest

from app.config import Settings
from app.errors import StoreError, VersionConflict
from app.schemas import Outcome
from app.services.collection import encode_collection
from app.services.comment_service import (
    DirectAppender,
    ReviewAppender,
    build_appender,
    render_review_body,
)
from app.services.validation import validate_submission
from conftest import RecordingStore, make_payload

PATH = "_data/comments/intro.json"

EXISTING = [
    {"id": "a", "name": "A", "comment": "first", "date": "2023-01-01T00:00:00.000Z"},
    {"id": "b", "name": "B", "comment": "second", "date": "2023-01-02T00:00:00.000Z"},
]


def _config(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _submission(**data):
    return validate_submission(make_payload(**data))


def _collection(store: RecordingStore, ref: str = "main") -> list[dict]:
    return json.loads(store.files(ref)[PATH])


# ---------------------------------------------------------------------------
# Strategy A: direct
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_direct_creates_collection_on_first_comment(store: RecordingStore):
    result = await DirectAppender(store, _config()).append(_submission())

    assert result.outcome == Outcome.PUBLISHED
    assert result.path == PATH
    assert result.branch == "main"
    assert result.review is None
    comments = _collection(store)
    assert len(comments) == 1
    assert comments[0]["name"] == "Ana"
    assert comments[0]["comment"] == "Great post!"
    assert set(comments[0]) == {"id", "name", "comment", "date"}
    assert store.calls == ["read_file", "write_file"]


@pytest.mark.asyncio
async def test_direct_appends_to_tail(store: RecordingStore):
    store.seed(PATH, encode_collection(EXISTING))
    submission = _submission()

    await DirectAppender(store, _config()).append(submission)

    comments = _collection(store)
    assert comments[:2] == EXISTING
    assert comments[2]["id"] == submission.record.id


@pytest.mark.asyncio
async def test_direct_conflict_is_surfaced(store: RecordingStore):
    store.fail_on["write_file"] = VersionConflict("stale", status_code=409)

    with pytest.raises(VersionConflict):
        await DirectAppender(store, _config()).append(_submission())
    assert store.calls == ["read_file", "write_file"]


@pytest.mark.asyncio
async def test_direct_detects_concurrent_writer(store: RecordingStore):
    """A write landing between our read and write makes the store refuse ours."""
    store.seed(PATH, encode_collection(EXISTING))
    store.read_file = RacingRead(store)

    with pytest.raises(VersionConflict):
        await DirectAppender(store, _config()).append(_submission())
    # The concurrent entry survives; ours was not written over it.
    assert [c["id"] for c in _collection(store)] == ["a", "b", "other"]


@pytest.mark.asyncio
async def test_direct_retry_rereads_after_conflict(store: RecordingStore):
    store.seed(PATH, encode_collection(EXISTING))
    store.read_file = RacingRead(store)
    submission = _submission()

    result = await DirectAppender(store, _config(CONFLICT_RETRIES=1)).append(submission)

    assert result.outcome == Outcome.PUBLISHED
    assert [c["id"] for c in _collection(store)] == ["a", "b", "other", submission.record.id]


@pytest.mark.asyncio
async def test_direct_does_not_read_other_branches(store: RecordingStore):
    await DirectAppender(store, _config(GITHUB_REPO_BRANCH="main")).append(_submission())
    assert store.branches == ["main"]


# ---------------------------------------------------------------------------
# Strategy B: review branch
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_review_stages_comment_on_new_branch(store: RecordingStore):
    store.seed(PATH, encode_collection(EXISTING))
    submission = _submission(submission_id="abc123")

    result = await ReviewAppender(store, _config()).append(submission)

    assert result.outcome == Outcome.PENDING_REVIEW
    assert result.branch == "comment-intro-abc123"
    assert result.review.number == 1
    assert store.calls == [
        "get_branch_head",
        "create_branch",
        "read_file",
        "write_file",
        "open_review_request",
    ]
    # Main is untouched until the review request is merged.
    assert _collection(store, "main") == EXISTING
    staged = _collection(store, result.branch)
    assert staged[:2] == EXISTING
    assert staged[2]["id"] == "abc123"

    pull = store.pulls[0]
    assert pull["head"] == "comment-intro-abc123"
    assert pull["base"] == "main"
    assert pull["title"] == "New Comment: Intro by Ana"


@pytest.mark.asyncio
async def test_review_creates_file_when_absent(store: RecordingStore):
    result = await ReviewAppender(store, _config()).append(_submission())
    assert len(_collection(store, result.branch)) == 1
    assert PATH not in store.files("main")


@pytest.mark.parametrize("failing", ["read_file", "write_file", "open_review_request"])
@pytest.mark.asyncio
async def test_review_failure_after_branch_creation_deletes_branch(store: RecordingStore, failing):
    original = StoreError(f"{failing} exploded", status_code=502)
    store.fail_on[failing] = original

    with pytest.raises(StoreError) as exc_info:
        await ReviewAppender(store, _config()).append(_submission(submission_id="abc123"))

    assert exc_info.value is original
    assert store.calls[-1] == "delete_branch"
    assert store.branches == ["main"]
    assert store.pulls == []


@pytest.mark.asyncio
async def test_review_cleanup_failure_keeps_original_error(store: RecordingStore):
    original = StoreError("pull request refused", status_code=422)
    store.fail_on["open_review_request"] = original
    store.fail_on["delete_branch"] = StoreError("cleanup refused", status_code=500)

    with pytest.raises(StoreError) as exc_info:
        await ReviewAppender(store, _config()).append(_submission())

    assert exc_info.value is original
    assert "delete_branch" in store.calls


@pytest.mark.asyncio
async def test_review_failure_before_branch_creation_skips_cleanup(store: RecordingStore):
    store.fail_on["create_branch"] = StoreError("Reference already exists", status_code=422)

    with pytest.raises(StoreError):
        await ReviewAppender(store, _config()).append(_submission())

    assert "delete_branch" not in store.calls


@pytest.mark.asyncio
async def test_review_uses_configured_base_branch():
    store = RecordingStore(default_branch="trunk")
    result = await ReviewAppender(store, _config(GITHUB_REPO_BRANCH="trunk")).append(_submission())
    assert store.pulls[0]["base"] == "trunk"
    assert result.branch in store.branches


# ---------------------------------------------------------------------------
# Review body
# ---------------------------------------------------------------------------

def test_review_body_contains_submission_details():
    submission = _submission(submission_id="sub-9", comment="Line one\nLine two", email="ana@example.com")
    body = render_review_body(submission, "comment-intro-sub-9", "main")

    assert "**Intro** (slug: intro)" in body
    assert "By: **Ana**" in body
    assert "Comment ID: sub-9" in body
    assert "Submission ID: sub-9" in body
    assert "> Line one\n> Line two" in body
    assert "`comment-intro-sub-9` into `main`" in body
    assert "ana@example.com" not in body


def test_review_body_includes_email_only_when_enabled():
    body = render_review_body(_submission(), "b", "main", include_email=True)
    assert "User Email: Not provided" in body


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------

def test_build_appender(store: RecordingStore):
    assert isinstance(build_appender(store, _config(APPEND_STRATEGY="direct")), DirectAppender)
    assert isinstance(build_appender(store, _config(APPEND_STRATEGY="review")), ReviewAppender)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class RacingRead:
    """
    Wraps ``store.read_file`` so that the first read is followed by a
    competing commit, simulating another invocation winning the race.
    """

    def __init__(self, store: RecordingStore) -> None:
        self.store = store
        self.inner = store.read_file
        self.reads = 0

    async def __call__(self, path, ref):
        current = await self.inner(path, ref)
        self.reads += 1
        if self.reads == 1:
            entries = json.loads(current.content)
            entries.append({"id": "other", "name": "O", "comment": "race", "date": "2023-01-03T00:00:00.000Z"})
            self.store.seed(path, encode_collection(entries), branch=ref)
        return current
