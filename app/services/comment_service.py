"""
Comment service: append-only writes to a repository-hosted collection.

Each article's comments live in one JSON document in the site's
repository.  Appending is a read-modify-write through the content store:

- ``DirectAppender`` commits straight to the main branch.  The version
  token from the read is passed to the write, so a concurrent writer
  makes the store refuse the update (``VersionConflict``) instead of
  silently losing a comment.  Optional bounded retries start over from
  a fresh read.
- ``ReviewAppender`` creates a branch per submission, commits there and
  opens a pull request into the main branch, leaving publication to a
  reviewer.  If anything fails after the branch exists, the branch is
  deleted before the original error propagates.

Comments are never edited or removed here; every write adds exactly one
entry at the tail of the collection.
"""
import logging
from dataclasses import dataclass

from app.config import Settings, settings
from app.errors import VersionConflict
from app.schemas import CommentRecord, Outcome
from app.services.collection import (
    append_entry,
    collection_path,
    decode_collection,
    encode_collection,
    review_branch_name,
)
from app.services.validation import ValidatedSubmission
from app.store.base import CommitRef, ContentStore, Identity, ReviewRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppendResult:
    outcome: Outcome
    record: CommentRecord
    path: str
    commit: CommitRef
    branch: str
    review: ReviewRequest | None = None


# ---------------------------------------------------------------------------
# Shared read-append-write step
# ---------------------------------------------------------------------------

def commit_message(submission: ValidatedSubmission) -> str:
    return f"feat: Add new comment to {submission.article_title} (ID: {submission.record.id})"


async def append_to_branch(
    store: ContentStore,
    path: str,
    record: CommentRecord,
    *,
    branch: str,
    message: str,
    author: Identity,
) -> CommitRef:
    """
    Append *record* to the collection at *path* on *branch*.

    A missing document counts as an empty collection and is created by
    the write.
    """
    current = await store.read_file(path, branch)
    if current is None:
        logger.info('Comments file "%s" not found in branch "%s". It will be created.', path, branch)
        entries, sha = [], None
    else:
        entries, sha = decode_collection(current.content), current.sha

    commit = await store.write_file(
        path,
        encode_collection(append_entry(entries, record)),
        sha=sha,
        branch=branch,
        message=message,
        author=author,
    )
    logger.info('Comments file "%s" updated in branch "%s" (%s).', path, branch, commit.sha)
    return commit


# ---------------------------------------------------------------------------
# Strategy A: direct commit
# ---------------------------------------------------------------------------

class DirectAppender:
    def __init__(self, store: ContentStore, config: Settings = settings) -> None:
        self.store = store
        self.branch = config.GITHUB_REPO_BRANCH
        self.root = config.COMMENTS_ROOT
        self.retries = max(config.CONFLICT_RETRIES, 0)
        self.author = Identity(config.BOT_NAME, config.BOT_EMAIL)

    async def append(self, submission: ValidatedSubmission) -> AppendResult:
        path = collection_path(submission.article_slug, self.root)
        attempt = 0
        while True:
            try:
                commit = await append_to_branch(
                    self.store,
                    path,
                    submission.record,
                    branch=self.branch,
                    message=commit_message(submission),
                    author=self.author,
                )
                break
            except VersionConflict:
                if attempt >= self.retries:
                    logger.error("Version conflict writing %s; giving up after %d attempt(s)", path, attempt + 1)
                    raise
                attempt += 1
                logger.warning("Version conflict writing %s; re-reading (retry %d/%d)", path, attempt, self.retries)

        return AppendResult(
            outcome=Outcome.PUBLISHED,
            record=submission.record,
            path=path,
            commit=commit,
            branch=self.branch,
        )


# ---------------------------------------------------------------------------
# Strategy B: branch + pull request
# ---------------------------------------------------------------------------

def review_title(submission: ValidatedSubmission) -> str:
    return f"New Comment: {submission.article_title} by {submission.record.name}"


def render_review_body(
    submission: ValidatedSubmission,
    branch: str,
    base: str,
    include_email: bool = False,
) -> str:
    record = submission.record
    lines = [
        f"New comment submitted for article: **{submission.article_title}** (slug: {submission.article_slug})",
        f"By: **{record.name}**",
    ]
    if include_email:
        lines.append(f"User Email: {submission.email or 'Not provided'}")
    lines.append(f"Comment ID: {record.id}")
    if submission.submission_id:
        lines.append(f"Submission ID: {submission.submission_id}")
    quoted = "\n".join(f"> {line}" for line in record.comment.splitlines())
    lines += [
        "",
        "---",
        "**Comment:**",
        quoted,
        "",
        f"This pull request will merge branch `{branch}` into `{base}`.",
    ]
    return "\n".join(lines) + "\n"


class ReviewAppender:
    def __init__(self, store: ContentStore, config: Settings = settings) -> None:
        self.store = store
        self.base = config.GITHUB_REPO_BRANCH
        self.root = config.COMMENTS_ROOT
        self.include_email = config.REVIEW_INCLUDE_EMAIL
        self.author = Identity(config.BOT_NAME, config.BOT_EMAIL)

    async def append(self, submission: ValidatedSubmission) -> AppendResult:
        record = submission.record
        path = collection_path(submission.article_slug, self.root)
        branch = review_branch_name(submission.article_slug, record.id)

        base_sha = await self.store.get_branch_head(self.base)
        await self.store.create_branch(branch, base_sha)
        logger.info('Branch "%s" created successfully.', branch)

        try:
            commit = await append_to_branch(
                self.store,
                path,
                record,
                branch=branch,
                message=commit_message(submission),
                author=self.author,
            )
            review = await self.store.open_review_request(
                branch,
                self.base,
                review_title(submission),
                render_review_body(submission, branch, self.base, self.include_email),
            )
        except Exception:
            logger.exception("Error processing comment submission on branch %s", branch)
            await self._cleanup(branch)
            raise

        logger.info("Pull request created: %s", review.url)
        return AppendResult(
            outcome=Outcome.PENDING_REVIEW,
            record=record,
            path=path,
            commit=commit,
            branch=branch,
            review=review,
        )

    async def _cleanup(self, branch: str) -> None:
        logger.info('Attempting to clean up branch "%s" due to error.', branch)
        try:
            await self.store.delete_branch(branch)
        except Exception as exc:
            logger.error('Failed to clean up branch "%s": %s', branch, exc)
        else:
            logger.info('Cleaned up branch "%s" successfully.', branch)


def build_appender(store: ContentStore, config: Settings = settings) -> DirectAppender | ReviewAppender:
    if config.APPEND_STRATEGY == "direct":
        return DirectAppender(store, config)
    return ReviewAppender(store, config)
