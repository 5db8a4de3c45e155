"""
Content-store interface used by the append protocol.

The store is a hosted repository seen through its content API: files
addressed by path and ref, each read returning an opaque version token
(``sha``) that must be handed back on write.  Branch and review-request
primitives complete the surface needed by the review workflow.
"""
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class StoredFile:
    content: bytes
    sha: str  # version token of the exact revision read


@dataclass(frozen=True)
class CommitRef:
    sha: str
    url: str | None = None


@dataclass(frozen=True)
class ReviewRequest:
    number: int
    url: str


@dataclass(frozen=True)
class Identity:
    name: str
    email: str


class ContentStore(Protocol):
    """Async operations every store backend provides."""

    async def get_branch_head(self, branch: str) -> str:
        """Return the commit sha at the tip of *branch*."""

    async def create_branch(self, name: str, from_sha: str) -> None:
        """Create branch *name* pointing at *from_sha*."""

    async def delete_branch(self, name: str) -> None:
        """Delete branch *name*."""

    async def read_file(self, path: str, ref: str) -> StoredFile | None:
        """Return the file at *path* on *ref*, or None when it does not exist."""

    async def write_file(
        self,
        path: str,
        content: bytes,
        *,
        sha: str | None,
        branch: str,
        message: str,
        author: Identity,
    ) -> CommitRef:
        """
        Create or replace *path* on *branch*.

        *sha* must be the version token returned by ``read_file`` (None
        when the file did not exist).  Raises ``VersionConflict`` when the
        file changed in between.
        """

    async def open_review_request(self, head: str, base: str, title: str, body: str) -> ReviewRequest:
        """Open a request to merge *head* into *base*."""
