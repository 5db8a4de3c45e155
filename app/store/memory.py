"""
In-memory content store.

Behaves like the hosted repository for the operations the append
protocol uses: branches point at immutable snapshots, every file has a
content-derived version token, and writes with a stale token are
refused.  Used for local development (``STORE_BACKEND=memory``) and as
the store in the test-suite.
"""
import hashlib
import logging

from app.errors import StoreError, VersionConflict
from app.middleware import increment_store_calls
from app.store.base import CommitRef, Identity, ReviewRequest, StoredFile

logger = logging.getLogger(__name__)


def _digest(*parts: bytes) -> str:
    h = hashlib.sha1()
    for part in parts:
        h.update(part)
    return h.hexdigest()


class InMemoryContentStore:
    def __init__(self, default_branch: str = "main") -> None:
        root = _digest(b"root")
        self._snapshots: dict[str, dict[str, bytes]] = {root: {}}
        self._branches: dict[str, str] = {default_branch: root}
        self.pulls: list[dict] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, ref: str) -> str:
        if ref in self._branches:
            return self._branches[ref]
        if ref in self._snapshots:
            return ref
        raise StoreError(f"No commit found for the ref {ref}", status_code=404)

    @property
    def branches(self) -> list[str]:
        return sorted(self._branches)

    def files(self, ref: str) -> dict[str, bytes]:
        """Return a copy of every file visible on *ref*."""
        return dict(self._snapshots[self._resolve(ref)])

    def seed(self, path: str, content: bytes, branch: str = "main") -> None:
        """Commit *content* at *path* without counting as a store call."""
        self._commit(branch, path, content)

    def _commit(self, branch: str, path: str, content: bytes) -> str:
        parent = self._resolve(branch)
        files = dict(self._snapshots[parent])
        files[path] = content
        commit_sha = _digest(parent.encode(), path.encode(), content)
        self._snapshots[commit_sha] = files
        self._branches[branch] = commit_sha
        return commit_sha

    # ------------------------------------------------------------------
    # ContentStore
    # ------------------------------------------------------------------

    async def get_branch_head(self, branch: str) -> str:
        increment_store_calls()
        if branch not in self._branches:
            raise StoreError(f"Branch {branch} not found", status_code=404)
        return self._branches[branch]

    async def create_branch(self, name: str, from_sha: str) -> None:
        increment_store_calls()
        if name in self._branches:
            raise StoreError("Reference already exists", status_code=422)
        self._branches[name] = self._resolve(from_sha)

    async def delete_branch(self, name: str) -> None:
        increment_store_calls()
        if self._branches.pop(name, None) is None:
            raise StoreError("Reference does not exist", status_code=422)

    async def read_file(self, path: str, ref: str) -> StoredFile | None:
        increment_store_calls()
        content = self._snapshots[self._resolve(ref)].get(path)
        if content is None:
            return None
        return StoredFile(content=content, sha=_digest(content))

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
        increment_store_calls()
        if branch not in self._branches:
            raise StoreError(f"Branch {branch} not found", status_code=404)
        current = self._snapshots[self._branches[branch]].get(path)
        current_sha = _digest(current) if current is not None else None
        if sha != current_sha:
            raise VersionConflict(f"{path} on {branch} changed since it was read", status_code=409)
        commit_sha = self._commit(branch, path, content)
        logger.debug("%s <%s> committed %s: %s", author.name, author.email, commit_sha, message)
        return CommitRef(sha=commit_sha)

    async def open_review_request(self, head: str, base: str, title: str, body: str) -> ReviewRequest:
        increment_store_calls()
        for branch in (head, base):
            if branch not in self._branches:
                raise StoreError(f"Branch {branch} not found", status_code=422)
        number = len(self.pulls) + 1
        self.pulls.append({"number": number, "head": head, "base": base, "title": title, "body": body})
        return ReviewRequest(number=number, url=f"memory://pulls/{number}")
