"""
GitHub implementation of the content store.

Uses the REST API through an injected ``httpx.AsyncClient`` so that the
connection pool is owned by the application lifespan and tests can
substitute an ``httpx.MockTransport``.  No retry or rate-limit backoff
is done here; every call is a single round trip.
"""
import base64
import logging
from urllib.parse import quote

import httpx

from app.errors import StoreError, VersionConflict
from app.middleware import increment_store_calls
from app.store.base import CommitRef, Identity, ReviewRequest, StoredFile

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


def github_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": API_VERSION,
    }


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message") or response.text
    except ValueError:
        return response.text


class GitHubContentStore:
    """Content store backed by one GitHub repository."""

    def __init__(self, client: httpx.AsyncClient, owner: str, repo: str) -> None:
        self._client = client
        self._base = f"/repos/{owner}/{repo}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        increment_store_calls()
        try:
            return await self._client.request(method, f"{self._base}{url}", **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"GitHub request failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        message = _error_message(response)
        logger.error("GitHub API error %s: %s", response.status_code, message)
        raise StoreError(message, status_code=response.status_code)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def get_branch_head(self, branch: str) -> str:
        response = await self._request("GET", f"/git/ref/heads/{quote(branch)}")
        self._raise_for_status(response)
        return response.json()["object"]["sha"]

    async def create_branch(self, name: str, from_sha: str) -> None:
        response = await self._request(
            "POST", "/git/refs", json={"ref": f"refs/heads/{name}", "sha": from_sha}
        )
        self._raise_for_status(response)

    async def delete_branch(self, name: str) -> None:
        response = await self._request("DELETE", f"/git/refs/heads/{quote(name)}")
        self._raise_for_status(response)

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def read_file(self, path: str, ref: str) -> StoredFile | None:
        response = await self._request("GET", f"/contents/{quote(path)}", params={"ref": ref})
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        data = response.json()
        if isinstance(data, list):
            raise StoreError(f"{path} is a directory")
        if data.get("encoding") == "none" or (not data.get("content") and data.get("size", 0) > 0):
            # files over 1 MB come back without content; the blob API still serves them
            content = await self._read_blob(data["sha"])
        else:
            content = base64.b64decode(data.get("content") or "")
        return StoredFile(content=content, sha=data["sha"])

    async def _read_blob(self, sha: str) -> bytes:
        response = await self._request("GET", f"/git/blobs/{sha}")
        self._raise_for_status(response)
        data = response.json()
        if data.get("encoding") != "base64":
            raise StoreError(f"Blob {sha} has unsupported encoding {data.get('encoding')!r}")
        return base64.b64decode(data.get("content") or "")

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
        identity = {"name": author.name, "email": author.email}
        body = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
            "committer": identity,
            "author": identity,
        }
        if sha is not None:
            body["sha"] = sha

        response = await self._request("PUT", f"/contents/{quote(path)}", json=body)
        # 409: sha no longer matches; 422: file appeared although no sha was sent
        if response.status_code == 409 or (
            response.status_code == 422 and "sha" in _error_message(response)
        ):
            raise VersionConflict(
                f"{path} on {branch} changed since it was read", status_code=response.status_code
            )
        self._raise_for_status(response)
        commit = response.json()["commit"]
        return CommitRef(sha=commit["sha"], url=commit.get("html_url"))

    # ------------------------------------------------------------------
    # Review requests
    # ------------------------------------------------------------------

    async def open_review_request(self, head: str, base: str, title: str, body: str) -> ReviewRequest:
        response = await self._request(
            "POST", "/pulls", json={"title": title, "head": head, "base": base, "body": body}
        )
        self._raise_for_status(response)
        data = response.json()
        return ReviewRequest(number=data["number"], url=data["html_url"])
