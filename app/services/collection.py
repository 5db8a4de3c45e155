"""
Comment collection documents and the names derived from article slugs.

A collection is a JSON array of comment objects, one document per
article, indented for human review in pull requests.  Existing entries
are decoded as plain dicts and written back untouched, so fields this
service does not know about survive an append.
"""
import hashlib
import json
import re

from app.config import settings
from app.errors import CollectionFormatError
from app.schemas import CommentRecord

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")


def safe_name(text: str) -> str:
    """
    Return *text* restricted to letters, digits and hyphens.

    Text that already fits is returned unchanged.  Otherwise every other
    character becomes a hyphen and a short digest of the original text
    is appended, so ``a.b`` and ``a-b`` never share a branch or file.
    """
    cleaned = _UNSAFE_RE.sub("-", text)
    if cleaned == text:
        return text
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]
    return f"{cleaned}-{digest}"


def collection_path(slug: str, root: str | None = None) -> str:
    root = (root if root is not None else settings.COMMENTS_ROOT).rstrip("/")
    return f"{root}/{safe_name(slug)}.json"


def review_branch_name(slug: str, record_id: str) -> str:
    return f"comment-{safe_name(slug)}-{safe_name(record_id)}"


def decode_collection(content: bytes) -> list[dict]:
    if not content.strip():
        return []
    try:
        entries = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CollectionFormatError(f"Comments file is not valid JSON: {exc}") from exc
    if not isinstance(entries, list):
        raise CollectionFormatError("Comments file does not contain a JSON array")
    return entries


def encode_collection(entries: list[dict | CommentRecord]) -> bytes:
    serialised = [
        entry.model_dump(mode="json") if isinstance(entry, CommentRecord) else entry
        for entry in entries
    ]
    return json.dumps(serialised, indent=2, ensure_ascii=False).encode("utf-8")


def append_entry(entries: list[dict], record: CommentRecord) -> list[dict]:
    """Return a new list with *record* after every existing entry."""
    return [*entries, record.model_dump(mode="json")]
