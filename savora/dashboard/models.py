from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from urllib.parse import urlparse

from savora.errors import ValidationError

TEMP_ID_PREFIX = 'temp-'


def new_temporary_id() -> str:
    # Server ids are bare UUIDs, so the prefix keeps the two spaces disjoint
    return TEMP_ID_PREFIX + uuid.uuid4().hex


def is_temporary_id(bookmark_id) -> bool:
    return isinstance(bookmark_id, str) and bookmark_id.startswith(TEMP_ID_PREFIX)


def parse_timestamp(value) -> datetime:
    """Parse a backend timestamp into an aware datetime (UTC if naive)."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_fields(title, url):
    """Return the cleaned (title, url) pair or raise ValidationError."""
    title = (title or '').strip()
    url = (url or '').strip()
    if not title:
        raise ValidationError('title is required')
    if not url:
        raise ValidationError('url is required')
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError('url must be an absolute http(s) URL')
    return title, url


@dataclass(frozen=True)
class Bookmark:
    id: str
    title: str
    url: str
    created_at: datetime
    owner: str

    @property
    def is_temporary(self) -> bool:
        return is_temporary_id(self.id)

    @classmethod
    def from_row(cls, row: dict) -> Bookmark:
        """Build a Bookmark from a ``bookmarks`` table row."""
        return cls(
            id=str(row['id']),
            title=row.get('title') or '',
            url=row.get('url') or '',
            created_at=parse_timestamp(row['created_at']),
            owner=str(row.get('user_id') or ''),
        )

    @classmethod
    def placeholder(cls, title, url, owner, now=None) -> Bookmark:
        """Speculative record shown until the backend confirms the insert."""
        return cls(
            id=new_temporary_id(),
            title=title,
            url=url,
            created_at=now or datetime.now(timezone.utc),
            owner=owner,
        )

    def with_changes(self, **changes) -> Bookmark:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'created_at': self.created_at.isoformat(),
            'user_id': self.owner,
            'pending': self.is_temporary,
        }


@dataclass(frozen=True)
class Banner:
    """Dismissable message shown above the dashboard or landing page."""

    kind: str
    message: str
    retryable: bool = False

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'message': self.message, 'retryable': self.retryable}


@dataclass(frozen=True)
class Draft:
    title: str = ''
    url: str = ''

    def to_dict(self) -> dict:
        return {'title': self.title, 'url': self.url}
