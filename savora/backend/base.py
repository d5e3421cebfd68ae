from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_EVENT_TYPES = {'INSERT': 'insert', 'UPDATE': 'update', 'DELETE': 'delete'}


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str = ''
    access_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ChangeEvent:
    """One row-level notification from the bookmarks change feed."""

    type: str
    new: dict = field(default_factory=dict)
    old: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload) -> ChangeEvent:
        """Normalize a change-feed message.

        Accepts the JS-style ``{eventType, new, old}`` shape as well as the
        ``{data: {type, record, old_record}}`` envelope the Python realtime
        client delivers. Raises ValueError for anything else.
        """
        if not isinstance(payload, dict):
            raise ValueError(f'Unexpected change payload: {payload!r}')
        body = payload.get('data') if isinstance(payload.get('data'), dict) else payload

        raw_type = body.get('eventType') or body.get('type')
        event_type = _EVENT_TYPES.get(str(raw_type).upper())
        if event_type is None:
            raise ValueError(f'Unknown change type: {raw_type!r}')

        new = body.get('new', body.get('record')) or {}
        old = body.get('old', body.get('old_record')) or {}
        return cls(type=event_type, new=dict(new), old=dict(old))


class Backend:
    """Async interface to the managed backend.

    Row access is owner-scoped server-side; nothing here re-checks it.
    """

    # Auth

    async def get_session(self):
        """Return the current Session or None."""
        raise NotImplementedError

    def on_auth_state_change(self, callback):
        """Call ``callback(session_or_none)`` on auth changes.

        Returns a plain callable that unsubscribes.
        """
        raise NotImplementedError

    async def sign_in_with_oauth(self, provider, redirect_to):
        """Start an OAuth sign-in and return the provider url."""
        raise NotImplementedError

    async def exchange_code_for_session(self, code):
        raise NotImplementedError

    async def sign_out(self):
        raise NotImplementedError

    # Bookmarks table

    async def fetch_bookmarks(self):
        """Return all rows, newest first."""
        raise NotImplementedError

    async def insert_bookmark(self, values):
        """Insert a row and return it as stored."""
        raise NotImplementedError

    async def update_bookmark(self, bookmark_id, values):
        """Update a row by id; returns the stored row when the backend echoes it."""
        raise NotImplementedError

    async def delete_bookmark(self, bookmark_id):
        raise NotImplementedError

    # Change feed

    async def subscribe_changes(self, owner, callback):
        """Deliver ``callback(payload)`` for every change to ``owner``'s rows.

        Returns a coroutine function that tears the subscription down.
        """
        raise NotImplementedError

    async def close(self):
        pass
