"""Optimistic create, update and delete.

Every operation applies its local change before the first ``await`` so the
store reflects the user's intent immediately. Creates are undone by purging
the placeholder; updates and deletes by restoring the whole list as it was
before the call. Restoring can overwrite other local edits made while
the request was in flight. Rows that arrived meanwhile are kept, and
placeholders whose create has since settled are dropped.

A result that arrives after the signed-in user changed is dropped: the store
already belongs to the new user.
"""

import logging

from savora.errors import (
    BackendError,
    BookmarkNotFound,
    MutationError,
    PendingBookmarkError,
)
from .models import Banner, Bookmark, validate_fields
from .store import INSERT, UPDATE

logger = logging.getLogger(__name__)


class OptimisticMutator:

    def __init__(self, store, backend, owner, report_error, clear_draft=None):
        """
        ``owner`` returns the signed-in user id, ``report_error`` receives a
        Banner on failure, ``clear_draft`` empties the add form.
        """
        self.store = store
        self.backend = backend
        self._owner = owner
        self._report_error = report_error
        self._clear_draft = clear_draft

    async def create(self, title, url):
        title, url = validate_fields(title, url)
        owner = self._owner()
        placeholder = Bookmark.placeholder(title, url, owner)
        self.store.insert_head(placeholder)
        if self._clear_draft:
            self._clear_draft()

        try:
            row = await self.backend.insert_bookmark({
                'title': title,
                'url': url,
                'user_id': owner,
            })
            canonical = Bookmark.from_row(row)
        except (BackendError, KeyError, ValueError) as e:
            logger.warning('Create failed, removing placeholder %s: %s', placeholder.id, e)
            self.store.discard(placeholder.id)
            raise self._fail('create', 'Could not save the bookmark. Please try again.', e, owner)

        if self._owner() != owner:
            logger.info('Signed-in user changed while saving %s, not merging it', canonical.id)
            return canonical
        self.store.reconcile(INSERT, canonical, replaces=placeholder.id)
        return canonical

    async def update(self, bookmark_id, title=None, url=None):
        current = self._require(bookmark_id)
        owner = self._owner()
        title, url = validate_fields(
            current.title if title is None else title,
            current.url if url is None else url,
        )
        snapshot = self.store.snapshot()
        edited = self.store.apply_edit(bookmark_id, title=title, url=url)

        try:
            row = await self.backend.update_bookmark(bookmark_id, {'title': title, 'url': url})
        except BackendError as e:
            logger.warning('Update of %s failed, restoring snapshot: %s', bookmark_id, e)
            self._rollback(snapshot, owner)
            raise self._fail('update', 'Could not update the bookmark. Your change was undone.', e, owner)

        if row and self._owner() == owner:
            try:
                edited = Bookmark.from_row(row)
            except (KeyError, ValueError):
                logger.warning('Ignoring malformed update echo for %s', bookmark_id)
            else:
                self.store.reconcile(UPDATE, edited)
        return edited

    async def delete(self, bookmark_id):
        self._require(bookmark_id)
        owner = self._owner()
        snapshot = self.store.snapshot()
        self.store.discard(bookmark_id)

        try:
            await self.backend.delete_bookmark(bookmark_id)
        except BackendError as e:
            logger.warning('Delete of %s failed, restoring snapshot: %s', bookmark_id, e)
            self._rollback(snapshot, owner)
            raise self._fail('delete', 'Could not delete the bookmark. It has been restored.', e, owner)

    def _require(self, bookmark_id):
        bookmark = self.store.get(bookmark_id)
        if bookmark is None:
            raise BookmarkNotFound(bookmark_id)
        if bookmark.is_temporary:
            raise PendingBookmarkError(bookmark_id)
        return bookmark

    def _rollback(self, snapshot, owner):
        if self._owner() != owner:
            return
        pending = {b.id for b in self.store if b.is_temporary}
        known = {b.id for b in snapshot}
        restored = [b for b in snapshot if not b.is_temporary or b.id in pending]
        restored.extend(b for b in self.store if b.id not in known)
        restored.sort(key=lambda b: b.created_at, reverse=True)
        self.store.restore(restored)

    def _fail(self, operation, message, cause, owner):
        error = MutationError(operation, message, retryable=True, cause=cause)
        if not self.store.closed and self._owner() == owner:
            self._report_error(Banner(kind='error', message=message, retryable=True))
        return error
