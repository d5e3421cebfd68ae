"""In-memory mirror of the signed-in user's bookmarks.

The store keeps bookmarks ordered by ``created_at`` descending and is only
ever mutated from the dashboard event loop. Every change bumps ``version``
and notifies listeners (the server-sent event streams) with the new version.

``reconcile`` is the single merge point for remote state: both the
optimistic-create confirmation and the realtime change feed call it, so the
two paths can complete in either order and still converge.
"""

import logging

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'
DELETE = 'delete'


class BookmarkStore:

    def __init__(self, bookmarks=()):
        self._items = []
        self._listeners = []
        self.version = 0
        self.closed = False
        if bookmarks:
            self.replace_all(bookmarks)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __contains__(self, bookmark_id):
        return self.index_of(bookmark_id) is not None

    @property
    def items(self):
        return tuple(self._items)

    def index_of(self, bookmark_id):
        for index, bookmark in enumerate(self._items):
            if bookmark.id == bookmark_id:
                return index
        return None

    def get(self, bookmark_id):
        index = self.index_of(bookmark_id)
        return self._items[index] if index is not None else None

    # ------------------------------------------------------------------
    # Local mutations
    # ------------------------------------------------------------------

    def replace_all(self, bookmarks):
        if self.closed:
            return
        unique = {}
        for bookmark in bookmarks:
            unique.setdefault(bookmark.id, bookmark)
        self._items = sorted(unique.values(), key=lambda b: b.created_at, reverse=True)
        self._changed()

    def insert_head(self, bookmark):
        if self.closed:
            return
        self._items.insert(0, bookmark)
        self._changed()

    def apply_edit(self, bookmark_id, **changes):
        """Edit a record in place; returns the new record or None if absent."""
        if self.closed:
            return None
        index = self.index_of(bookmark_id)
        if index is None:
            return None
        updated = self._items[index].with_changes(**changes)
        self._items[index] = updated
        self._changed()
        return updated

    def discard(self, bookmark_id):
        if self.closed:
            return False
        index = self.index_of(bookmark_id)
        if index is None:
            return False
        del self._items[index]
        self._changed()
        return True

    def snapshot(self):
        return tuple(self._items)

    def restore(self, snapshot):
        if self.closed:
            return
        self._items = list(snapshot)
        self._changed()

    # ------------------------------------------------------------------
    # Remote reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, kind, record=None, bookmark_id=None, replaces=None):
        """Merge one remote change into the store, keyed by id.

        ``kind`` is one of ``insert``, ``update`` or ``delete``. For inserts,
        ``replaces`` names the temporary id of the optimistic placeholder the
        canonical record supersedes. Returns True when the store changed.
        """
        if self.closed:
            return False

        if kind == INSERT:
            return self._reconcile_insert(record, replaces)

        if kind == UPDATE:
            index = self.index_of(record.id)
            if index is None:
                # Stale, or for a record this store never saw
                return False
            if self._items[index] == record:
                return False
            self._items[index] = record
            self._changed()
            return True

        if kind == DELETE:
            target = bookmark_id if bookmark_id is not None else record.id
            index = self.index_of(target)
            if index is None:
                return False
            del self._items[index]
            self._changed()
            return True

        raise ValueError(f'Unknown change kind: {kind!r}')

    def _reconcile_insert(self, record, replaces):
        placeholder = self.index_of(replaces) if replaces else None

        if record.id in self:
            # The realtime echo won the race; drop the placeholder
            if placeholder is None:
                return False
            del self._items[placeholder]
            self._changed()
            return True

        if placeholder is not None:
            self._items[placeholder] = record
        else:
            self._items.insert(self._position_for(record), record)
        self._changed()
        return True

    def _position_for(self, record):
        for index, bookmark in enumerate(self._items):
            if bookmark.created_at < record.created_at:
                return index
        return len(self._items)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, listener):
        """Register ``listener(version)``; returns a callable that removes it."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def mark_changed(self):
        """Signal a change outside the list itself (banner, draft)."""
        if not self.closed:
            self._changed()

    def close(self):
        """Freeze the store; late callbacks after teardown become no-ops."""
        if self.closed:
            return
        self.closed = True
        self.version += 1
        self._notify()
        self._listeners.clear()

    def _changed(self):
        self.version += 1
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self.version)
            except Exception:
                logger.exception('Bookmark store listener failed')
