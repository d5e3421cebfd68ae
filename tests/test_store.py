from datetime import datetime, timedelta, timezone

import pytest

from savora.dashboard.models import Bookmark
from savora.dashboard.store import DELETE, INSERT, UPDATE, BookmarkStore
from tests.fakes import TEST_USER_ID

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _bookmark(bookmark_id, minutes=0, title='Title', url='https://example.com'):
    return Bookmark(
        id=bookmark_id,
        title=title,
        url=url,
        created_at=T0 + timedelta(minutes=minutes),
        owner=TEST_USER_ID,
    )


def _ids(store):
    return [b.id for b in store]


class TestReplaceAll:

    def test_orders_newest_first(self):
        store = BookmarkStore([_bookmark('a', 0), _bookmark('c', 2), _bookmark('b', 1)])
        assert _ids(store) == ['c', 'b', 'a']

    def test_drops_duplicate_ids(self):
        store = BookmarkStore([_bookmark('a', 0), _bookmark('a', 5)])
        assert len(store) == 1


class TestReconcileInsert:

    def test_new_record_goes_to_head(self):
        store = BookmarkStore([_bookmark('a', 0)])
        assert store.reconcile(INSERT, _bookmark('b', 1)) is True
        assert _ids(store) == ['b', 'a']

    def test_known_id_is_not_duplicated(self):
        store = BookmarkStore([_bookmark('a', 0)])
        assert store.reconcile(INSERT, _bookmark('a', 0)) is False
        assert _ids(store) == ['a']

    def test_older_record_keeps_ordering(self):
        store = BookmarkStore([_bookmark('c', 2), _bookmark('a', 0)])
        store.reconcile(INSERT, _bookmark('b', 1))
        assert _ids(store) == ['c', 'b', 'a']

    def test_canonical_replaces_placeholder_in_place(self):
        store = BookmarkStore([_bookmark('a', 0)])
        placeholder = Bookmark.placeholder('New', 'https://new.example', TEST_USER_ID, now=T0)
        store.insert_head(placeholder)
        store.insert_head(_bookmark('z', 10))

        store.reconcile(INSERT, _bookmark('server-id', 1, title='New'), replaces=placeholder.id)

        assert _ids(store) == ['z', 'server-id', 'a']

    def test_echo_first_then_confirmation_converges(self):
        store = BookmarkStore()
        placeholder = Bookmark.placeholder('New', 'https://new.example', TEST_USER_ID, now=T0)
        store.insert_head(placeholder)
        canonical = _bookmark('server-id', 0, title='New')

        # Realtime echo lands first: a brief duplicate is tolerated
        store.reconcile(INSERT, canonical)
        assert len(store) == 2

        store.reconcile(INSERT, canonical, replaces=placeholder.id)
        assert _ids(store) == ['server-id']

    def test_confirmation_first_then_echo_converges(self):
        store = BookmarkStore()
        placeholder = Bookmark.placeholder('New', 'https://new.example', TEST_USER_ID, now=T0)
        store.insert_head(placeholder)
        canonical = _bookmark('server-id', 0, title='New')

        store.reconcile(INSERT, canonical, replaces=placeholder.id)
        assert store.reconcile(INSERT, canonical) is False
        assert _ids(store) == ['server-id']

    def test_confirmation_after_placeholder_lost_still_inserts(self):
        store = BookmarkStore([_bookmark('a', 0)])
        store.reconcile(INSERT, _bookmark('server-id', 1), replaces='temp-gone')
        assert _ids(store) == ['server-id', 'a']


class TestReconcileUpdateAndDelete:

    def test_update_replaces_in_place(self):
        store = BookmarkStore([_bookmark('b', 1), _bookmark('a', 0)])
        store.reconcile(UPDATE, _bookmark('a', 0, title='Renamed'))
        assert store.get('a').title == 'Renamed'
        assert _ids(store) == ['b', 'a']

    def test_update_for_unknown_id_is_ignored(self):
        store = BookmarkStore([_bookmark('a', 0)])
        assert store.reconcile(UPDATE, _bookmark('ghost', 0)) is False
        assert _ids(store) == ['a']

    def test_delete_removes_by_id(self):
        store = BookmarkStore([_bookmark('b', 1), _bookmark('a', 0)])
        assert store.reconcile(DELETE, bookmark_id='a') is True
        assert _ids(store) == ['b']

    def test_delete_for_unknown_id_is_noop(self):
        store = BookmarkStore([_bookmark('a', 0)])
        version = store.version
        assert store.reconcile(DELETE, bookmark_id='ghost') is False
        assert store.version == version

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            BookmarkStore().reconcile('upsert', _bookmark('a'))


class TestSnapshotAndListeners:

    def test_restore_brings_back_whole_list(self):
        store = BookmarkStore([_bookmark('b', 1), _bookmark('a', 0)])
        snapshot = store.snapshot()
        store.discard('a')
        store.apply_edit('b', title='Changed')
        store.restore(snapshot)
        assert _ids(store) == ['b', 'a']
        assert store.get('b').title == 'Title'

    def test_listeners_receive_versions(self):
        store = BookmarkStore()
        seen = []
        remove = store.add_listener(seen.append)
        store.insert_head(_bookmark('a'))
        remove()
        store.insert_head(_bookmark('b', 1))
        assert seen == [1]

    def test_failing_listener_does_not_break_store(self):
        store = BookmarkStore()

        def broken(_version):
            raise RuntimeError('boom')

        store.add_listener(broken)
        store.insert_head(_bookmark('a'))
        assert _ids(store) == ['a']

    def test_closed_store_ignores_late_changes(self):
        store = BookmarkStore([_bookmark('a', 0)])
        store.close()
        assert store.reconcile(INSERT, _bookmark('b', 1)) is False
        store.insert_head(_bookmark('c', 2))
        store.restore(())
        assert _ids(store) == ['a']
