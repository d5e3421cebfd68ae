import asyncio

from savora.backend import Session
from savora.dashboard import Dashboard
from savora.dashboard.session import SessionGuard
from tests.fakes import (
    OTHER_USER_ID,
    FakeBackend,
    make_row,
    rows_oldest_first,
    run,
    signed_in_backend,
)


class TestSessionGuard:

    def test_no_session_redirects_to_landing(self):
        async def scenario():
            redirects = []
            guard = SessionGuard(FakeBackend(), on_redirect=redirects.append)
            assert await guard.mount() is None
            assert redirects == ['/']

        run(scenario())

    def test_session_invalidation_redirects_immediately(self):
        async def scenario():
            redirects = []
            backend = signed_in_backend()
            guard = SessionGuard(backend, on_redirect=redirects.append)
            session = await guard.mount()
            assert session.email == 'test@example.com'

            backend.set_session(None)
            assert redirects == ['/']

        run(scenario())

    def test_unmount_unsubscribes(self):
        async def scenario():
            redirects = []
            backend = signed_in_backend()
            guard = SessionGuard(backend, on_redirect=redirects.append)
            await guard.mount()
            guard.unmount()

            assert backend.auth_callbacks == []
            backend.set_session(None)
            assert redirects == []

        run(scenario())

    def test_second_mount_keeps_single_subscription(self):
        async def scenario():
            backend = signed_in_backend()
            guard = SessionGuard(backend, on_redirect=lambda route: None)
            first = await guard.mount()
            assert await guard.mount() is first
            assert len(backend.auth_callbacks) == 1

            guard.unmount()
            assert backend.auth_callbacks == []

        run(scenario())

    def test_identity_change_is_reported(self):
        async def scenario():
            changes = []
            backend = signed_in_backend()
            guard = SessionGuard(backend, on_redirect=lambda route: None,
                                 on_identity_change=changes.append)
            await guard.mount()
            other = Session(user_id=OTHER_USER_ID, email='other@example.com')
            backend.set_session(other)
            assert changes == [other]

        run(scenario())

    def test_token_refresh_for_same_user_is_quiet(self):
        async def scenario():
            changes = []
            backend = signed_in_backend()
            guard = SessionGuard(backend, on_redirect=lambda route: None,
                                 on_identity_change=changes.append)
            session = await guard.mount()
            backend.set_session(Session(user_id=session.user_id, email=session.email,
                                        access_token='refreshed'))
            assert changes == []

        run(scenario())


class TestDashboardLifecycle:

    def test_mount_loads_bookmarks_and_subscribes(self):
        async def scenario():
            backend = signed_in_backend(rows_oldest_first(
                ('A', 'https://a.example'), ('B', 'https://b.example'),
            ))
            dashboard = Dashboard(backend)
            assert await dashboard.mount()
            assert [b.title for b in dashboard.store] == ['B', 'A']
            assert not dashboard.loading
            assert dashboard.live_sync
            assert len(backend.subscriptions) == 1

        run(scenario())

    def test_mount_without_session_tears_down(self):
        async def scenario():
            backend = FakeBackend()
            dashboard = Dashboard(backend)
            assert await dashboard.mount() is False
            assert dashboard.redirect_to == '/'
            assert dashboard.torn_down
            assert 'select' not in backend.calls

        run(scenario())

    def test_failed_initial_fetch_shows_banner(self):
        async def scenario():
            backend = signed_in_backend()
            backend.fail.add('select')
            dashboard = Dashboard(backend)
            assert await dashboard.mount()
            assert len(dashboard.store) == 0
            assert dashboard.banner.retryable

        run(scenario())

    def test_unmount_releases_everything(self):
        async def scenario():
            backend = signed_in_backend()
            dashboard = Dashboard(backend)
            await dashboard.mount()
            await dashboard.unmount()
            await dashboard.unmount()

            assert backend.subscriptions == {}
            assert backend.auth_callbacks == []
            assert dashboard.store.closed
            assert not dashboard.live

        run(scenario())

    def test_overlapping_mounts_share_one_subscription(self):
        async def scenario():
            backend = signed_in_backend(rows_oldest_first(('A', 'https://a.example')))
            dashboard = Dashboard(backend)
            backend.hold = asyncio.Event()

            first = asyncio.create_task(dashboard.mount())
            second = asyncio.create_task(dashboard.mount())
            await asyncio.sleep(0)
            backend.hold.set()

            assert await asyncio.gather(first, second) == [True, True]
            assert len(backend.auth_callbacks) == 1
            assert len(backend.subscriptions) == 1
            assert backend.calls.count('get_session') == 1

            await dashboard.unmount()
            assert backend.auth_callbacks == []
            assert backend.subscriptions == {}

        run(scenario())

    def test_teardown_during_initial_load_leaves_no_subscription(self):
        async def scenario():
            backend = signed_in_backend()
            dashboard = Dashboard(backend)
            backend.hold = asyncio.Event()

            mounting = asyncio.create_task(dashboard.mount())
            while 'get_session' not in backend.calls:
                await asyncio.sleep(0)
            released, backend.hold = backend.hold, asyncio.Event()
            released.set()
            while 'select' not in backend.calls:
                await asyncio.sleep(0)

            await dashboard.unmount()
            backend.hold.set()

            assert await mounting is False
            assert backend.subscriptions == {}
            assert backend.auth_callbacks == []

        run(scenario())

    def test_late_completion_after_unmount_is_discarded(self):
        async def scenario():
            backend = signed_in_backend()
            dashboard = Dashboard(backend)
            await dashboard.mount()
            backend.hold = asyncio.Event()

            task = asyncio.create_task(dashboard.create('Late', 'https://late.example'))
            await asyncio.sleep(0)
            backend.hold.set()
            await dashboard.unmount()
            await task

            assert len(dashboard.store) == 1
            assert dashboard.store.items[0].is_temporary

        run(scenario())

    def test_session_loss_tears_dashboard_down(self):
        async def scenario():
            backend = signed_in_backend()
            dashboard = Dashboard(backend)
            await dashboard.mount()

            backend.set_session(None)
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            assert dashboard.redirect_to == '/'
            assert dashboard.torn_down
            assert backend.subscriptions == {}

        run(scenario())

    def test_identity_change_refetches_and_resubscribes(self):
        async def scenario():
            backend = signed_in_backend(rows_oldest_first(('Mine', 'https://mine.example')))
            dashboard = Dashboard(backend)
            await dashboard.mount()

            backend.rows = [make_row('Theirs', 'https://theirs.example', owner=OTHER_USER_ID)]
            backend.set_session(Session(user_id=OTHER_USER_ID, email='other@example.com'))
            await asyncio.gather(*dashboard._tasks)

            assert [b.title for b in dashboard.store] == ['Theirs']
            assert [owner for owner, _ in backend.subscriptions.values()] == [OTHER_USER_ID]

        run(scenario())

    def test_sign_out_tears_down(self):
        async def scenario():
            backend = signed_in_backend()
            dashboard = Dashboard(backend)
            await dashboard.mount()
            await dashboard.sign_out()
            assert backend.session is None
            assert dashboard.torn_down

        run(scenario())
