"""The per-browser dashboard: session guard, store, mutator and listener.

A Dashboard is constructed explicitly for one browser, mounted once, and
torn down explicitly. All of its methods must run on the event loop that
mounted it.
"""

import asyncio
import logging
import time

from savora.errors import BackendError
from .models import Banner, Bookmark, Draft
from .mutator import OptimisticMutator
from .realtime import RealtimeListener
from .session import SessionGuard
from .store import BookmarkStore

logger = logging.getLogger(__name__)


class Dashboard:

    def __init__(self, backend, landing_route='/'):
        self.backend = backend
        self.store = BookmarkStore()
        self.guard = SessionGuard(
            backend,
            on_redirect=self._on_session_lost,
            on_identity_change=self._on_identity_change,
            landing_route=landing_route,
        )
        self.listener = RealtimeListener(self.store, backend)
        self.mutator = OptimisticMutator(
            self.store,
            backend,
            owner=lambda: self.guard.user_id,
            report_error=self.show_banner,
            clear_draft=self.clear_draft,
        )

        self.loading = True
        self.banner = None
        self.draft = Draft()
        self.redirect_to = None
        self.mounted = False
        self.torn_down = False
        self.last_seen = time.monotonic()
        self._tasks = set()
        self._mounting = None
        self.streams = 0

    @property
    def session(self):
        return self.guard.session

    @property
    def user_id(self):
        return self.guard.user_id

    @property
    def live(self):
        return self.mounted and not self.torn_down

    @property
    def live_sync(self):
        return self.live and self.listener.active

    def touch(self):
        self.last_seen = time.monotonic()

    def open_stream(self):
        self.streams += 1
        self.touch()

    def close_stream(self):
        self.streams = max(0, self.streams - 1)
        self.touch()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self):
        """Check the session, load bookmarks, start realtime. Returns ``live``.

        Concurrent callers share the first call's mount.
        """
        if self._mounting is None and not self.torn_down:
            self._mounting = asyncio.get_running_loop().create_task(self._mount())
        if self._mounting is not None:
            await asyncio.shield(self._mounting)
        return self.live

    async def _mount(self):
        try:
            session = await self.guard.mount()
        except BackendError:
            await self.unmount()
            raise
        if session is None or self.torn_down or self.redirect_to:
            await self.unmount()
            return

        self.mounted = True
        await self._load(session)

    async def unmount(self):
        if self.torn_down:
            return
        self.torn_down = True
        self.guard.unmount()
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        try:
            await self.listener.stop()
        except BackendError as e:
            logger.warning('Realtime unsubscribe failed during teardown: %s', e)
        self.store.close()
        logger.info('Dashboard for %s torn down', self.user_id or 'anonymous')

    async def sign_out(self):
        try:
            await self.backend.sign_out()
        finally:
            await self.unmount()

    async def _load(self, session):
        try:
            rows = await self.backend.fetch_bookmarks()
        except BackendError as e:
            logger.warning('Initial bookmark fetch failed: %s', e)
            self.show_banner(Banner(
                kind='error',
                message='Could not load your bookmarks. Please refresh to try again.',
                retryable=True,
            ))
            rows = []

        bookmarks = []
        for row in rows:
            try:
                bookmarks.append(Bookmark.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning('Skipping malformed bookmark row: %s', e)
        self.store.replace_all(bookmarks)

        try:
            await self.listener.start(session.user_id)
        except BackendError as e:
            logger.warning('Realtime subscription failed: %s', e)
        self.loading = False

    # ------------------------------------------------------------------
    # Session callbacks
    # ------------------------------------------------------------------

    def _on_session_lost(self, route):
        self.redirect_to = route
        if self.mounted:
            self._spawn(self.unmount())

    def _on_identity_change(self, session):
        self._spawn(self._switch_identity(session))

    async def _switch_identity(self, session):
        if self.torn_down:
            return
        self.loading = True
        try:
            await self.listener.stop()
        except BackendError as e:
            logger.warning('Realtime unsubscribe failed while switching users: %s', e)
        self.store.replace_all([])
        await self._load(session)

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def create(self, title, url):
        self.touch()
        return await self.mutator.create(title, url)

    async def update(self, bookmark_id, title=None, url=None):
        self.touch()
        return await self.mutator.update(bookmark_id, title=title, url=url)

    async def delete(self, bookmark_id):
        self.touch()
        await self.mutator.delete(bookmark_id)

    def show_banner(self, banner):
        self.banner = banner
        self.store.mark_changed()

    def dismiss_banner(self):
        self.banner = None
        self.store.mark_changed()

    def set_draft(self, title='', url=''):
        self.draft = Draft(title=title or '', url=url or '')

    def clear_draft(self):
        self.draft = Draft()
