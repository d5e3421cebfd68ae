"""Per-browser backends and dashboards.

Each browser (identified by a random id kept in the Flask session cookie)
owns one backend client for its whole visit and at most one mounted
Dashboard. Dashboards are torn down explicitly on sign-out or session loss,
and unmounted after ``DASHBOARD_IDLE_TIMEOUT`` seconds without a request or
an open event stream. Reaping keeps the backend, so the session survives and
the next request mounts a fresh dashboard.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

from .dashboard import Dashboard

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    backend: object
    dashboard: Dashboard | None = None
    last_seen: float = field(default_factory=time.monotonic)


class DashboardRegistry:

    def __init__(self, runtime, backend_factory, config):
        """
        ``backend_factory(config)`` is a coroutine function returning a new
        Backend; it runs on the runtime loop.
        """
        self.runtime = runtime
        self.backend_factory = backend_factory
        self.config = config
        self.timeout = config.get('BACKEND_TIMEOUT', 15)
        self.idle_timeout = config.get('DASHBOARD_IDLE_TIMEOUT', 1800)
        self.landing_route = config.get('LANDING_ROUTE', '/')
        self._entries = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._entries)

    def run(self, coro):
        return self.runtime.run(coro, timeout=self.timeout)

    def call(self, fn, *args):
        return self.runtime.call(fn, *args, timeout=self.timeout)

    def backend_for(self, browser_id):
        self.reap_idle()
        with self._lock:
            entry = self._entries.get(browser_id)
        if entry is None:
            backend = self.run(self.backend_factory(self.config))
            with self._lock:
                entry = self._entries.setdefault(browser_id, _Entry(backend=backend))
        entry.last_seen = time.monotonic()
        return entry.backend

    def has_session(self, browser_id):
        with self._lock:
            entry = self._entries.get(browser_id)
        if entry is None:
            return False
        if entry.dashboard is not None and entry.dashboard.live:
            return True
        return self.run(entry.backend.get_session()) is not None

    def dashboard_for(self, browser_id):
        """Return the browser's live Dashboard, mounting one if needed.

        Returns None when the browser has no session.
        """
        backend = self.backend_for(browser_id)
        with self._lock:
            entry = self._entries[browser_id]
            dashboard = entry.dashboard
            if dashboard is None or dashboard.torn_down:
                dashboard = Dashboard(backend, landing_route=self.landing_route)
                entry.dashboard = dashboard

        if not self.run(dashboard.mount()):
            with self._lock:
                if entry.dashboard is dashboard:
                    entry.dashboard = None
            return None
        dashboard.touch()
        return dashboard

    def sign_out(self, browser_id):
        with self._lock:
            entry = self._entries.get(browser_id)
        if entry is None:
            return
        if entry.dashboard is not None:
            self.run(entry.dashboard.sign_out())
            entry.dashboard = None
        else:
            self.run(entry.backend.sign_out())

    def reap_idle(self, now=None):
        now = now if now is not None else time.monotonic()
        idle = []
        with self._lock:
            for entry in self._entries.values():
                dashboard = entry.dashboard
                if dashboard is None or dashboard.streams:
                    continue
                if now - max(entry.last_seen, dashboard.last_seen) > self.idle_timeout:
                    entry.dashboard = None
                    idle.append(dashboard)
        for dashboard in idle:
            logger.info('Reaping idle dashboard for %s', dashboard.user_id or 'anonymous')
            if self.runtime.running:
                self.run(dashboard.unmount())
        return len(idle)

    def shutdown(self):
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            self._teardown(entry)

    def _teardown(self, entry):
        async def teardown():
            if entry.dashboard is not None:
                await entry.dashboard.unmount()
            await entry.backend.close()

        if self.runtime.running:
            self.run(teardown())
