import logging

logger = logging.getLogger(__name__)


class SessionGuard:
    """Keeps the dashboard behind a live session.

    ``on_redirect(route)`` fires when there is no session at mount time or
    when the backend later reports the session gone. ``on_identity_change``
    fires when a different user signs in underneath the page.
    """

    def __init__(self, backend, on_redirect, on_identity_change=None, landing_route='/'):
        self.backend = backend
        self.landing_route = landing_route
        self.session = None
        self.mounted = False
        self._on_redirect = on_redirect
        self._on_identity_change = on_identity_change
        self._unsubscribe = None

    @property
    def user_id(self):
        return self.session.user_id if self.session else None

    async def mount(self):
        if self._unsubscribe is not None:
            return self.session
        self.mounted = True
        self._unsubscribe = self.backend.on_auth_state_change(self._handle_auth_change)

        session = await self.backend.get_session()
        if not self.mounted:
            return None
        if session is None:
            self._redirect('no active session')
            return None

        if self.session is None:
            self.session = session
        return self.session

    def unmount(self):
        self.mounted = False
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _handle_auth_change(self, session):
        if not self.mounted:
            return
        if session is None:
            self.session = None
            self._redirect('session ended')
            return

        previous = self.session
        self.session = session
        if previous is not None and previous.user_id != session.user_id:
            logger.info('Signed-in user changed from %s to %s', previous.user_id, session.user_id)
            if self._on_identity_change:
                self._on_identity_change(session)

    def _redirect(self, reason):
        logger.info('Redirecting to %s: %s', self.landing_route, reason)
        self._on_redirect(self.landing_route)
