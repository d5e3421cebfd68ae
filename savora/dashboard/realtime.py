import logging

from savora.backend import ChangeEvent
from .models import Bookmark
from .store import DELETE

logger = logging.getLogger(__name__)


class RealtimeListener:
    """Feeds the owner's change stream into the store.

    At most one subscription is open at a time. Events that arrive after
    ``stop()`` or for a different owner are dropped.
    """

    def __init__(self, store, backend):
        self.store = store
        self.backend = backend
        self.owner = None
        self._unsubscribe = None

    @property
    def active(self):
        return self._unsubscribe is not None

    async def start(self, owner):
        if self.active and self.owner == owner:
            return
        if self.active:
            await self.stop()
        self._unsubscribe = await self.backend.subscribe_changes(owner, self.handle)
        self.owner = owner
        if self.store.closed:
            await self.stop()
            return
        logger.debug('Subscribed to bookmark changes for %s', owner)

    async def stop(self):
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        owner, self.owner = self.owner, None
        if unsubscribe is not None:
            await unsubscribe()
            logger.debug('Unsubscribed from bookmark changes for %s', owner)

    async def restart(self, owner):
        await self.stop()
        await self.start(owner)

    def handle(self, payload):
        """Apply one change-feed payload; returns True when the store changed."""
        if not self.active or self.store.closed:
            return False

        try:
            event = ChangeEvent.from_payload(payload)
            if event.type == DELETE:
                bookmark_id = event.old.get('id')
                if bookmark_id is None:
                    raise ValueError('delete event without an id')
                return self.store.reconcile(DELETE, bookmark_id=str(bookmark_id))
            record = Bookmark.from_row(event.new)
        except (KeyError, ValueError) as e:
            logger.warning('Dropping malformed change payload: %s', e)
            return False

        if record.owner and record.owner != self.owner:
            logger.debug('Dropping change for another owner: %s', record.id)
            return False
        return self.store.reconcile(event.type, record)
