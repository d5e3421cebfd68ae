"""Backend implementation on top of the Supabase async client.

Each browser gets its own client so the PKCE verifier and the session live
with that browser only. Every SDK exception is wrapped in BackendError at
this boundary.
"""

import logging

from supabase import AsyncClientOptions, acreate_client

from savora.errors import BackendError
from .base import Backend, Session

logger = logging.getLogger(__name__)


def _to_session(raw):
    if raw is None or getattr(raw, 'user', None) is None:
        return None
    return Session(
        user_id=str(raw.user.id),
        email=raw.user.email or '',
        access_token=raw.access_token,
    )


class SupabaseBackend(Backend):

    def __init__(self, client, table='bookmarks', channel_name='bookmarks-changes'):
        self.client = client
        self.table = table
        self.channel_name = channel_name

    @classmethod
    async def create(cls, config):
        """Build a backend for one browser from the Flask config mapping."""
        url = config.get('SUPABASE_URL')
        key = config.get('SUPABASE_PUBLISHABLE_KEY')
        if not url or not key:
            raise BackendError('connect', 'SUPABASE_URL and SUPABASE_PUBLISHABLE_KEY must be set')
        try:
            client = await acreate_client(
                url, key,
                options=AsyncClientOptions(flow_type='pkce'),
            )
        except Exception as e:
            raise BackendError('connect', str(e)) from e
        return cls(
            client,
            table=config.get('BOOKMARKS_TABLE', 'bookmarks'),
            channel_name=config.get('REALTIME_CHANNEL', 'bookmarks-changes'),
        )

    async def _call(self, operation, awaitable):
        try:
            return await awaitable
        except BackendError:
            raise
        except Exception as e:
            logger.warning('Supabase %s failed: %s', operation, e)
            raise BackendError(operation, str(e)) from e

    # Auth

    async def get_session(self):
        raw = await self._call('get_session', self.client.auth.get_session())
        return _to_session(raw)

    def on_auth_state_change(self, callback):
        def handler(_event, raw_session):
            callback(_to_session(raw_session))

        subscription = self.client.auth.on_auth_state_change(handler)
        return subscription.unsubscribe

    async def sign_in_with_oauth(self, provider, redirect_to):
        response = await self._call('sign_in_with_oauth', self.client.auth.sign_in_with_oauth({
            'provider': provider,
            'options': {'redirect_to': redirect_to},
        }))
        if not getattr(response, 'url', None):
            raise BackendError('sign_in_with_oauth', 'provider url missing from response')
        return response.url

    async def exchange_code_for_session(self, code):
        response = await self._call(
            'exchange_code_for_session',
            self.client.auth.exchange_code_for_session({'auth_code': code}),
        )
        return _to_session(getattr(response, 'session', None))

    async def sign_out(self):
        await self._call('sign_out', self.client.auth.sign_out())

    # Bookmarks table

    async def fetch_bookmarks(self):
        response = await self._call(
            'select',
            self.client.table(self.table).select('*').order('created_at', desc=True).execute(),
        )
        return response.data or []

    async def insert_bookmark(self, values):
        response = await self._call(
            'insert', self.client.table(self.table).insert(values).execute(),
        )
        if not response.data:
            raise BackendError('insert', 'no row returned')
        return response.data[0]

    async def update_bookmark(self, bookmark_id, values):
        response = await self._call(
            'update',
            self.client.table(self.table).update(values).eq('id', bookmark_id).execute(),
        )
        return response.data[0] if response.data else None

    async def delete_bookmark(self, bookmark_id):
        await self._call(
            'delete',
            self.client.table(self.table).delete().eq('id', bookmark_id).execute(),
        )

    # Change feed

    async def subscribe_changes(self, owner, callback):
        channel = self.client.channel(self.channel_name)
        channel.on_postgres_changes(
            '*',
            schema='public',
            table=self.table,
            filter=f'user_id=eq.{owner}',
            callback=callback,
        )
        await self._call('subscribe', channel.subscribe())

        async def unsubscribe():
            await self._call('unsubscribe', self.client.remove_channel(channel))

        return unsubscribe

    async def close(self):
        try:
            await self.client.remove_all_channels()
        except Exception:
            logger.debug('Ignoring error while closing realtime channels', exc_info=True)
