from .base import Backend, ChangeEvent, Session


async def create_supabase_backend(config):
    # Imported lazily so the dashboard core does not need the SDK loaded
    from .supabase_backend import SupabaseBackend
    return await SupabaseBackend.create(config)


__all__ = ['Backend', 'ChangeEvent', 'Session', 'create_supabase_backend']
