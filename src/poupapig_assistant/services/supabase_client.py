from supabase import AsyncClient, acreate_client

from poupapig_assistant.config import Settings

_client: AsyncClient | None = None


async def get_supabase(settings: Settings) -> AsyncClient:
    global _client
    if _client is not None:
        return _client
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("Supabase credentials are not configured.")
    _client = await acreate_client(settings.supabase_url, settings.supabase_service_role_key)
    return _client
