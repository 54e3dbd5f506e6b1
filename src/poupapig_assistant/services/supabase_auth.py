from typing import Any, Protocol

from supabase import AsyncClient

from poupapig_assistant.errors import UnauthorizedError


class Authenticator(Protocol):
    async def user_id_for_token(self, access_token: str) -> str: ...


def _user_id_from_response(result: Any) -> str | None:
    user = getattr(result, "user", None)
    if user is None and isinstance(result, dict):
        user = result.get("user") or (result.get("data") or {}).get("user")
    if isinstance(user, dict):
        return user.get("id")
    return getattr(user, "id", None)


class SupabaseAuthenticator:
    """Resolves bearer tokens issued by Supabase auth to the bot user id."""

    def __init__(self, supabase: AsyncClient) -> None:
        self._supabase = supabase

    async def user_id_for_token(self, access_token: str) -> str:
        try:
            result = await self._supabase.auth.get_user(access_token)
        except Exception as exc:
            raise UnauthorizedError("Invalid access token") from exc
        user_id = _user_id_from_response(result)
        if not user_id:
            raise UnauthorizedError("Unable to resolve user from access token")
        return str(user_id)
