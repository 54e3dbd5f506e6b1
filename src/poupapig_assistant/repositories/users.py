from datetime import datetime

from supabase import AsyncClient

from poupapig_assistant.models import Money, User, UserStatus

USERS_TABLE = "usuarios_bot"
USER_SETTINGS_TABLE = "configuracoes_usuario"
SELECT_WITH_SETTINGS = "*, configuracoes_usuario (meta_mensal)"


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _build_user(row: dict) -> User:
    user_settings = row.get("configuracoes_usuario") or []
    if isinstance(user_settings, dict):
        user_settings = [user_settings]
    goal = user_settings[0].get("meta_mensal") if user_settings else None
    return User(
        id=str(row["id"]),
        phone=row["telefone"],
        name=row["nome"],
        status=UserStatus(row.get("status") or UserStatus.NEW.value),
        monthly_goal=Money.brl(goal) if goal else None,
        created_at=_parse_datetime(row.get("created_at")),
    )


class SupabaseUserRepository:
    def __init__(self, supabase: AsyncClient, timezone: str = "America/Sao_Paulo") -> None:
        self._supabase = supabase
        self._timezone = timezone

    async def _find_one(self, column: str, value: str) -> User | None:
        response = (
            await self._supabase.table(USERS_TABLE)
            .select(SELECT_WITH_SETTINGS)
            .eq(column, value)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return _build_user(rows[0]) if rows else None

    async def save(self, user: User) -> None:
        await self._supabase.table(USERS_TABLE).insert(
            {
                "id": user.id,
                "telefone": user.phone,
                "nome": user.name,
                "status": user.status.value,
                "configuracao_completa": user.status == UserStatus.ACTIVE,
            }
        ).execute()
        await self._supabase.table(USER_SETTINGS_TABLE).insert(
            {
                "usuario_id": user.id,
                "meta_mensal": str(user.monthly_goal.amount) if user.monthly_goal else None,
                "alertas_ativados": True,
                "alerta_percentual": 80,
                "moeda": "BRL",
                "fuso_horario": self._timezone,
            }
        ).execute()

    async def find_by_id(self, user_id: str) -> User | None:
        return await self._find_one("id", user_id)

    async def find_by_phone(self, phone: str) -> User | None:
        return await self._find_one("telefone", phone)

    async def update(self, user: User) -> None:
        await self._supabase.table(USERS_TABLE).update(
            {
                "nome": user.name,
                "status": user.status.value,
                "configuracao_completa": user.status == UserStatus.ACTIVE,
            }
        ).eq("id", user.id).execute()
        if user.monthly_goal:
            await self._supabase.table(USER_SETTINGS_TABLE).update(
                {"meta_mensal": str(user.monthly_goal.amount)}
            ).eq("usuario_id", user.id).execute()
