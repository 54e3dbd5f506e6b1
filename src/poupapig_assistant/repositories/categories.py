from supabase import AsyncClient

from poupapig_assistant.models import Category, TransactionType

CATEGORIES_TABLE = "categorias"

DB_EXPENSE = "gasto"
DB_INCOME = "receita"


def to_db_type(transaction_type: TransactionType) -> str:
    return DB_EXPENSE if transaction_type == TransactionType.EXPENSE else DB_INCOME


def from_db_type(value: str | None) -> TransactionType:
    return TransactionType.EXPENSE if value == DB_EXPENSE else TransactionType.INCOME


def build_category(row: dict) -> Category:
    return Category(
        id=str(row["id"]),
        name=row["nome"],
        icon=row.get("icone") or "",
        color=row.get("cor") or "#000000",
        type=from_db_type(row.get("tipo")),
        user_id=str(row["usuario_id"]) if row.get("usuario_id") else None,
    )


class SupabaseCategoryRepository:
    def __init__(self, supabase: AsyncClient) -> None:
        self._supabase = supabase

    def _scoped(self, query, user_id: str | None):
        # user categories plus global defaults, or only the defaults
        if user_id:
            return query.or_(f"usuario_id.eq.{user_id},usuario_id.is.null")
        return query.is_("usuario_id", "null")

    async def find_all(self, user_id: str | None = None) -> list[Category]:
        query = self._supabase.table(CATEGORIES_TABLE).select("*").eq("ativa", True)
        response = await self._scoped(query, user_id).order("nome").execute()
        return [build_category(row) for row in response.data or []]

    async def find_by_id(self, category_id: str) -> Category | None:
        response = (
            await self._supabase.table(CATEGORIES_TABLE)
            .select("*")
            .eq("id", category_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return build_category(rows[0]) if rows else None

    async def find_by_type(
        self, transaction_type: TransactionType, user_id: str | None = None
    ) -> list[Category]:
        query = (
            self._supabase.table(CATEGORIES_TABLE)
            .select("*")
            .eq("ativa", True)
            .eq("tipo", to_db_type(transaction_type))
        )
        response = await self._scoped(query, user_id).order("nome").execute()
        return [build_category(row) for row in response.data or []]
