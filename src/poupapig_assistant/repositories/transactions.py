"""Supabase repository for ledger transactions."""

from datetime import datetime
from decimal import Decimal

from supabase import AsyncClient

from poupapig_assistant.models import Money, Transaction, TransactionType
from poupapig_assistant.repositories.base import TransactionFilters
from poupapig_assistant.repositories.categories import (
    build_category,
    from_db_type,
    to_db_type,
)

TRANSACTIONS_TABLE = "transacoes"
SELECT_WITH_CATEGORY = "*, categorias (*)"


def _build_transaction(row: dict) -> Transaction:
    return Transaction(
        id=str(row["id"]),
        user_id=str(row["usuario_id"]),
        description=row["descricao"],
        amount=Money.brl(row["valor"]),
        type=from_db_type(row.get("tipo")),
        category=build_category(row["categorias"]),
        occurred_at=datetime.fromisoformat(row["data"]),
        processed_by_ai=bool(row.get("processada_por_ia", False)),
    )


def _to_row(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "usuario_id": transaction.user_id,
        "descricao": transaction.description,
        "valor": str(transaction.amount.amount),
        "categoria_id": transaction.category.id,
        "tipo": to_db_type(transaction.type),
        "data": transaction.occurred_at.isoformat(),
        "hash_identificador": transaction.id,
        "processada_por_ia": transaction.processed_by_ai,
    }


class SupabaseTransactionRepository:
    def __init__(self, supabase: AsyncClient) -> None:
        self._supabase = supabase

    async def save(self, transaction: Transaction) -> None:
        await self._supabase.table(TRANSACTIONS_TABLE).insert(_to_row(transaction)).execute()

    async def find_by_id(self, transaction_id: str) -> Transaction | None:
        response = (
            await self._supabase.table(TRANSACTIONS_TABLE)
            .select(SELECT_WITH_CATEGORY)
            .eq("id", transaction_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return _build_transaction(rows[0]) if rows else None

    async def find_by_user(
        self, user_id: str, filters: TransactionFilters | None = None
    ) -> list[Transaction]:
        filters = filters or TransactionFilters()
        query = (
            self._supabase.table(TRANSACTIONS_TABLE)
            .select(SELECT_WITH_CATEGORY)
            .eq("usuario_id", user_id)
        )
        if filters.type:
            query = query.eq("tipo", to_db_type(filters.type))
        if filters.category_id:
            query = query.eq("categoria_id", filters.category_id)
        if filters.start:
            query = query.gte("data", filters.start.isoformat())
        if filters.end:
            query = query.lte("data", filters.end.isoformat())
        if filters.offset is not None:
            limit = filters.limit or 10
            query = query.range(filters.offset, filters.offset + limit - 1)
        elif filters.limit:
            query = query.limit(filters.limit)

        response = await query.order("data", desc=True).execute()
        return [_build_transaction(row) for row in response.data or []]

    async def find_by_date_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        return await self.find_by_user(user_id, TransactionFilters(start=start, end=end))

    async def monthly_sum(
        self, user_id: str, transaction_type: TransactionType, month_start: datetime
    ) -> Money:
        response = (
            await self._supabase.table(TRANSACTIONS_TABLE)
            .select("valor")
            .eq("usuario_id", user_id)
            .eq("tipo", to_db_type(transaction_type))
            .gte("data", month_start.isoformat())
            .execute()
        )
        total = sum((Decimal(str(row["valor"])) for row in response.data or []), Decimal("0"))
        return Money.brl(total)
