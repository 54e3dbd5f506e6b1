"""Persistence contracts consumed by the use cases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from poupapig_assistant.models import Category, Money, Transaction, TransactionType, User


@dataclass(frozen=True)
class TransactionFilters:
    type: TransactionType | None = None
    category_id: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = None
    offset: int | None = None


class UserRepository(Protocol):
    async def save(self, user: User) -> None: ...

    async def find_by_id(self, user_id: str) -> User | None: ...

    async def find_by_phone(self, phone: str) -> User | None: ...

    async def update(self, user: User) -> None: ...


class TransactionRepository(Protocol):
    async def save(self, transaction: Transaction) -> None: ...

    async def find_by_id(self, transaction_id: str) -> Transaction | None: ...

    async def find_by_user(
        self, user_id: str, filters: TransactionFilters | None = None
    ) -> list[Transaction]: ...

    async def find_by_date_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Transaction]: ...

    async def monthly_sum(
        self, user_id: str, transaction_type: TransactionType, month_start: datetime
    ) -> Money: ...


class CategoryRepository(Protocol):
    async def find_all(self, user_id: str | None = None) -> list[Category]: ...

    async def find_by_id(self, category_id: str) -> Category | None: ...

    async def find_by_type(
        self, transaction_type: TransactionType, user_id: str | None = None
    ) -> list[Category]: ...
