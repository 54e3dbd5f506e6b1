import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable

from poupapig_assistant.errors import NotFoundError
from poupapig_assistant.models import (
    GoalBand,
    Transaction,
    TransactionType,
    goal_band,
    goal_percentage,
)
from poupapig_assistant.repositories.base import TransactionRepository, UserRepository
from poupapig_assistant.utils.time import PERIOD_LAST_MONTH, PERIODS, resolve_period

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class CategorySummary:
    category: str
    icon: str
    type: TransactionType
    total: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class Totals:
    income: Decimal
    expenses: Decimal
    categories: list[CategorySummary]

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True)
class BalanceResult:
    period: str
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    goal_status: str | None = None
    categories: list[CategorySummary] = field(default_factory=list)


def summarize(transactions: Iterable[Transaction]) -> Totals:
    """Totals per type plus per-category groups, largest first.

    Each category's percentage is relative to the total of its own type.
    """
    income = expenses = ZERO
    groups: dict[tuple[str, TransactionType], tuple[str, Decimal]] = {}
    for transaction in transactions:
        amount = transaction.amount.amount
        if transaction.is_expense():
            expenses += amount
        else:
            income += amount
        key = (transaction.category.name, transaction.type)
        icon, total = groups.get(key, (transaction.category.icon, ZERO))
        groups[key] = (icon, total + amount)

    categories = []
    for (name, kind), (icon, total) in groups.items():
        type_total = expenses if kind == TransactionType.EXPENSE else income
        percentage = total / type_total * 100 if type_total > 0 else ZERO
        categories.append(CategorySummary(name, icon, kind, total, percentage))
    categories.sort(key=lambda item: item.total, reverse=True)
    return Totals(income=income, expenses=expenses, categories=categories)


def goal_status_text(spent: Decimal, goal: Decimal) -> str:
    percentage = goal_percentage(spent, goal)
    band = goal_band(percentage)
    if band == GoalBand.EXCEEDED:
        return f"⚠️ Meta ultrapassada! {percentage:.0f}% usado"
    if band == GoalBand.WARNING:
        return f"⚠️ {percentage:.0f}% da meta usado"
    return f"✅ {percentage:.0f}% da meta usado"


class GetBalance:
    def __init__(
        self,
        users: UserRepository,
        transactions: TransactionRepository,
        clock: Callable[[], datetime],
    ) -> None:
        self._users = users
        self._transactions = transactions
        self._clock = clock

    async def execute(self, user_id: str, period: str | None = None) -> BalanceResult:
        user = await self._users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User")

        if period not in PERIODS:
            period = PERIODS[0]
        start, end = resolve_period(period, self._clock())
        totals = summarize(await self._transactions.find_by_date_range(user.id, start, end))

        goal_status = None
        if user.monthly_goal and period != PERIOD_LAST_MONTH:
            goal_status = goal_status_text(totals.expenses, user.monthly_goal.amount)

        logger.info("Balance for %s (%s): %s", user.id, period, totals.balance)
        return BalanceResult(
            period=period,
            total_income=totals.income,
            total_expenses=totals.expenses,
            balance=totals.balance,
            goal_status=goal_status,
            categories=totals.categories,
        )
