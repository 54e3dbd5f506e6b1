"""Register an expense or income and evaluate the monthly goal alert."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from poupapig_assistant.errors import DomainError, NotFoundError, ValidationError
from poupapig_assistant.models import (
    Category,
    GoalBand,
    Money,
    Transaction,
    TransactionType,
    goal_band,
    goal_percentage,
    to_decimal,
)
from poupapig_assistant.repositories.base import (
    CategoryRepository,
    TransactionRepository,
    UserRepository,
)
from poupapig_assistant.services.notifications import Notifier
from poupapig_assistant.utils.time import start_of_month

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAMES = {
    TransactionType.EXPENSE: "Outros Gastos",
    TransactionType.INCOME: "Outros Ganhos",
}
EXCEEDED_ALERT = "⚠️ Você ultrapassou sua meta mensal!"


@dataclass(frozen=True)
class RegisterTransactionResult:
    transaction_id: str
    category_name: str
    monthly_expenses: Decimal
    monthly_income: Decimal
    current_balance: Decimal
    percentage_used: Decimal | None = None
    goal_band: GoalBand | None = None
    alert_message: str | None = None


def _parse_type(value: object) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError as exc:
        raise ValidationError("Invalid transaction type") from exc


class RegisterTransaction:
    def __init__(
        self,
        users: UserRepository,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        notifier: Notifier,
        clock: Callable[[], datetime],
    ) -> None:
        self._users = users
        self._transactions = transactions
        self._categories = categories
        self._notifier = notifier
        self._clock = clock

    async def execute(
        self,
        user_id: str,
        description: str,
        amount: object,
        transaction_type: object,
        category_id: str | None = None,
        category_name: str | None = None,
        processed_by_ai: bool = False,
    ) -> RegisterTransactionResult:
        if not user_id:
            raise ValidationError("User ID is required")
        if not description or len(description.strip()) < 3:
            raise ValidationError("Description must have at least 3 characters")
        value = to_decimal(amount)
        if value <= 0:
            raise ValidationError("Amount must be positive")
        kind = _parse_type(transaction_type)

        user = await self._users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User")

        category = await self._resolve_category(kind, user.id, category_id, category_name)
        now = self._clock()
        transaction = Transaction.create(
            user.id,
            description,
            Money.brl(value),
            kind,
            category,
            processed_by_ai=processed_by_ai,
            occurred_at=now,
        )
        await self._transactions.save(transaction)

        # recomputed from the store so writes from other sources are counted
        month_start = start_of_month(now)
        expenses = await self._transactions.monthly_sum(user.id, TransactionType.EXPENSE, month_start)
        income = await self._transactions.monthly_sum(user.id, TransactionType.INCOME, month_start)

        percentage = band = alert = None
        if user.can_receive_alerts() and user.monthly_goal:
            percentage = goal_percentage(expenses.amount, user.monthly_goal.amount)
            band = goal_band(percentage)
            if band == GoalBand.EXCEEDED:
                alert = EXCEEDED_ALERT
                await self._push_alert(user.phone, alert)
            elif band == GoalBand.WARNING:
                alert = f"⚠️ Você já usou {percentage:.0f}% da sua meta!"

        logger.info(
            "Transaction %s registered for %s (%s %s)",
            transaction.id,
            user.id,
            kind.value,
            value,
        )
        return RegisterTransactionResult(
            transaction_id=transaction.id,
            category_name=category.name,
            monthly_expenses=expenses.amount,
            monthly_income=income.amount,
            current_balance=income.amount - expenses.amount,
            percentage_used=percentage,
            goal_band=band,
            alert_message=alert,
        )

    async def _push_alert(self, phone: str, alert: str) -> None:
        try:
            await self._notifier.send_alert(phone, alert)
        except Exception:
            logger.exception("Failed to push goal alert to %s", phone)

    async def _resolve_category(
        self,
        kind: TransactionType,
        user_id: str,
        category_id: str | None,
        category_name: str | None,
    ) -> Category:
        if category_id:
            category = await self._categories.find_by_id(category_id)
            if not category:
                raise NotFoundError("Category")
            return category

        if category_name:
            wanted = category_name.strip().lower()
            for category in await self._categories.find_by_type(kind, user_id):
                if category.name.lower() == wanted:
                    return category

        default_name = DEFAULT_CATEGORY_NAMES[kind]
        for category in await self._categories.find_by_type(kind):
            if category.name == default_name:
                return category
        raise DomainError("No default category available")
