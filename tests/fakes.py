"""In-memory stand-ins for the Supabase repositories and outbound services."""

from datetime import datetime
from decimal import Decimal

from poupapig_assistant.errors import IntentServiceError, UnauthorizedError
from poupapig_assistant.models import (
    Category,
    Money,
    Transaction,
    TransactionType,
    User,
    UserStatus,
)
from poupapig_assistant.repositories.base import TransactionFilters
from poupapig_assistant.services.intent import Intent, IntentContext, IntentResponse
from poupapig_assistant.services.notifications import MessageOption

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0)
PHONE = "5511999999999"


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_user(goal: str | None = "1000", status: UserStatus = UserStatus.ACTIVE) -> User:
    return User(
        id="user_1",
        phone=PHONE,
        name="Maria",
        status=status,
        monthly_goal=Money.brl(goal) if goal else None,
    )


def default_categories() -> list[Category]:
    return [
        Category("cat_food", "Alimentação", "🍔", "#FF6B6B", TransactionType.EXPENSE),
        Category("cat_transport", "Transporte", "🚗", "#4ECDC4", TransactionType.EXPENSE),
        Category("cat_leisure", "Lazer", "🎮", "#95E1D3", TransactionType.EXPENSE),
        Category("cat_other_expense", "Outros Gastos", "💸", "#999999", TransactionType.EXPENSE),
        Category("cat_salary", "Salário", "💰", "#2ECC71", TransactionType.INCOME),
        Category("cat_other_income", "Outros Ganhos", "💵", "#27AE60", TransactionType.INCOME),
    ]


class InMemoryUserRepository:
    def __init__(self, users: list[User] | None = None) -> None:
        self.users: dict[str, User] = {user.id: user for user in users or []}

    def add(self, user: User) -> User:
        self.users[user.id] = user
        return user

    async def save(self, user: User) -> None:
        self.users[user.id] = user

    async def find_by_id(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    async def find_by_phone(self, phone: str) -> User | None:
        return next((user for user in self.users.values() if user.phone == phone), None)

    async def update(self, user: User) -> None:
        self.users[user.id] = user


class InMemoryTransactionRepository:
    def __init__(self) -> None:
        self.transactions: list[Transaction] = []

    def add(self, transaction: Transaction) -> Transaction:
        self.transactions.append(transaction)
        return transaction

    async def save(self, transaction: Transaction) -> None:
        self.transactions.append(transaction)

    async def find_by_id(self, transaction_id: str) -> Transaction | None:
        return next((tx for tx in self.transactions if tx.id == transaction_id), None)

    async def find_by_user(
        self, user_id: str, filters: TransactionFilters | None = None
    ) -> list[Transaction]:
        filters = filters or TransactionFilters()
        found = [
            tx
            for tx in self.transactions
            if tx.user_id == user_id
            and (filters.type is None or tx.type == filters.type)
            and (filters.category_id is None or tx.category.id == filters.category_id)
            and (filters.start is None or tx.occurred_at >= filters.start)
            and (filters.end is None or tx.occurred_at <= filters.end)
        ]
        found.sort(key=lambda tx: tx.occurred_at, reverse=True)
        offset = filters.offset or 0
        if filters.limit is not None:
            return found[offset : offset + filters.limit]
        return found[offset:]

    async def find_by_date_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        return await self.find_by_user(user_id, TransactionFilters(start=start, end=end))

    async def monthly_sum(
        self, user_id: str, transaction_type: TransactionType, month_start: datetime
    ) -> Money:
        total = sum(
            (
                tx.amount.amount
                for tx in self.transactions
                if tx.user_id == user_id
                and tx.type == transaction_type
                and tx.occurred_at >= month_start
            ),
            Decimal("0"),
        )
        return Money.brl(total)


class InMemoryCategoryRepository:
    def __init__(self, categories: list[Category] | None = None) -> None:
        self.categories = default_categories() if categories is None else list(categories)

    async def find_all(self, user_id: str | None = None) -> list[Category]:
        return [c for c in self.categories if c.user_id is None or c.user_id == user_id]

    async def find_by_id(self, category_id: str) -> Category | None:
        return next((c for c in self.categories if c.id == category_id), None)

    async def find_by_type(
        self, transaction_type: TransactionType, user_id: str | None = None
    ) -> list[Category]:
        return [c for c in await self.find_all(user_id) if c.type == transaction_type]


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[tuple[str, str]] = []
        self.alerts: list[tuple[str, str]] = []
        self.lists: list[tuple[str, str, list[MessageOption]]] = []

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("transport down")

    async def send_message(self, phone: str, text: str) -> None:
        self._check()
        self.messages.append((phone, text))

    async def send_alert(self, phone: str, text: str) -> None:
        self._check()
        self.alerts.append((phone, text))

    async def send_list(self, phone: str, title: str, options: list[MessageOption]) -> None:
        self._check()
        self.lists.append((phone, title, options))


class ScriptedIntentService:
    """Returns queued responses in order; an exception in the queue is raised."""

    def __init__(self, *responses: IntentResponse | Exception) -> None:
        self.responses = list(responses)
        self.contexts: list[IntentContext] = []

    async def process_message(self, text: str, context: IntentContext) -> IntentResponse:
        self.contexts.append(context)
        if not self.responses:
            raise IntentServiceError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def detect_intent(self, text: str, categories: list[str]) -> Intent:
        return {"type": "nao_identificada", "confidence": 0.0, "data": {}}


class FakeAuthenticator:
    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = tokens or {}

    async def user_id_for_token(self, access_token: str) -> str:
        user_id = self.tokens.get(access_token)
        if not user_id:
            raise UnauthorizedError("Invalid access token")
        return user_id
