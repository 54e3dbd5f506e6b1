from datetime import datetime

import pytest

from fakes import (
    FIXED_NOW,
    FakeAuthenticator,
    InMemoryCategoryRepository,
    InMemoryTransactionRepository,
    InMemoryUserRepository,
    RecordingNotifier,
    ScriptedIntentService,
    fixed_clock,
    make_user,
)
from poupapig_assistant.config import Settings
from poupapig_assistant.dependencies import build_services
from poupapig_assistant.models import Money, Transaction, User
from poupapig_assistant.services.cache import InMemoryCache


def add_transaction(
    transactions: InMemoryTransactionRepository,
    categories: InMemoryCategoryRepository,
    user: User,
    amount: str,
    category_id: str,
    when: datetime = FIXED_NOW,
) -> Transaction:
    category = next(c for c in categories.categories if c.id == category_id)
    return transactions.add(
        Transaction(
            id=f"tx_{len(transactions.transactions) + 1}",
            user_id=user.id,
            description=f"Lançamento {category.name}",
            amount=Money.brl(amount),
            type=category.type,
            category=category,
            occurred_at=when,
        )
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="",
        evolution_api_url="",
        openai_api_key="",
        redis_url="",
    )


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def transactions() -> InMemoryTransactionRepository:
    return InMemoryTransactionRepository()


@pytest.fixture
def categories() -> InMemoryCategoryRepository:
    return InMemoryCategoryRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def active_user(users) -> User:
    return users.add(make_user())


@pytest.fixture
def make_container(settings, cache, users, transactions, categories, notifier):
    def _make(*responses, authenticator=None):
        return build_services(
            settings,
            cache=cache,
            users=users,
            transactions=transactions,
            categories=categories,
            notifier=notifier,
            intent=ScriptedIntentService(*responses),
            authenticator=authenticator or FakeAuthenticator({"token-1": "user_1"}),
            clock=fixed_clock,
        )

    return _make


@pytest.fixture
def expense(transactions, categories):
    def _add(user: User, amount: str, category_id: str = "cat_food", when: datetime = FIXED_NOW):
        return add_transaction(transactions, categories, user, amount, category_id, when)

    return _add


@pytest.fixture
def income(transactions, categories):
    def _add(user: User, amount: str, category_id: str = "cat_salary", when: datetime = FIXED_NOW):
        return add_transaction(transactions, categories, user, amount, category_id, when)

    return _add
