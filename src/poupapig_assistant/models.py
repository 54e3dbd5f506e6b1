import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import uuid4

from poupapig_assistant.errors import DomainError, ValidationError

DEFAULT_CURRENCY = "BRL"

PHONE_PATTERN = re.compile(r"^\d{10,15}$")
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

WARNING_THRESHOLD = Decimal("80")
EXCEEDED_THRESHOLD = Decimal("100")


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class UserStatus(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    INACTIVE = "inactive"


class GoalBand(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    EXCEEDED = "exceeded"


def to_decimal(value: object, field: str = "amount") -> Decimal:
    """Coerce user or provider supplied numbers ("50", 50.0, "12,5") to Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid {field}: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", "."))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid {field}: {value!r}") from exc
    else:
        raise ValidationError(f"Invalid {field}: {value!r}")
    if not result.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}")
    return result


def goal_band(percentage: Decimal) -> GoalBand:
    if percentage >= EXCEEDED_THRESHOLD:
        return GoalBand.EXCEEDED
    if percentage >= WARNING_THRESHOLD:
        return GoalBand.WARNING
    return GoalBand.ON_TRACK


def goal_percentage(spent: Decimal, goal: Decimal) -> Decimal:
    return spent / goal * 100


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        if amount < 0:
            raise DomainError("Amount cannot be negative")
        object.__setattr__(self, "amount", amount)

    @classmethod
    def brl(cls, amount: object) -> "Money":
        return cls(to_decimal(amount), DEFAULT_CURRENCY)

    def _check_currency(self, other: "Money", operation: str) -> None:
        if self.currency != other.currency:
            raise DomainError(f"Cannot {operation} different currencies")

    def add(self, other: "Money") -> "Money":
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def percentage(self, percent: object) -> "Money":
        return Money(self.amount * to_decimal(percent, "percentage") / 100, self.currency)

    def is_greater_than(self, other: "Money") -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def format(self) -> str:
        return f"R$ {self.amount:.2f}"


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str
    color: str
    type: TransactionType
    user_id: str | None = None

    def __post_init__(self) -> None:
        if not self.name or len(self.name) < 2:
            raise DomainError("Category name too short")
        if not COLOR_PATTERN.match(self.color or ""):
            raise DomainError("Invalid color format")

    def matches_type(self, transaction_type: TransactionType) -> bool:
        return self.type == transaction_type

    def is_default(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class Transaction:
    id: str
    user_id: str
    description: str
    amount: Money
    type: TransactionType
    category: Category
    occurred_at: datetime
    processed_by_ai: bool = False

    def __post_init__(self) -> None:
        if not self.user_id:
            raise DomainError("User ID is required")
        if not self.description or len(self.description.strip()) < 3:
            raise DomainError("Transaction description too short")
        if self.amount.amount <= 0:
            raise DomainError("Transaction amount must be positive")
        if not self.category.matches_type(self.type):
            raise DomainError("Category type does not match transaction type")

    @classmethod
    def create(
        cls,
        user_id: str,
        description: str,
        amount: Money,
        transaction_type: TransactionType,
        category: Category,
        processed_by_ai: bool = False,
        occurred_at: datetime | None = None,
    ) -> "Transaction":
        return cls(
            id=f"tx_{uuid4().hex}",
            user_id=user_id,
            description=description.strip(),
            amount=amount,
            type=transaction_type,
            category=category,
            occurred_at=occurred_at or datetime.now(timezone.utc),
            processed_by_ai=processed_by_ai,
        )

    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


@dataclass(frozen=True)
class ExecutedAction:
    action: str
    success: bool
    result: Any = None
    error: str | None = None


def status_after_goal(current: UserStatus, goal: Money) -> UserStatus:
    """Status a user moves to once `goal` becomes their monthly goal."""
    if goal.amount <= 0:
        return current
    return UserStatus.ACTIVE


@dataclass(frozen=True)
class User:
    id: str
    phone: str
    name: str
    status: UserStatus
    monthly_goal: Money | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not PHONE_PATTERN.match(self.phone or ""):
            raise DomainError("Invalid phone number")
        if not self.name or len(self.name) < 2:
            raise DomainError("Name too short")

    @classmethod
    def create(cls, phone: str, name: str) -> "User":
        return cls(
            id=f"user_{uuid4().hex}",
            phone=phone,
            name=name,
            status=UserStatus.NEW,
            created_at=datetime.now(timezone.utc),
        )

    def with_monthly_goal(self, goal: Money) -> "User":
        if goal.amount <= 0:
            raise ValidationError("Monthly goal must be positive")
        return replace(
            self,
            monthly_goal=goal,
            status=status_after_goal(self.status, goal),
        )

    def is_new(self) -> bool:
        return self.status == UserStatus.NEW

    def can_receive_alerts(self) -> bool:
        return self.status == UserStatus.ACTIVE and self.monthly_goal is not None
