import logging
from dataclasses import dataclass
from decimal import Decimal

from poupapig_assistant.errors import NotFoundError, ValidationError
from poupapig_assistant.models import Money, UserStatus, to_decimal
from poupapig_assistant.repositories.base import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoalResult:
    new_goal: Decimal
    status: UserStatus
    previous_goal: Decimal | None = None


class SetMonthlyGoal:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    async def execute(self, user_id: str, goal: object) -> GoalResult:
        value = to_decimal(goal, "goal")
        if value <= 0:
            raise ValidationError("Goal must be a positive value")

        user = await self._users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User")

        previous = user.monthly_goal.amount if user.monthly_goal else None
        updated = user.with_monthly_goal(Money.brl(value))
        await self._users.update(updated)

        logger.info("Monthly goal for %s: %s -> %s", user.id, previous, value)
        return GoalResult(new_goal=value, status=updated.status, previous_goal=previous)
