"""Routes intent actions to the use cases and assembles the reply."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from poupapig_assistant.errors import AppError, DomainError, ValidationError
from poupapig_assistant.models import ExecutedAction, User
from poupapig_assistant.repositories.base import CategoryRepository
from poupapig_assistant.services.cache import Cache
from poupapig_assistant.services.formatter import format_reply
from poupapig_assistant.services.intent import IntentAction, IntentContext, IntentService
from poupapig_assistant.use_cases.generate_report import GenerateReport
from poupapig_assistant.use_cases.get_balance import BalanceResult, GetBalance
from poupapig_assistant.use_cases.register_transaction import RegisterTransaction
from poupapig_assistant.use_cases.set_monthly_goal import SetMonthlyGoal

logger = logging.getLogger(__name__)

INTENT_FAILURE_MESSAGE = "Desculpe, tive um problema ao entender sua mensagem. Pode tentar novamente? 🤔"
UNEXPECTED_ACTION_ERROR = "erro inesperado"

TRANSACTION_TYPES = {
    "gasto": "expense",
    "despesa": "expense",
    "expense": "expense",
    "receita": "income",
    "ganho": "income",
    "income": "income",
}
PERIODS = {
    "mes_atual": "current_month",
    "mes_passado": "last_month",
    "semana": "week",
    "ano": "year",
}
REPORT_TYPES = {
    "mensal": "monthly",
    "semanal": "weekly",
    "por_categoria": "by_category",
    "comparativo": "comparative",
}


class ActionKind(str, Enum):
    REGISTER_TRANSACTION = "registrar_transacao"
    GET_BALANCE = "consultar_saldo"
    SET_MONTHLY_GOAL = "definir_meta"
    GENERATE_REPORT = "gerar_relatorio"


@dataclass(frozen=True)
class DispatchResult:
    reply_text: str
    executed_actions: list[ExecutedAction] = field(default_factory=list)


def _translate(table: dict[str, str], value: Any) -> Any:
    if isinstance(value, str):
        return table.get(value.strip().lower(), value)
    return value


def _text_param(params: dict[str, Any], name: str) -> str | None:
    value = params.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Parameter {name} must be text")
    return value


def summary_key(user_id: str) -> str:
    return f"summary:{user_id}"


def _summary_payload(balance: BalanceResult) -> dict[str, str]:
    payload = {
        "period": balance.period,
        "total_income": str(balance.total_income),
        "total_expenses": str(balance.total_expenses),
        "balance": str(balance.balance),
    }
    if balance.goal_status:
        payload["goal_status"] = balance.goal_status
    return payload


class ActionDispatcher:
    def __init__(
        self,
        intent: IntentService,
        categories: CategoryRepository,
        cache: Cache,
        register_transaction: RegisterTransaction,
        get_balance: GetBalance,
        set_monthly_goal: SetMonthlyGoal,
        generate_report: GenerateReport,
        default_categories: list[str],
        summary_ttl_seconds: int | None = None,
    ) -> None:
        self._intent = intent
        self._categories = categories
        self._cache = cache
        self._register_transaction = register_transaction
        self._get_balance = get_balance
        self._set_monthly_goal = set_monthly_goal
        self._generate_report = generate_report
        self._default_categories = default_categories
        self._summary_ttl_seconds = summary_ttl_seconds

    async def dispatch(self, user: User, text: str) -> DispatchResult:
        context = await self._build_context(user)
        try:
            response = await self._intent.process_message(text, context)
        except Exception:
            logger.exception("Intent processing failed for user %s", user.id)
            return DispatchResult(reply_text=INTENT_FAILURE_MESSAGE)

        executed = [await self._run(user, action) for action in response.actions]
        logger.info(
            "Dispatched %d action(s) for user %s (%d failed)",
            len(executed),
            user.id,
            sum(1 for item in executed if not item.success),
        )
        return DispatchResult(
            reply_text=format_reply(response.message, executed),
            executed_actions=executed,
        )

    async def _build_context(self, user: User) -> IntentContext:
        categories = [category.name for category in await self._categories.find_all(user.id)]
        return IntentContext(
            user_id=user.id,
            user_name=user.name,
            session_state=user.status.value,
            categories=categories or list(self._default_categories),
            last_summary=await self._cache.get(summary_key(user.id)),
        )

    async def _run(self, user: User, action: IntentAction) -> ExecutedAction:
        try:
            result = await self._execute(user, action)
        except AppError as exc:
            logger.warning("Action %s failed for user %s: %s", action.function, user.id, exc.message)
            return ExecutedAction(action.function, success=False, error=exc.message)
        except Exception:
            logger.exception("Action %s crashed for user %s", action.function, user.id)
            return ExecutedAction(action.function, success=False, error=UNEXPECTED_ACTION_ERROR)
        return ExecutedAction(action.function, success=True, result=result)

    async def _execute(self, user: User, action: IntentAction) -> Any:
        try:
            kind = ActionKind(action.function)
        except ValueError:
            raise DomainError(f"Unknown action: {action.function}") from None

        params = action.parameters
        match kind:
            case ActionKind.REGISTER_TRANSACTION:
                return await self._register_transaction.execute(
                    user.id,
                    description=_text_param(params, "descricao") or "",
                    amount=params.get("valor"),
                    transaction_type=_translate(TRANSACTION_TYPES, params.get("tipo")),
                    category_name=_text_param(params, "categoria"),
                    processed_by_ai=True,
                )
            case ActionKind.GET_BALANCE:
                balance = await self._get_balance.execute(
                    user.id, _translate(PERIODS, params.get("periodo"))
                )
                await self._cache.set(
                    summary_key(user.id), _summary_payload(balance), self._summary_ttl_seconds
                )
                return balance
            case ActionKind.SET_MONTHLY_GOAL:
                return await self._set_monthly_goal.execute(user.id, params.get("valor"))
            case ActionKind.GENERATE_REPORT:
                return await self._generate_report.execute(
                    user.id, _translate(REPORT_TYPES, params.get("tipo_relatorio") or "mensal")
                )
