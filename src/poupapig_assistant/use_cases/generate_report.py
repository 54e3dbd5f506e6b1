"""Monthly financial report.

Only the monthly variant is produced. The weekly, per-category and
comparative variants are recognized but rejected with a BusinessError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable

from poupapig_assistant.errors import BusinessError, NotFoundError, ValidationError
from poupapig_assistant.models import TransactionType, User, goal_percentage
from poupapig_assistant.repositories.base import TransactionRepository, UserRepository
from poupapig_assistant.use_cases.get_balance import CategorySummary, summarize
from poupapig_assistant.utils.time import month_label, resolve_period

logger = logging.getLogger(__name__)

REPORT_MONTHLY = "monthly"
REPORT_WEEKLY = "weekly"
REPORT_BY_CATEGORY = "by_category"
REPORT_COMPARATIVE = "comparative"
REPORT_TYPES = (REPORT_MONTHLY, REPORT_WEEKLY, REPORT_BY_CATEGORY, REPORT_COMPARATIVE)

TOP_CATEGORIES = 5
DOMINANT_CATEGORY_PERCENT = Decimal("40")


@dataclass(frozen=True)
class ReportData:
    period: str
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    top_categories: list[CategorySummary] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReportResult:
    report: str
    data: ReportData


def build_insights(
    income: Decimal, expenses: Decimal, top_categories: list[CategorySummary]
) -> list[str]:
    if expenses > income:
        insights = ["🔴 Seus gastos superaram suas receitas este mês"]
    elif income > expenses * 2:
        insights = ["🟢 Excelente! Você economizou mais de 50% da sua receita"]
    else:
        insights = ["🟢 Suas receitas cobrem seus gastos"]

    if top_categories and top_categories[0].percentage > DOMINANT_CATEGORY_PERCENT:
        top = top_categories[0]
        insights.append(f"📈 {top.category} representa {top.percentage:.0f}% dos seus gastos")
    return insights


def format_monthly_report(data: ReportData, user: User) -> str:
    lines = [
        "📈 RELATÓRIO FINANCEIRO DETALHADO",
        f"📅 {data.period.upper()}",
        "",
        "💰 RESUMO GERAL:",
        f"• Total de Receitas: R$ {data.total_income:.2f}",
        f"• Total de Gastos: R$ {data.total_expenses:.2f}",
        f"• Saldo do Mês: R$ {data.balance:.2f}",
    ]
    if user.monthly_goal:
        goal = user.monthly_goal.amount
        used = goal_percentage(data.total_expenses, goal)
        lines.append(f"• Meta Mensal: R$ {goal:.2f} ({used:.0f}% usado)")

    if data.top_categories:
        lines += ["", "📊 TOP CATEGORIAS DE GASTOS:"]
        for position, item in enumerate(data.top_categories, start=1):
            lines.append(
                f"{position}. {item.icon} {item.category}: "
                f"R$ {item.total:.2f} ({item.percentage:.1f}%)"
            )

    if data.insights:
        lines += ["", "💡 INSIGHTS:"]
        lines += [f"• {insight}" for insight in data.insights]
    return "\n".join(lines)


class GenerateReport:
    def __init__(
        self,
        users: UserRepository,
        transactions: TransactionRepository,
        clock: Callable[[], datetime],
    ) -> None:
        self._users = users
        self._transactions = transactions
        self._clock = clock

    async def execute(self, user_id: str, report_type: str = REPORT_MONTHLY) -> ReportResult:
        if report_type not in REPORT_TYPES:
            raise ValidationError(f"Invalid report type: {report_type}")

        user = await self._users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User")

        if report_type != REPORT_MONTHLY:
            raise BusinessError(f"Report type {report_type} is not available yet")

        now = self._clock()
        start, end = resolve_period(None, now)
        totals = summarize(await self._transactions.find_by_date_range(user.id, start, end))

        top = [item for item in totals.categories if item.type == TransactionType.EXPENSE]
        top = top[:TOP_CATEGORIES]

        data = ReportData(
            period=month_label(now),
            total_income=totals.income,
            total_expenses=totals.expenses,
            balance=totals.balance,
            top_categories=top,
            insights=build_insights(totals.income, totals.expenses, top),
        )
        logger.info("Monthly report generated for %s", user.id)
        return ReportResult(report=format_monthly_report(data, user), data=data)
