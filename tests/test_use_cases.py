from datetime import datetime
from decimal import Decimal

import pytest

from fakes import RecordingNotifier, fixed_clock, make_user
from poupapig_assistant.errors import BusinessError, DomainError, NotFoundError, ValidationError
from poupapig_assistant.models import GoalBand, TransactionType, UserStatus
from poupapig_assistant.use_cases.generate_report import GenerateReport, build_insights
from poupapig_assistant.use_cases.get_balance import CategorySummary, GetBalance
from poupapig_assistant.use_cases.register_transaction import RegisterTransaction
from poupapig_assistant.use_cases.set_monthly_goal import SetMonthlyGoal


@pytest.fixture
def register(users, transactions, categories, notifier):
    return RegisterTransaction(users, transactions, categories, notifier, fixed_clock)


class TestRegisterTransaction:
    @pytest.mark.asyncio
    async def test_registers_with_named_category(self, register, active_user, transactions, notifier):
        result = await register.execute(
            active_user.id, "mercado", "50", "expense", category_name="alimentação"
        )
        assert result.category_name == "Alimentação"
        assert result.monthly_expenses == Decimal("50")
        assert result.current_balance == Decimal("-50")
        assert result.percentage_used == Decimal("5")
        assert result.goal_band == GoalBand.ON_TRACK
        assert result.alert_message is None
        assert notifier.alerts == []
        saved = transactions.transactions[0]
        assert saved.id == result.transaction_id
        assert saved.occurred_at == fixed_clock()

    @pytest.mark.asyncio
    async def test_unknown_category_falls_back_to_default(self, register, active_user):
        expense = await register.execute(active_user.id, "presente", 30, "expense", category_name="Pets")
        income = await register.execute(active_user.id, "bico de fim de semana", 200, "income")
        assert expense.category_name == "Outros Gastos"
        assert income.category_name == "Outros Ganhos"
        assert income.monthly_income == Decimal("200")

    @pytest.mark.asyncio
    async def test_warning_band_alert_is_inline_only(self, register, active_user, notifier, expense):
        expense(active_user, "790")
        result = await register.execute(active_user.id, "padaria", "10", "expense")
        assert result.goal_band == GoalBand.WARNING
        assert result.alert_message == "⚠️ Você já usou 80% da sua meta!"
        assert notifier.alerts == []

    @pytest.mark.asyncio
    async def test_exceeded_band_pushes_alert(self, register, active_user, notifier, expense):
        expense(active_user, "990")
        result = await register.execute(active_user.id, "restaurante", "10", "expense")
        assert result.goal_band == GoalBand.EXCEEDED
        assert result.alert_message == "⚠️ Você ultrapassou sua meta mensal!"
        assert notifier.alerts == [(active_user.phone, "⚠️ Você ultrapassou sua meta mensal!")]

    @pytest.mark.asyncio
    async def test_failed_push_does_not_fail(self, users, transactions, categories, active_user, expense):
        expense(active_user, "2000")
        register = RegisterTransaction(
            users, transactions, categories, RecordingNotifier(fail=True), fixed_clock
        )
        result = await register.execute(active_user.id, "restaurante", "10", "expense")
        assert result.goal_band == GoalBand.EXCEEDED
        assert len(transactions.transactions) == 2

    @pytest.mark.asyncio
    async def test_previous_month_not_counted(self, register, active_user, expense):
        expense(active_user, "5000", when=datetime(2026, 9, 30, 23, 0))
        result = await register.execute(active_user.id, "mercado", "10", "expense")
        assert result.monthly_expenses == Decimal("10")

    @pytest.mark.asyncio
    async def test_no_alerts_without_goal(self, register, users):
        user = users.add(make_user(goal=None, status=UserStatus.ACTIVE))
        result = await register.execute(user.id, "mercado", "5000", "expense")
        assert result.percentage_used is None
        assert result.alert_message is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("description", "amount", "kind"),
        [
            ("ab", "10", "expense"),
            ("mercado", "0", "expense"),
            ("mercado", "-5", "expense"),
            ("mercado", "abc", "expense"),
            ("mercado", "10", "gasto"),
        ],
    )
    async def test_validation(self, register, active_user, description, amount, kind):
        with pytest.raises(ValidationError):
            await register.execute(active_user.id, description, amount, kind)

    @pytest.mark.asyncio
    async def test_unknown_user(self, register):
        with pytest.raises(NotFoundError):
            await register.execute("user_missing", "mercado", "10", "expense")

    @pytest.mark.asyncio
    async def test_unknown_category_id(self, register, active_user):
        with pytest.raises(NotFoundError):
            await register.execute(active_user.id, "mercado", "10", "expense", category_id="nope")

    @pytest.mark.asyncio
    async def test_missing_default_category(self, users, transactions, notifier, active_user):
        from fakes import InMemoryCategoryRepository

        register = RegisterTransaction(
            users, transactions, InMemoryCategoryRepository([]), notifier, fixed_clock
        )
        with pytest.raises(DomainError, match="No default category available"):
            await register.execute(active_user.id, "mercado", "10", "expense")


class TestGetBalance:
    @pytest.mark.asyncio
    async def test_current_month_totals_and_groups(self, users, transactions, active_user, expense, income):
        expense(active_user, "300", "cat_food")
        expense(active_user, "100", "cat_transport")
        income(active_user, "2000")
        expense(active_user, "999", "cat_food", when=datetime(2026, 9, 10))

        result = await GetBalance(users, transactions, fixed_clock).execute(active_user.id)

        assert result.period == "current_month"
        assert result.total_income == Decimal("2000")
        assert result.total_expenses == Decimal("400")
        assert result.balance == Decimal("1600")
        assert result.goal_status == "✅ 40% da meta usado"
        assert [c.category for c in result.categories] == ["Salário", "Alimentação", "Transporte"]
        food = result.categories[1]
        assert food.percentage == Decimal("75")

    @pytest.mark.asyncio
    async def test_last_month_covers_full_month_without_goal(self, users, transactions, active_user, expense):
        expense(active_user, "50", when=datetime(2026, 9, 1, 0, 0))
        expense(active_user, "70", when=datetime(2026, 9, 30, 23, 59, 59))
        expense(active_user, "1000", when=datetime(2026, 10, 1, 0, 0))

        result = await GetBalance(users, transactions, fixed_clock).execute(active_user.id, "last_month")

        assert result.total_expenses == Decimal("120")
        assert result.goal_status is None

    @pytest.mark.asyncio
    async def test_unknown_period_is_current_month(self, users, transactions, active_user):
        result = await GetBalance(users, transactions, fixed_clock).execute(active_user.id, "decada")
        assert result.period == "current_month"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("spent", "status"),
        [
            ("850", "⚠️ 85% da meta usado"),
            ("1200", "⚠️ Meta ultrapassada! 120% usado"),
        ],
    )
    async def test_goal_status_bands(self, users, transactions, active_user, expense, spent, status):
        expense(active_user, spent)
        result = await GetBalance(users, transactions, fixed_clock).execute(active_user.id)
        assert result.goal_status == status

    @pytest.mark.asyncio
    async def test_unknown_user(self, users, transactions):
        with pytest.raises(NotFoundError):
            await GetBalance(users, transactions, fixed_clock).execute("nobody")


class TestSetMonthlyGoal:
    @pytest.mark.asyncio
    async def test_sets_goal_and_activates(self, users):
        user = users.add(make_user(goal=None, status=UserStatus.NEW))
        result = await SetMonthlyGoal(users).execute(user.id, "2500")
        assert result.previous_goal is None
        assert result.new_goal == Decimal("2500")
        assert result.status == UserStatus.ACTIVE
        stored = await users.find_by_id(user.id)
        assert stored.monthly_goal.amount == Decimal("2500")
        assert stored.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_reports_previous_goal(self, users, active_user):
        result = await SetMonthlyGoal(users).execute(active_user.id, 1500)
        assert result.previous_goal == Decimal("1000")

    @pytest.mark.asyncio
    async def test_rejects_non_positive(self, users, active_user):
        with pytest.raises(ValidationError):
            await SetMonthlyGoal(users).execute(active_user.id, 0)

    @pytest.mark.asyncio
    async def test_unknown_user(self, users):
        with pytest.raises(NotFoundError):
            await SetMonthlyGoal(users).execute("nobody", 100)


class TestGenerateReport:
    @pytest.mark.asyncio
    async def test_monthly_report(self, users, transactions, active_user, expense, income):
        expense(active_user, "500", "cat_food")
        expense(active_user, "100", "cat_transport")
        income(active_user, "3000")

        result = await GenerateReport(users, transactions, fixed_clock).execute(active_user.id)

        assert result.data.period == "outubro de 2026"
        assert [c.category for c in result.data.top_categories] == ["Alimentação", "Transporte"]
        assert result.data.insights == [
            "🟢 Excelente! Você economizou mais de 50% da sua receita",
            "📈 Alimentação representa 83% dos seus gastos",
        ]
        assert "📅 OUTUBRO DE 2026" in result.report
        assert "• Total de Gastos: R$ 600.00" in result.report
        assert "• Meta Mensal: R$ 1000.00 (60% usado)" in result.report
        assert "1. 🍔 Alimentação: R$ 500.00 (83.3%)" in result.report

    @pytest.mark.asyncio
    async def test_top_categories_limited_to_five(self, users, transactions, categories, active_user, expense):
        from poupapig_assistant.models import Category

        for index in range(7):
            categories.categories.append(
                Category(f"cat_extra_{index}", f"Extra {index}", "📦", "#123456", TransactionType.EXPENSE)
            )
            expense(active_user, str(10 + index), f"cat_extra_{index}")

        result = await GenerateReport(users, transactions, fixed_clock).execute(active_user.id)

        assert [c.category for c in result.data.top_categories] == [
            "Extra 6",
            "Extra 5",
            "Extra 4",
            "Extra 3",
            "Extra 2",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("report_type", ["weekly", "by_category", "comparative"])
    async def test_other_variants_not_available(self, users, transactions, active_user, report_type):
        with pytest.raises(BusinessError):
            await GenerateReport(users, transactions, fixed_clock).execute(active_user.id, report_type)

    @pytest.mark.asyncio
    async def test_invalid_type(self, users, transactions, active_user):
        with pytest.raises(ValidationError):
            await GenerateReport(users, transactions, fixed_clock).execute(active_user.id, "daily")


class TestInsights:
    def _top(self, percentage: str) -> list[CategorySummary]:
        return [
            CategorySummary("Lazer", "🎮", TransactionType.EXPENSE, Decimal("10"), Decimal(percentage))
        ]

    def test_deficit(self):
        insights = build_insights(Decimal("100"), Decimal("200"), self._top("30"))
        assert insights == ["🔴 Seus gastos superaram suas receitas este mês"]

    def test_covered(self):
        insights = build_insights(Decimal("300"), Decimal("200"), [])
        assert insights == ["🟢 Suas receitas cobrem seus gastos"]

    def test_dominant_category(self):
        insights = build_insights(Decimal("300"), Decimal("200"), self._top("45.2"))
        assert insights[-1] == "📈 Lazer representa 45% dos seus gastos"

    def test_forty_percent_is_not_dominant(self):
        assert len(build_insights(Decimal("300"), Decimal("200"), self._top("40"))) == 1
