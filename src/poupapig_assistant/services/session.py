import logging

from poupapig_assistant.models import ExecutedAction, User
from poupapig_assistant.repositories.base import UserRepository
from poupapig_assistant.services.dispatcher import DispatchResult
from poupapig_assistant.services.formatter import format_brl
from poupapig_assistant.services.notifications import MessageOption, Notifier
from poupapig_assistant.use_cases.set_monthly_goal import SetMonthlyGoal
from poupapig_assistant.utils.text import first_number

logger = logging.getLogger(__name__)

GOAL_PROMPT = (
    "Por favor, me diga qual é sua meta mensal de gastos. "
    "Por exemplo: 'minha meta é 2500 reais' 💰"
)
CAPABILITIES = (
    "Agora você pode:\n"
    "• Dizer \"gastei 50 no mercado\" para registrar um gasto\n"
    "• Dizer \"recebi 1000 de salário\" para registrar uma receita\n"
    "• Perguntar \"qual meu saldo?\" para ver seu resumo\n"
    "• Pedir \"relatório do mês\" para análise detalhada\n"
    "\n"
    "Como posso ajudar? 😊"
)
MENU_TITLE = "O que você quer fazer?"
# row ids are sent back as message text when an option is picked
MENU_OPTIONS = [
    MessageOption("qual meu saldo?", "Consultar saldo", "Resumo do mês atual"),
    MessageOption("relatório do mês", "Relatório mensal", "Análise detalhada dos gastos"),
    MessageOption("ajuda", "Ajuda", "Exemplos do que posso fazer"),
]


def welcome_message(name: str) -> str:
    return (
        f"🐷 Olá {name}! Eu sou o PoupaPig, seu assistente financeiro pessoal!\n"
        "\n"
        "Posso te ajudar a:\n"
        "📊 Registrar gastos e receitas\n"
        "💰 Controlar seu orçamento\n"
        "📈 Gerar relatórios financeiros\n"
        "🎯 Definir e acompanhar metas\n"
        "\n"
        "Para começar, me diga: qual é sua meta de gastos mensais?\n"
        "Por exemplo: \"Minha meta é 3000 reais\""
    )


class SessionResolver:
    def __init__(
        self,
        users: UserRepository,
        notifier: Notifier,
        set_monthly_goal: SetMonthlyGoal,
    ) -> None:
        self._users = users
        self._notifier = notifier
        self._set_monthly_goal = set_monthly_goal

    async def resolve(self, identity: str, display_name: str) -> tuple[User, bool]:
        """Find or enroll the user behind `identity`.

        The flag is true while the user still has to set a monthly goal.
        """
        user = await self._users.find_by_phone(identity)
        if not user:
            user = User.create(identity, display_name)
            await self._users.save(user)
            logger.info("Enrolled new user %s", user.id)
            await self._send(user.phone, welcome_message(user.name))
        return user, user.is_new()

    async def handle_first_contact(self, user: User, text: str) -> DispatchResult:
        goal = first_number(text)
        if goal is None:
            return DispatchResult(reply_text=GOAL_PROMPT)

        result = await self._set_monthly_goal.execute(user.id, goal)
        reply = (
            f"✅ Perfeito! Sua meta mensal foi definida como {format_brl(result.new_goal)}"
            f"\n\n{CAPABILITIES}"
        )
        try:
            await self._notifier.send_list(user.phone, MENU_TITLE, MENU_OPTIONS)
        except Exception:
            logger.exception("Failed to send capability menu to %s", user.phone)
        return DispatchResult(
            reply_text=reply,
            executed_actions=[ExecutedAction("set_monthly_goal", success=True, result=result)],
        )

    async def _send(self, phone: str, text: str) -> None:
        try:
            await self._notifier.send_message(phone, text)
        except Exception:
            logger.exception("Failed to send welcome message to %s", phone)
