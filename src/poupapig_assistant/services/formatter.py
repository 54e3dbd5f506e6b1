from decimal import Decimal
from typing import Iterable

from poupapig_assistant.models import ExecutedAction
from poupapig_assistant.use_cases.get_balance import BalanceResult


def format_brl(amount: Decimal) -> str:
    return f"R$ {amount:.2f}"


def format_balance(balance: BalanceResult) -> str:
    lines = [
        "💰 RESUMO FINANCEIRO",
        f"• Receitas: {format_brl(balance.total_income)}",
        f"• Gastos: {format_brl(balance.total_expenses)}",
        f"• Saldo: {format_brl(balance.balance)}",
    ]
    if balance.goal_status:
        lines.append(f"• {balance.goal_status}")
    return "\n".join(lines)


def format_reply(message: str, executed: Iterable[ExecutedAction]) -> str:
    """Append the outcome of each executed action to the intent reply."""
    sections = [message] if message else []
    for item in executed:
        if not item.success:
            sections.append(f"❌ Erro ao {item.action}: {item.error}")
            continue
        if item.result is None:
            continue
        match item.action:
            case "registrar_transacao":
                if item.result.alert_message:
                    sections.append(item.result.alert_message)
            case "consultar_saldo":
                sections.append(format_balance(item.result))
            case "gerar_relatorio":
                sections.append(item.result.report)
    return "\n\n".join(sections)
