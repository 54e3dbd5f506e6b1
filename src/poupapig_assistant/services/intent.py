"""Intent capability: turns free text into a reply plus structured actions."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, TypedDict

from openai import AsyncOpenAI

from poupapig_assistant.errors import IntentServiceError, ValidationError
from poupapig_assistant.models import to_decimal
from poupapig_assistant.utils.text import NUMBER_PATTERN, first_number, fold

logger = logging.getLogger(__name__)

UNKNOWN_INTENT = "nao_identificada"
INTENT_TYPES = (
    "registrar_gasto",
    "registrar_receita",
    "consultar_saldo",
    "definir_meta",
    "gerar_relatorio",
    "ajuda",
    UNKNOWN_INTENT,
)

FALLBACK_MESSAGE = "Desculpe, não entendi. Pode repetir?"
LOW_CONFIDENCE_MESSAGE = (
    "Não tenho certeza do que você quis dizer 🤔\n"
    "Tente algo como \"gastei 50 no mercado\", \"qual meu saldo?\" ou \"relatório do mês\"."
)
HELP_MESSAGE = (
    "Posso te ajudar a:\n"
    "• Registrar gastos: \"gastei 50 no mercado\"\n"
    "• Registrar receitas: \"recebi 1000 de salário\"\n"
    "• Consultar o saldo: \"qual meu saldo?\"\n"
    "• Definir sua meta: \"minha meta é 3000\"\n"
    "• Gerar relatórios: \"relatório do mês\""
)


class IntentContext(TypedDict):
    user_id: str
    user_name: str
    session_state: str
    categories: list[str]
    last_summary: dict[str, Any] | None


class Intent(TypedDict):
    type: str
    confidence: float
    data: dict[str, Any]


@dataclass(frozen=True)
class IntentAction:
    function: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntentResponse:
    message: str
    actions: list[IntentAction] = field(default_factory=list)
    needs_confirmation: bool = False


class IntentService(Protocol):
    async def process_message(self, text: str, context: IntentContext) -> IntentResponse: ...

    async def detect_intent(self, text: str, categories: list[str]) -> Intent: ...


def _format_value(value: Any) -> str:
    try:
        return f"R$ {to_decimal(value):.2f}"
    except ValidationError:
        return f"R$ {value}"


def describe_action(function: str, parameters: dict[str, Any]) -> str:
    if function == "registrar_transacao":
        kind = "a receita" if parameters.get("tipo") in ("receita", "income") else "o gasto"
        return (
            f"✅ Vou registrar {kind} de {_format_value(parameters.get('valor'))} "
            f"com \"{parameters.get('descricao', '')}\""
        )
    if function == "consultar_saldo":
        return "📊 Consultando seu saldo..."
    if function == "definir_meta":
        return f"🎯 Definindo sua meta mensal para {_format_value(parameters.get('valor'))}..."
    if function == "gerar_relatorio":
        return f"📈 Gerando relatório {parameters.get('tipo_relatorio', 'mensal')}..."
    return "⏳ Processando..."


TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "registrar_transacao",
            "description": "Registra um gasto ou receita do usuário",
            "parameters": {
                "type": "object",
                "properties": {
                    "valor": {"type": "number", "description": "Valor da transação"},
                    "descricao": {"type": "string", "description": "Descrição da transação"},
                    "tipo": {
                        "type": "string",
                        "enum": ["gasto", "receita"],
                        "description": "Tipo da transação",
                    },
                    "categoria": {"type": "string", "description": "Nome da categoria"},
                },
                "required": ["valor", "descricao", "tipo"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "consultar_saldo",
            "description": "Consulta o saldo e resumo financeiro do usuário",
            "parameters": {
                "type": "object",
                "properties": {
                    "periodo": {
                        "type": "string",
                        "enum": ["mes_atual", "mes_passado", "semana", "ano"],
                        "description": "Período da consulta",
                    }
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "definir_meta",
            "description": "Define ou atualiza a meta mensal de gastos",
            "parameters": {
                "type": "object",
                "properties": {"valor": {"type": "number", "description": "Valor da meta mensal"}},
                "required": ["valor"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "gerar_relatorio",
            "description": "Gera relatório detalhado das finanças",
            "parameters": {
                "type": "object",
                "properties": {
                    "tipo_relatorio": {
                        "type": "string",
                        "enum": ["mensal", "semanal", "por_categoria", "comparativo"],
                        "description": "Tipo de relatório a gerar",
                    }
                },
            },
        },
    },
]


def _system_prompt(context: IntentContext) -> str:
    last_summary = context.get("last_summary")
    summary = json.dumps(last_summary, ensure_ascii=False) if last_summary else "nenhum"
    return (
        "Você é o PoupaPig 🐷, um assistente financeiro inteligente e amigável.\n\n"
        "Contexto atual:\n"
        f"- Usuário: {context['user_name']} (ID: {context['user_id']})\n"
        f"- Estado da sessão: {context['session_state']}\n"
        f"- Categorias disponíveis: {', '.join(context['categories'])}\n"
        f"- Último resumo financeiro: {summary}\n\n"
        "Você pode chamar funções para executar ações. Analise a mensagem e decida "
        "quais funções chamar, com quais parâmetros, e qual mensagem responder ao usuário. "
        "Seja proativo e execute ações quando o usuário pedir claramente."
    )


def _normalize_intent(payload: Any) -> Intent:
    if not isinstance(payload, dict):
        return {"type": UNKNOWN_INTENT, "confidence": 0.0, "data": {}}
    intent_type = str(payload.get("type") or UNKNOWN_INTENT)
    if intent_type not in INTENT_TYPES:
        intent_type = UNKNOWN_INTENT
    try:
        confidence = float(payload.get("confidence", 0))
    except (TypeError, ValueError):
        confidence = 0.0
    data = payload.get("data")
    return {
        "type": intent_type,
        "confidence": max(0.0, min(1.0, confidence)),
        "data": data if isinstance(data, dict) else {},
    }


class OpenAIIntentService:
    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def process_message(self, text: str, context: IntentContext) -> IntentResponse:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": _system_prompt(context)},
                    {"role": "user", "content": text},
                ],
                tools=TOOLS,
                tool_choice="auto",
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            raise IntentServiceError(f"Intent provider call failed: {exc}") from exc

        if not response.choices:
            raise IntentServiceError("Intent provider returned no choices")
        message = response.choices[0].message

        actions: list[IntentAction] = []
        for call in message.tool_calls or []:
            try:
                parameters = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as exc:
                raise IntentServiceError(
                    f"Malformed arguments for {call.function.name}: {call.function.arguments!r}"
                ) from exc
            if not isinstance(parameters, dict):
                raise IntentServiceError(f"Arguments for {call.function.name} are not an object")
            actions.append(IntentAction(function=call.function.name, parameters=parameters))

        if message.content:
            reply = message.content
        elif actions:
            reply = "\n".join(describe_action(a.function, a.parameters) for a in actions)
        else:
            reply = FALLBACK_MESSAGE
        return IntentResponse(message=reply, actions=actions)

    async def detect_intent(self, text: str, categories: list[str]) -> Intent:
        prompt = (
            "Analise a mensagem e identifique a intenção do usuário.\n"
            f"Categorias disponíveis: {', '.join(categories)}\n"
            f"Mensagem: \"{text}\"\n\n"
            "Responda em JSON com as chaves type, confidence (0 a 1) e data.\n"
            f"Tipos: {', '.join(INTENT_TYPES)}"
        )
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                response_format={"type": "json_object"},
                temperature=self._temperature,
                max_tokens=200,
                messages=[
                    {
                        "role": "system",
                        "content": "Você é um assistente especializado em análise de intenções. "
                        "Responda sempre em JSON válido.",
                    },
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception:
            logger.exception("Intent detection call failed")
            return _normalize_intent(None)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            return _normalize_intent(None)
        try:
            payload = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Failed to parse intent response: %s", content)
            return _normalize_intent(None)
        return _normalize_intent(payload)


EXPENSE_WORDS = ("gastei", "comprei", "paguei")
INCOME_WORDS = ("recebi", "ganhei")
BALANCE_WORDS = ("saldo", "quanto")
REPORT_WORDS = ("relatorio",)
GOAL_WORDS = ("meta",)
HELP_WORDS = ("ajuda", "menu", "help")

FILLER_WORDS = {
    "no", "na", "nos", "nas", "em", "de", "do", "da", "com", "pro", "pra", "para",
    "um", "uma", "o", "a", "reais", "real", "r$",
}
PERIOD_HINTS = (
    ("mes passado", "mes_passado"),
    ("semana", "semana"),
    ("ano", "ano"),
)


def _contains_any(text: str, words: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in words)


def _description(text: str, verbs: tuple[str, ...], fallback: str) -> str:
    remainder = NUMBER_PATTERN.sub(" ", text)
    words = [w for w in remainder.split() if fold(w) not in verbs]
    while words and fold(words[0]) in FILLER_WORDS:
        words.pop(0)
    description = " ".join(w for w in words if fold(w) not in ("reais", "r$"))
    return description if len(description.strip()) >= 3 else fallback


def _match_category(text: str, categories: list[str]) -> str | None:
    folded = fold(text)
    for name in categories:
        if fold(name) in folded:
            return name
    return None


class KeywordIntentService:
    """Offline fallback used when no OpenAI key is configured."""

    def __init__(self, min_confidence: float = 0.6) -> None:
        self._min_confidence = min_confidence

    async def detect_intent(self, text: str, categories: list[str]) -> Intent:
        folded = fold(text)
        amount = first_number(folded)
        data: dict[str, Any] = {}
        if amount is not None:
            data["valor"] = str(amount)

        if _contains_any(folded, BALANCE_WORDS):
            period = next(
                (tag for hint, tag in PERIOD_HINTS if _contains_any(folded, (hint,))), "mes_atual"
            )
            return {"type": "consultar_saldo", "confidence": 0.8, "data": {"periodo": period}}
        if _contains_any(folded, REPORT_WORDS):
            return {"type": "gerar_relatorio", "confidence": 0.8, "data": {"tipo_relatorio": "mensal"}}
        for intent_type, verbs, fallback in (
            ("registrar_gasto", EXPENSE_WORDS, "Gasto"),
            ("registrar_receita", INCOME_WORDS, "Receita"),
        ):
            if _contains_any(folded, verbs):
                data["descricao"] = _description(text, verbs, fallback)
                category = _match_category(text, categories)
                if category:
                    data["categoria"] = category
                return {
                    "type": intent_type,
                    "confidence": 0.7 if amount is not None else 0.3,
                    "data": data,
                }
        if _contains_any(folded, GOAL_WORDS):
            return {
                "type": "definir_meta",
                "confidence": 0.7 if amount is not None else 0.3,
                "data": data,
            }
        if _contains_any(folded, HELP_WORDS):
            return {"type": "ajuda", "confidence": 0.9, "data": {}}
        return {"type": UNKNOWN_INTENT, "confidence": 0.0, "data": {}}

    async def process_message(self, text: str, context: IntentContext) -> IntentResponse:
        intent = await self.detect_intent(text, context["categories"])
        if intent["type"] == "ajuda":
            return IntentResponse(message=HELP_MESSAGE)
        if intent["type"] == UNKNOWN_INTENT or intent["confidence"] < self._min_confidence:
            logger.info("Low-confidence intent %s (%.2f)", intent["type"], intent["confidence"])
            return IntentResponse(message=LOW_CONFIDENCE_MESSAGE)

        data = intent["data"]
        if intent["type"] in ("registrar_gasto", "registrar_receita"):
            parameters = {
                "valor": data["valor"],
                "descricao": data["descricao"],
                "tipo": "gasto" if intent["type"] == "registrar_gasto" else "receita",
            }
            if "categoria" in data:
                parameters["categoria"] = data["categoria"]
            action = IntentAction("registrar_transacao", parameters)
        elif intent["type"] == "definir_meta":
            action = IntentAction("definir_meta", {"valor": data["valor"]})
        elif intent["type"] == "consultar_saldo":
            action = IntentAction("consultar_saldo", {"periodo": data["periodo"]})
        else:
            action = IntentAction("gerar_relatorio", {"tipo_relatorio": data["tipo_relatorio"]})
        return IntentResponse(
            message=describe_action(action.function, action.parameters),
            actions=[action],
        )
