import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from poupapig_assistant.config import Settings
from poupapig_assistant.services.webhook import normalize_identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageOption:
    id: str
    title: str
    description: str | None = None


class Notifier(Protocol):
    async def send_message(self, phone: str, text: str) -> None: ...

    async def send_alert(self, phone: str, text: str) -> None: ...

    async def send_list(self, phone: str, title: str, options: list[MessageOption]) -> None: ...


class EvolutionNotifier:
    """Delivers replies through an Evolution API WhatsApp instance."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    @property
    def enabled(self) -> bool:
        s = self._settings
        return bool(s.evolution_api_url and s.evolution_api_key and s.evolution_instance)

    async def _post(self, endpoint: str, payload: dict) -> None:
        if not self.enabled:
            logger.warning("Evolution API not configured; dropping %s message.", endpoint)
            return
        instance = self._settings.evolution_instance
        url = f"{self._settings.evolution_api_url}/message/{endpoint}/{instance}"
        response = await self._client.post(
            url,
            json={"instanceName": instance, **payload},
            headers={"apikey": self._settings.evolution_api_key},
        )
        if response.status_code >= 400:
            logger.error("Evolution %s failed (%s): %s", endpoint, response.status_code, response.text)
        response.raise_for_status()

    def _number(self, phone: str) -> str:
        return normalize_identity(phone, self._settings.transport_suffix)

    async def send_message(self, phone: str, text: str) -> None:
        await self._post("sendText", {"number": self._number(phone), "delay": 1000, "text": text})

    async def send_alert(self, phone: str, text: str) -> None:
        # same channel; kept separate so alerts can be routed differently later
        await self.send_message(phone, text)

    async def send_list(self, phone: str, title: str, options: list[MessageOption]) -> None:
        rows = [
            {"title": option.title, "description": option.description or "", "rowId": option.id}
            for option in options
        ]
        await self._post(
            "sendList",
            {
                "number": self._number(phone),
                "title": title,
                "description": "Selecione uma opção:",
                "buttonText": "Selecionar",
                "footerText": "Selecione uma opção abaixo:",
                "sections": [{"title": title, "rows": rows}],
                "delay": 1000,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()
