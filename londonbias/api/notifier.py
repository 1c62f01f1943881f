"""
Telegram Notifier

Posts status text to a Telegram chat. Delivery problems are logged and
reported through the return value; they never raise.
"""

import logging
import httpx

from londonbias.config import API_CONFIG
from .models import TelegramMessage

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Async sendMessage wrapper."""

    def __init__(
        self,
        token: str | None = None,
        chat_id: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.token = token if token is not None else API_CONFIG.telegram_token
        self.chat_id = chat_id if chat_id is not None else API_CONFIG.telegram_chat_id
        self.base_url = base_url or API_CONFIG.telegram_url
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.token and self.chat_id)

    async def send(self, text: str) -> bool:
        """
        Send a message.

        Returns:
            True when Telegram accepted the message
        """
        if not self.configured:
            logger.warning("Telegram token/chat id missing, message not sent")
            return False

        message = TelegramMessage(chat_id=str(self.chat_id), text=text)
        url = f"{self.base_url}/bot{self.token}/sendMessage"

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(url, json=message.model_dump(exclude_none=True))
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Telegram sendMessage failed: {e}")
            return False

        return True
