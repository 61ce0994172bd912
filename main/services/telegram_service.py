import html
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class TelegramConfig:
    bot_token: str
    chat_id: str
    timeout: int = 10
    max_retries: int = 3


class TelegramService:
    """Mirrors workflow notifications into the operations group chat."""

    SEND_URL = "https://api.telegram.org/bot{token}/sendMessage"

    # Checked in order, so subclasses must come before RequestException.
    TRANSPORT_ERRORS = (
        (requests.exceptions.ConnectionError, "No internet connection"),
        (requests.exceptions.Timeout, "Request timed out"),
    )

    def __init__(self, config: TelegramConfig):
        self.config = config
        self._url = self.SEND_URL.format(token=config.bot_token)

    def send_role_message(self, role: str, message: str) -> tuple[bool, Optional[str]]:
        text = f"<b>{html.escape(role)}</b>\n{html.escape(message)}"
        return self.send_message(text)

    def send_message(self, text: str, silent: bool = False) -> tuple[bool, Optional[str]]:
        payload = {
            "chat_id": self.config.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": silent,
        }
        last_error = None

        for attempt in range(1, self.config.max_retries + 1):
            try:
                response = requests.post(self._url, json=payload, timeout=self.config.timeout)
            except requests.exceptions.RequestException as e:
                last_error = self._describe(e)
            else:
                if response.status_code == 200:
                    logger.info(f"Telegram notification delivered to chat {self.config.chat_id}")
                    return True, None
                last_error = f"Telegram API error: {response.status_code} - {response.text}"

            logger.warning(f"Telegram attempt {attempt}/{self.config.max_retries}: {last_error}")

        logger.error(f"Giving up on Telegram notification after {self.config.max_retries} attempts")
        return False, last_error

    @classmethod
    def _describe(cls, error: requests.exceptions.RequestException) -> str:
        for error_class, description in cls.TRANSPORT_ERRORS:
            if isinstance(error, error_class):
                return description
        return f"Request failed: {error}"


def get_telegram_service() -> Optional[TelegramService]:
    """Returns None when no bot is configured for the deployment."""
    token = getattr(settings, "TELEGRAM_BOT_TOKEN", "")
    chat_id = getattr(settings, "TELEGRAM_CHAT_ID", "")
    if not token or not chat_id:
        return None
    return TelegramService(TelegramConfig(
        bot_token=token,
        chat_id=chat_id,
        timeout=getattr(settings, "TELEGRAM_TIMEOUT", 10),
        max_retries=getattr(settings, "TELEGRAM_MAX_RETRIES", 3),
    ))
