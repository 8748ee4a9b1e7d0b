from __future__ import annotations
import os, requests
from utils.logger import logger_manager

logger = logger_manager.setup_logger(__name__)

TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID")
SEND_TIMEOUT_SECS = float(os.getenv("TELEGRAM_TIMEOUT_SECS", "10"))


class TelegramService:
    """
    Canal de notificaciones (push) hacia el chat del operador.
    Best effort: un fallo de envío se registra y nunca llega al bucle.
    """
    def __init__(self, token: str | None = None, chat_id: str | int | None = None,
                 session: requests.Session | None = None) -> None:
        self.token = token or TELEGRAM_TOKEN
        raw_chat = chat_id if chat_id is not None else TELEGRAM_CHAT_ID
        try:
            self.chat_id = int(raw_chat) if raw_chat not in (None, "") else None
        except (TypeError, ValueError):
            logger.warning(f"TELEGRAM_CHAT_ID no numérico ({raw_chat!r}); se desactivan envíos.")
            self.chat_id = None
        self.http = session or requests.Session()
        if not self.enabled:
            logger.warning("TelegramService sin TOKEN o CHAT_ID; se desactivan envíos.")

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    @property
    def api_base(self) -> str | None:
        return f"https://api.telegram.org/bot{self.token}" if self.token else None

    def send(self, message: str) -> bool:
        logger.info(message)
        if not self.enabled:
            return False
        payload = {"chat_id": self.chat_id, "text": message}
        try:
            self.http.post(f"{self.api_base}/sendMessage", json=payload, timeout=SEND_TIMEOUT_SECS).raise_for_status()
            return True
        except Exception as e:
            logger.error(f"❌ Error enviando Telegram: {e}")
            return False

    def notify_error(self, message: str) -> bool:
        return self.send(f"🚨 ERROR: {message}")
