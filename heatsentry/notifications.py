import asyncio
import logging
from datetime import timedelta
from typing import Optional

from telegram import Bot
from telegram.request import HTTPXRequest
from telegram.error import TimedOut, NetworkError, RetryAfter

from config import config
from heatsentry.schemas import DeliveryResult

logger = logging.getLogger(__name__)

MAX_RETRY_AFTER_SEC = 30


class TelegramChannel:
    """
    Notification channel over the Telegram Bot API.
    `send` never raises: every outcome comes back as a DeliveryResult.
    """

    def __init__(self, token: Optional[str] = None, bot=None, max_attempts: Optional[int] = None):
        self.bot = bot
        self._requests = []
        self.max_attempts = max_attempts or config.TELEGRAM_SEND_ATTEMPTS
        token = token or config.TELEGRAM_BOT_TOKEN

        if self.bot is None and token:
            try:
                timeout = config.HTTP_TIMEOUT_SEC
                trequest = HTTPXRequest(connection_pool_size=64, read_timeout=timeout, write_timeout=timeout, connect_timeout=timeout)
                # getUpdates is unused; owned here only so close() can shut it
                updates_request = HTTPXRequest(connection_pool_size=1)
                self.bot = Bot(token=token, request=trequest, get_updates_request=updates_request)
                self._requests = [trequest, updates_request]
                logger.info("Telegram channel initialized.")
            except Exception as e:
                logger.error(f"Failed to initialize Telegram Bot: {e}")
        elif self.bot is None:
            logger.warning("Telegram credentials missing. Alerts will be disabled.")

    async def send(self, chat_id: str, text: str) -> DeliveryResult:
        chat_id = str(chat_id)
        if not self.bot:
            logger.debug(f"Alert (Not Sent): {text}")
            return DeliveryResult(chat_id=chat_id, ok=False, error="telegram bot not configured")

        last_error = "no attempts made"
        for attempt in range(self.max_attempts):
            try:
                await self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode="HTML",
                    disable_web_page_preview=True,
                )
                return DeliveryResult(chat_id=chat_id, ok=True)
            except RetryAfter as e:
                retry_after = getattr(e, "retry_after", 1)
                if isinstance(retry_after, timedelta):
                    retry_after = retry_after.total_seconds()
                retry_after = min(MAX_RETRY_AFTER_SEC, max(1, int(retry_after)))
                last_error = f"flood control, retry after {retry_after}s"
                logger.warning("Telegram flood control for chat=%s. Retry after %ss.", chat_id, retry_after)
                if attempt + 1 < self.max_attempts:
                    await asyncio.sleep(retry_after)
            except (TimedOut, NetworkError) as e:
                last_error = str(e)
                logger.warning("Telegram network error chat=%s (attempt %s/%s): %s", chat_id, attempt + 1, self.max_attempts, e)
                if attempt + 1 < self.max_attempts:
                    await asyncio.sleep(min(8, 2 ** attempt))
            except Exception as e:
                logger.error(f"Failed to send Telegram message to {chat_id}: {e}")
                return DeliveryResult(chat_id=chat_id, ok=False, error=str(e))

        return DeliveryResult(chat_id=chat_id, ok=False, error=last_error)

    async def close(self):
        """
        Close the HTTP clients this channel created, before their event loop ends.
        Bot.shutdown() skips a bot that was never initialized, so the
        requests are shut down directly.
        """
        requests, self._requests = self._requests, []
        for request in requests:
            try:
                await request.shutdown()
            except Exception as e:
                logger.warning(f"Failed to close Telegram HTTP client: {e}")
