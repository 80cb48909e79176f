"""
Notification services.

Lightweight senders that deliver one plain-text alert message to one
destination. The SMS sender is the default channel; Telegram is the
alternate. Neither raises: both return True/False and log errors.
Without a credential, a sender only logs the message and reports success
so the pipeline can run in development.
"""

import logging
from abc import ABC, abstractmethod

import httpx
from telegram import Bot

from newsalert.core.config.loader import get_section

logger = logging.getLogger(__name__)

DEFAULT_SMS_BASE_URL = "https://api.twilio.com/2010-04-01"


class BaseNotifier(ABC):
    """
    Abstract base class for notification channels.

    Subclasses implement _deliver(); send() resolves the destination
    and turns every failure into a False return.
    """

    channel: str = "base"

    def __init__(
        self,
        default_destination: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.default_destination = default_destination or None
        self.logger = logger or logging.getLogger(__name__)

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True if the channel has the credentials to really send."""
        pass

    async def send(self, destination: str | None, message: str) -> bool:
        """
        Send a message to a destination.

        Args:
            destination: Phone number, chat id, etc. Falls back to the
                configured default destination when empty.
            message: Plain-text message body.

        Returns:
            True if the message was sent (or mock-sent), False otherwise.
        """
        target = destination or self.default_destination
        if not target:
            self.logger.warning(f"No {self.channel} destination available, skipping notification")
            return False

        if not self.configured:
            self.logger.info(f"Mock {self.channel} message to {target}: {message}")
            return True

        try:
            await self._deliver(target, message)
        except Exception as e:
            self.logger.warning(f"Failed to send {self.channel} notification to {target}: {e}")
            return False

        self.logger.info(f"{self.channel} notification sent to {target}")
        return True

    @abstractmethod
    async def _deliver(self, destination: str, message: str) -> None:
        """Perform the outbound call. Raise on any failure."""
        pass


class SmsNotifier(BaseNotifier):
    """
    Sends SMS messages through a Twilio-compatible REST API.

    One form-encoded POST per message, authenticated with the account
    SID and auth token. Only HTTP 201 counts as success.
    """

    channel = "sms"

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        base_url: str | None = None,
        default_destination: str | None = None,
        timeout: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the SMS notifier.

        Args:
            account_sid: Account SID. Read from config if not provided.
            auth_token: Auth token; empty means mock mode. Read from config if not provided.
            from_number: Sender number. Read from config if not provided.
            base_url: API base URL. Read from config if not provided.
            default_destination: Number used when a subscription has none.
            timeout: HTTP request timeout in seconds.
            logger: Logger to use instead of the module logger.
        """
        super().__init__(default_destination=default_destination, logger=logger)

        if account_sid is None or auth_token is None or from_number is None:
            sms_config = get_section("sms")
        else:
            sms_config = {}

        self._account_sid = account_sid if account_sid is not None else sms_config.get("account_sid", "")
        self._auth_token = auth_token if auth_token is not None else sms_config.get("auth_token", "")
        self._from_number = from_number if from_number is not None else sms_config.get("from_number", "")
        self._base_url = (base_url or sms_config.get("base_url") or DEFAULT_SMS_BASE_URL).rstrip("/")
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._auth_token)

    async def _deliver(self, destination: str, message: str) -> None:
        url = f"{self._base_url}/Accounts/{self._account_sid}/Messages.json"
        payload = {
            "To": destination,
            "From": self._from_number,
            "Body": message,
        }

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                url,
                data=payload,
                auth=(self._account_sid, self._auth_token),
            )

        if response.status_code != 201:
            raise RuntimeError(f"SMS API returned HTTP {response.status_code}")


class TelegramNotifier(BaseNotifier):
    """
    Sends messages through the Telegram Bot API.

    The destination is a chat id. Messages are sent as plain text.
    """

    channel = "telegram"

    def __init__(
        self,
        token: str | None = None,
        default_destination: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            token: Telegram bot token; empty means mock mode. Read from config if not provided.
            default_destination: Chat id used when a subscription has none.
            logger: Logger to use instead of the module logger.
        """
        super().__init__(default_destination=default_destination, logger=logger)

        if token is None:
            token = get_section("telegram").get("token", "")
        self._token = token

    @property
    def configured(self) -> bool:
        return bool(self._token)

    async def _deliver(self, destination: str, message: str) -> None:
        bot = Bot(token=self._token)
        await bot.send_message(chat_id=destination, text=message)


def build_notifier(channel: str | None = None) -> BaseNotifier:
    """
    Build the notifier for the configured channel.

    Args:
        channel: "sms" or "telegram". Read from notifications.channel if not provided.
    """
    notifications_config = get_section("notifications")
    channel = (channel or notifications_config.get("channel") or "sms").lower()
    default_destination = notifications_config.get("default_destination") or None

    if channel == "telegram":
        return TelegramNotifier(default_destination=default_destination)

    if channel != "sms":
        logger.warning(f"Unknown notification channel '{channel}', using sms")

    return SmsNotifier(
        default_destination=default_destination,
        timeout=float(notifications_config.get("timeout", 30.0)),
    )


# Singleton instance
_notifier: BaseNotifier | None = None


def get_notifier() -> BaseNotifier:
    """Get the global notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier
