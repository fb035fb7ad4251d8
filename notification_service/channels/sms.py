"""SMS adapter for the Africa's Talking messaging API.

Request: form-encoded POST to ``{base_url}/messaging`` with ``username``,
``to``, ``message`` and optional ``from`` (sender id), authenticated by the
``apiKey`` header.

Response: JSON with the per-recipient result nested under
``SMSMessageData.Recipients``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from notification_service.channels.base import ChannelAdapter, Outcome
from notification_service.errors import ConfigurationError, ProviderError, ValidationError
from notification_service.models.delivery import DeliveryRecord, NotificationChannel
from notification_service.services.recipients import mask_phone, normalize_phone

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "Success"


@dataclass(frozen=True)
class SmsGatewayConfig:
    """Credentials and limits for the SMS gateway."""

    username: str
    api_key: str
    sender_id: str | None = None
    base_url: str = "https://api.africastalking.com/version1"
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    default_region: str = "UG"


def extract_message_id(body: Any) -> str:
    """Pull the first recipient's message id out of a gateway response.

    Raises:
        ProviderError: If the body has no recipients or the recipient
            was not accepted.
    """
    try:
        recipients = body["SMSMessageData"]["Recipients"]
        first = recipients[0]
    except (KeyError, IndexError, TypeError) as e:
        message = None
        if isinstance(body, dict):
            message = (body.get("SMSMessageData") or {}).get("Message")
        raise ProviderError(f"No recipients in gateway response: {message or e!r}") from e

    status = first.get("status")
    if status != SUCCESS_STATUS:
        raise ProviderError(
            f"Gateway rejected recipient: {status}", status_code=first.get("statusCode")
        )

    message_id = first.get("messageId")
    if not message_id or message_id == "None":
        raise ProviderError("Gateway response did not include a message id")
    return str(message_id)


class SmsAdapter(ChannelAdapter):
    """Sends SMS through the Africa's Talking HTTP API."""

    def __init__(self, config: SmsGatewayConfig, client: httpx.Client | None = None) -> None:
        """Initialize the adapter.

        Args:
            config: Gateway credentials and timeouts
            client: Optional preconfigured HTTP client

        Raises:
            ConfigurationError: If the username or API key is missing
        """
        if not config.username or not config.api_key:
            raise ConfigurationError("SMS gateway username and API key are required")

        self.config = config
        self.url = f"{config.base_url.rstrip('/')}/messaging"
        self._client = client

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.SMS

    @property
    def provider_name(self) -> str:
        return "africas_talking"

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(
                    self.config.read_timeout, connect=self.config.connect_timeout
                )
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "apiKey": self.config.api_key,
            "Accept": "application/json",
        }

    def build_payload(self, destination: str, message: str) -> dict[str, str]:
        payload = {
            "username": self.config.username,
            "to": destination,
            "message": message,
        }
        if self.config.sender_id:
            payload["from"] = self.config.sender_id
        return payload

    def send(self, record: DeliveryRecord) -> Outcome:
        try:
            destination = normalize_phone(record.recipient, self.config.default_region)
        except ValidationError as e:
            return Outcome.terminal(str(e))

        masked = mask_phone(destination)
        try:
            message_id = self._post(destination, record.content)
        except ProviderError as e:
            logger.warning(
                "SMS delivery failed",
                extra={"record_id": str(record.id), "recipient": masked, "error": str(e)},
            )
            return Outcome.retryable(str(e))

        logger.info(
            "SMS accepted by gateway",
            extra={"record_id": str(record.id), "recipient": masked, "message_id": message_id},
        )
        return Outcome.sent(message_id)

    def _post(self, destination: str, message: str) -> str:
        try:
            response = self.client.post(
                self.url,
                data=self.build_payload(destination, message),
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"SMS gateway timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"SMS gateway unreachable: {e}") from e

        if not response.is_success:
            raise ProviderError(
                f"Unexpected response: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError("SMS gateway returned an unparseable body") from e

        return extract_message_id(body)

    def check_health(self) -> dict[str, Any]:
        """Probe the messaging endpoint."""
        started = time.monotonic()
        try:
            response = self.client.options(self.url, headers=self._headers())
        except httpx.HTTPError as e:
            return {"healthy": False, "status": "DOWN", "provider": "AFRICAS_TALKING", "error": str(e)}

        return {
            "healthy": response.status_code < 500,
            "status": "UP" if response.status_code < 500 else "DOWN",
            "provider": "AFRICAS_TALKING",
            "response_time_ms": round((time.monotonic() - started) * 1000, 1),
        }

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
